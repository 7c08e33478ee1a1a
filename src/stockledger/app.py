"""FastAPI application factory."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from . import __version__
from .config import Settings, get_settings
from .database import get_engine, get_session_factory, init_database
from .exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidArgumentError,
    LedgerImmutableError,
    NotFoundError,
    ReferentialIntegrityError,
    StockLedgerError,
    StorageError,
)
from .posting import PostingEngine
from .routes import api_router

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[StockLedgerError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidArgumentError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ReferentialIntegrityError, status.HTTP_409_CONFLICT),
    (LedgerImmutableError, status.HTTP_409_CONFLICT),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(error: StockLedgerError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _handle_ledger_error(request: Request, exc: StockLedgerError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content=exc.to_dict())


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker[Session]] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an explicit *session_factory* the configured database is used and
    its schema created on the fly.
    """

    settings = settings or get_settings()
    if session_factory is None:
        init_database(get_engine())
        session_factory = get_session_factory()

    app = FastAPI(title=settings.app_name, version=__version__)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=True,
        )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.posting_engine = PostingEngine(
        session_factory,
        lock_timeout=settings.lock_timeout,
        max_retries=settings.max_post_retries,
    )
    app.add_exception_handler(StockLedgerError, _handle_ledger_error)
    app.include_router(api_router)
    return app

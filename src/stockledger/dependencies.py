"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from .posting import PostingEngine


def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide a database session for FastAPI routes."""

    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_posting_engine(request: Request) -> PostingEngine:
    return request.app.state.posting_engine

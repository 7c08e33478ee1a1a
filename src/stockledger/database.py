"""Database utilities."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import get_settings

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


class Base(DeclarativeBase):
    """Base model for SQLAlchemy mappings."""


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ARG001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str, *, busy_timeout: float = 15.0, echo: bool = False) -> Engine:
    """Create an engine for *url*, configuring SQLite connections when needed."""

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": busy_timeout},
            echo=echo,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def get_engine() -> Engine:
    """Return a lazily created engine instance."""

    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_db_engine(
            settings.database_url, busy_timeout=settings.sqlite_busy_timeout, echo=settings.echo_sql
        )
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Return the session factory bound to the configured engine."""

    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


@contextmanager
def session_scope(factory: Optional[sessionmaker[Session]] = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session: Session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_database(engine: Optional[Engine] = None) -> None:
    """Ensure that the database schema exists."""

    from . import models  # noqa: F401 - ensure models are imported

    Base.metadata.create_all(bind=engine or get_engine())


def dispose_engine() -> None:
    """Drop the cached engine and session factory so settings are re-read."""

    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None

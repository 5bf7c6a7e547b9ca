"""Database engine and session management."""

import os
from collections.abc import Generator
from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from hrdesk.config import get_settings
from hrdesk.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[Engine] = None
_session_local: Optional[sessionmaker] = None


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    # Relationships are annotated with plain types, not Mapped[...].
    __allow_unmapped__ = True


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _ensure_sqlite_dir(url: str) -> None:
    path = url.split("///", 1)[-1]
    if path and path != ":memory:":
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        url = get_settings().database_url
        connect_args = {}
        if _is_sqlite(url):
            _ensure_sqlite_dir(url)
            # Sessions are used from worker threads during tool execution.
            connect_args = {"check_same_thread": False, "timeout": 30}
        _engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

        if _is_sqlite(url):

            @event.listens_for(_engine, "connect")
            def _sqlite_pragmas(dbapi_connection, _record) -> None:
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    return _engine


def get_session_local() -> sessionmaker:
    """Return the session factory bound to the current engine."""
    global _session_local
    if _session_local is None:
        _session_local = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_local


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()


def dispose_engine() -> None:
    """Dispose the engine so the next access rebuilds it from settings."""
    global _engine, _session_local
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_local = None


def verify_database_connection() -> bool:
    """Check that the database answers a trivial query."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.error("Database connection check failed", data={"error": str(exc)})
        return False

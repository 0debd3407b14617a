"""SQLAlchemy engine construction for the journal store.

The service targets SQLite (file or in-memory) by default but accepts any
SQLAlchemy URL. No declarative models are defined here; this module only
manages connection lifecycle. Foreign keys are switched on for every SQLite
connection so answer rows cascade with their question.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or DEFAULT_DATABASE_URL
    )


# Module-level cached Engine so repositories share the same connection pool
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def build_engine(url: str) -> Engine:
    """Create a new Engine for `url` without touching the module cache.

    In-memory SQLite URLs get a StaticPool so every session sees the same
    database for the lifetime of the engine.
    """
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    logger.info("db_engine_created dialect=%s", engine.dialect.name)
    return engine


def get_engine(url: str | None = None) -> Engine:
    """Return the process-wide Engine for the given URL.

    A different URL replaces the cached engine; the previous one is disposed.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = build_engine(resolved_url)
        _ENGINE_URL = resolved_url

    return _ENGINE


def dispose_engine() -> None:
    """Drop the cached Engine (used on shutdown and between tests)."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None

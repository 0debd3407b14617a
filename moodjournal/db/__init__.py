"""Database bootstrap utilities for the journal store.

Exposes engine construction and the SQL migrations runner. The DB layer is
intentionally minimal and does not leak SQL into route handlers.
"""

from moodjournal.db.base import build_engine, dispose_engine, get_engine
from moodjournal.db.migrations_runner import apply_migrations

__all__ = [
    "build_engine",
    "dispose_engine",
    "get_engine",
    "apply_migrations",
]

"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the package `migrations/`
directory. Skips rollback files and records applied filenames in the
`schema_migrations` table so the same migration is never applied twice to a
database, including fresh in-memory databases.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_JOURNAL_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migrations ("
    " filename TEXT PRIMARY KEY,"
    " applied_at TEXT NOT NULL"
    ")"
)


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        if "rollback" in p.name.lower():
            continue
        yield p


def _strip_comment_lines(sql: str) -> str:
    return "\n".join(ln for ln in sql.splitlines() if not ln.strip().startswith("--"))


def _split_statements(sql: str) -> list[str]:
    """Split a script on ';' once full-line '--' comments are gone.

    Comments go first so a semicolon inside one never cuts a statement.
    """
    statements: list[str] = []
    for stmt in _strip_comment_lines(sql).split(";"):
        s = stmt.strip()
        if not s or s.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        statements.append(s)
    return statements


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute a migration file.

    pysqlite does not accept several statements in one execute() call, so
    SQLite receives the file one statement at a time. Other dialects get the
    script as-is.
    """
    name = (getattr(conn.dialect, "name", "") or "").lower()
    if "sqlite" in name:
        for stmt in _split_statements(sql):
            conn.exec_driver_sql(stmt)
        return
    conn.exec_driver_sql(sql)


def applied_migrations(engine: Engine) -> list[str]:
    with engine.begin() as conn:
        conn.exec_driver_sql(_JOURNAL_DDL)
        rows = conn.execute(
            sql_text("SELECT filename FROM schema_migrations ORDER BY filename ASC")
        ).fetchall()
    return [str(r[0]) for r in rows]


def apply_migrations(
    engine: Engine, migrations_dir: str | os.PathLike[str] | None = None
) -> list[str]:
    """Apply pending migrations and return the filenames applied by this call."""
    root = Path(migrations_dir) if migrations_dir is not None else MIGRATIONS_DIR
    if not root.exists():  # pragma: no cover - packaging error
        logger.error("migrations_dir_missing path=%s", str(root))
        return []

    already = set(applied_migrations(engine))
    newly_applied: list[str] = []
    for sql_path in _iter_sql_files(root):
        fname = sql_path.name
        if fname in already:
            continue
        sql = sql_path.read_text(encoding="utf-8")
        if not sql.strip():
            continue
        try:
            with engine.begin() as conn:
                _exec_sql_compat(conn, sql)
                conn.execute(
                    sql_text(
                        "INSERT INTO schema_migrations (filename, applied_at) VALUES (:f, :at)"
                    ),
                    {
                        "f": fname,
                        # ISO-8601 UTC without fractional seconds (e.g., 2024-01-01T00:00:00Z)
                        "at": datetime.now(timezone.utc)
                        .replace(microsecond=0)
                        .isoformat()
                        .replace("+00:00", "Z"),
                    },
                )
        except Exception:
            logger.error("migration_failed file=%s", fname, exc_info=True)
            raise
        logger.info("migration_applied file=%s", fname)
        newly_applied.append(fname)
    return newly_applied

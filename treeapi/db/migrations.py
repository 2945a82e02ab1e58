"""Database initialisation and migration helpers.

``init_db(conn)`` is idempotent and safe to call on an existing database.
``migrate(conn)`` runs incremental schema changes tracked in a version table.
"""

from __future__ import annotations

import logging
import sqlite3

from treeapi.config import settings
from treeapi.db.connection import TreeConnection, transaction

logger = logging.getLogger(__name__)

# (version, sql) pairs applied in order by migrate().
MIGRATIONS: list[tuple[int, str]] = [
    # (1, "ALTER TABLE nodes ADD COLUMN foo TEXT;"),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_schema() -> str:
    return settings.schema_path.read_text(encoding="utf-8")


def _ensure_version_table(conn: TreeConnection) -> None:
    """Create the internal schema-version tracking table if absent."""
    with transaction(conn):
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version    INTEGER PRIMARY KEY,
                applied_at INTEGER DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))
            )
            """
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def init_db(conn: TreeConnection) -> None:
    """Create the ``nodes`` and ``node_closure`` tables and their indexes.

    Every DDL statement uses ``IF NOT EXISTS`` so calling this multiple times
    on the same database is safe.
    """
    # executescript() splits the multi-statement script itself.
    conn.executescript(_read_schema())
    _ensure_version_table(conn)
    migrate(conn)


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 if none applied)."""
    row = conn.execute(
        "SELECT COALESCE(MAX(version), 0) FROM schema_version"
    ).fetchone()
    return row[0] if row else 0


def migrate(conn: TreeConnection) -> None:
    """Run any pending entries of :data:`MIGRATIONS`.

    Each migration runs in its own transaction and is recorded in
    ``schema_version``.
    """
    applied = current_version(conn)
    for version, sql in MIGRATIONS:
        if version > applied:
            logger.info("Applying schema migration %d", version)
            with transaction(conn):
                conn.execute(sql)
                conn.execute(
                    "INSERT INTO schema_version(version) VALUES (?)", (version,)
                )

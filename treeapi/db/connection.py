"""SQLite connection factory and transaction helper.

Usage::

    from treeapi.db.connection import get_connection, transaction

    conn = get_connection()
    with transaction(conn):
        conn.execute("DELETE FROM node_closure WHERE descendant = ?", (node_id,))
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from treeapi.config import settings

logger = logging.getLogger(__name__)


class TreeConnection(sqlite3.Connection):
    """``sqlite3.Connection`` carrying the lock that serialises transactions.

    One connection is shared by every request thread, so a unit of work must
    hold ``lock`` from ``BEGIN`` until ``COMMIT``/``ROLLBACK``.
    """

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self.lock = threading.RLock()


def get_connection(db_path: Optional[Union[Path, str]] = None) -> TreeConnection:
    """Open and configure a SQLite connection.

    Steps performed on every new connection:
    1. Disable the driver's implicit transactions (``isolation_level=None``);
       :func:`transaction` issues ``BEGIN``/``COMMIT`` itself.
    2. Enable ``PRAGMA foreign_keys = ON``.
    3. Switch to WAL journal mode for concurrent readers.

    Args:
        db_path: Override the DB path.  Defaults to ``settings.db_path``.

    Returns:
        A configured :class:`TreeConnection` with ``row_factory`` set to
        :class:`sqlite3.Row` so columns can be accessed by name.
    """
    path = db_path or settings.db_path

    # Create parent directory if needed (no-op for `:memory:`)
    if str(path) != ":memory:":
        settings.ensure_workspace()

    conn = sqlite3.connect(
        str(path),
        check_same_thread=False,
        isolation_level=None,
        factory=TreeConnection,
    )
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")

    logger.debug("Opened SQLite connection to %s", path)
    return conn  # type: ignore[return-value]


@contextmanager
def transaction(conn: TreeConnection) -> Iterator[TreeConnection]:
    """Run the enclosed block as one transaction.

    Commits when the block exits normally and rolls back on any exception,
    which is re-raised.  Entering while a transaction is already open on
    ``conn`` (from the same thread) joins it instead of nesting.
    """
    with conn.lock:
        if conn.in_transaction:
            yield conn
            return

        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.rollback()
            logger.warning("Transaction rolled back")
            raise
        conn.commit()

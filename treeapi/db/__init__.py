"""Database layer package.

Public re-exports so callers can write::

    from treeapi.db import get_connection, init_db, transaction
    from treeapi.db import TreeService
"""

from treeapi.db.connection import get_connection, transaction
from treeapi.db.migrations import init_db
from treeapi.db.tree import TreeService

__all__ = ["get_connection", "init_db", "transaction", "TreeService"]

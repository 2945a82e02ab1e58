"""Tree maintenance: keeps ``nodes`` and ``node_closure`` consistent.

:class:`TreeService` is the only code that touches both stores inside one
transaction.  Each mutating method either commits every row it changed or
rolls everything back, so a failed create/delete/move never leaves dangling
closure rows behind.

Usage::

    from treeapi.db import get_connection, init_db
    from treeapi.db.tree import TreeService

    conn = get_connection()
    init_db(conn)
    tree = TreeService(conn)

    root = tree.create("Catalogue", "category")
    child = tree.create("Books", "category", ancestor_id=root.id)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from treeapi.db import closures, nodes
from treeapi.db.connection import TreeConnection, transaction
from treeapi.db.models import ClosureEdge, Node, utcnow
from treeapi.errors import (
    CyclicMoveError,
    InfrastructureError,
    NodeNotFoundError,
    ReferenceNotFoundError,
)

logger = logging.getLogger(__name__)


class TreeService:
    """Create, read, update, delete and move nodes of a closure-table tree."""

    def __init__(self, conn: TreeConnection) -> None:
        self.conn = conn

    # ------------------------------------------------------------------
    # Unit-of-work helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _atomic(self) -> Iterator[TreeConnection]:
        try:
            with transaction(self.conn) as conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("Database error, transaction rolled back: %s", exc)
            raise InfrastructureError(str(exc)) from exc

    @contextmanager
    def _reading(self) -> Iterator[TreeConnection]:
        # Hold the lock so reads never observe another thread's open transaction.
        try:
            with self.conn.lock:
                yield self.conn
        except sqlite3.Error as exc:
            logger.error("Database error while reading: %s", exc)
            raise InfrastructureError(str(exc)) from exc

    def _require_node(self, conn: TreeConnection, node_id: str) -> None:
        if not nodes.node_exists(conn, node_id):
            raise NodeNotFoundError(node_id)

    def _require_ancestor(self, conn: TreeConnection, ancestor_id: str) -> None:
        if not nodes.node_exists(conn, ancestor_id):
            raise ReferenceNotFoundError(ancestor_id=ancestor_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        title: str,
        node_type: str,
        description: Optional[str] = None,
        ancestor_id: Optional[str] = None,
    ) -> Node:
        """Insert a node, its self-edge and one edge per ancestor of its parent.

        The new node's ancestor depths follow the order of the parent's
        ancestor chain: 1 for the parent itself, 2 for the grandparent, and
        so on.

        Raises:
            ReferenceNotFoundError: ``ancestor_id`` does not exist.
        """
        with self._atomic() as conn:
            if ancestor_id is not None:
                self._require_ancestor(conn, ancestor_id)

            node = nodes.create_node(
                conn, title=title, node_type=node_type, description=description
            )
            closures.save_edge(conn, ClosureEdge(node.id, node.id, 0))

            if ancestor_id is not None:
                chain = closures.find_by_descendant(conn, ancestor_id)
                for depth, edge in enumerate(chain, start=1):
                    closures.save_edge(conn, ClosureEdge(edge.ancestor, node.id, depth))

        logger.info("Created node %s (parent=%s)", node.id, ancestor_id)
        return node

    def update(
        self,
        node_id: str,
        title: str,
        node_type: str,
        description: Optional[str] = None,
    ) -> Node:
        """Replace title and type; replace description only when given.

        Raises:
            NodeNotFoundError: ``node_id`` does not exist.
        """
        with self._atomic() as conn:
            node = nodes.get_node(conn, node_id)
            node.title = title
            node.node_type = node_type
            if description is not None:
                node.description = description
            node.updated_at = utcnow()
            updated = nodes.update_node(conn, node_id, node)

        logger.info("Updated node %s", node_id)
        return updated

    def delete(self, node_id: str) -> list[str]:
        """Delete *node_id* together with its whole subtree.

        Returns:
            The ids that were removed, the node itself first.

        Raises:
            NodeNotFoundError: ``node_id`` does not exist.
        """
        with self._atomic() as conn:
            self._require_node(conn, node_id)
            descendant_ids = closures.find_descendant_ids(conn, node_id)
            closures.delete_by_descendant_ids(conn, descendant_ids)
            nodes.delete_nodes_by_ids(conn, descendant_ids)

        logger.info("Deleted node %s and %d descendant(s)", node_id, len(descendant_ids) - 1)
        return descendant_ids

    def move(self, node_id: str, to_ancestor_id: str) -> list[ClosureEdge]:
        """Re-parent *node_id* (and its subtree) under *to_ancestor_id*.

        Returns:
            The closure edges written for the moved subtree.

        Raises:
            NodeNotFoundError: ``node_id`` does not exist.
            ReferenceNotFoundError: ``to_ancestor_id`` does not exist.
            CyclicMoveError: ``to_ancestor_id`` is the node or lies below it.
        """
        with self._atomic() as conn:
            self._require_node(conn, node_id)
            self._require_ancestor(conn, to_ancestor_id)

            descendant_ids = closures.find_descendant_ids(conn, node_id)
            if to_ancestor_id in descendant_ids:
                raise CyclicMoveError(node_id=node_id, ancestor_id=to_ancestor_id)

            new_edges = closures.compute_edges_for_reparent(conn, node_id, to_ancestor_id)
            closures.delete_by_descendant_ids(conn, descendant_ids)
            for edge in new_edges:
                closures.save_edge(conn, edge)

        logger.info("Moved node %s under %s", node_id, to_ancestor_id)
        return new_edges

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def roots(self) -> list[Node]:
        with self._reading() as conn:
            return nodes.list_roots(conn)

    def detail(self, node_id: str) -> Node:
        with self._reading() as conn:
            return nodes.get_node(conn, node_id)

    def descendants(self, node_id: str) -> list[Node]:
        """All nodes below *node_id*, newest first."""
        with self._reading() as conn:
            self._require_node(conn, node_id)
            return nodes.list_descendants(conn, node_id)

    def ancestors(self, node_id: str) -> list[ClosureEdge]:
        """The ancestor chain of *node_id*, self-edge first."""
        with self._reading() as conn:
            self._require_node(conn, node_id)
            return closures.find_by_descendant(conn, node_id)

    def child_edges(self, node_id: str) -> list[ClosureEdge]:
        """Parent -> child edges of the subtree rooted at *node_id*."""
        with self._reading() as conn:
            self._require_node(conn, node_id)
            return closures.find_child_edges(conn, node_id)

"""Operations on the ``nodes`` table.

None of these functions commit: callers that write wrap them in
:func:`treeapi.db.connection.transaction`.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime
from typing import Iterable, Optional

from treeapi.db.models import Node, utcnow
from treeapi.errors import NodeNotFoundError

_COLUMNS = "n.id, n.title, n.type, n.description, n.created_at, n.updated_at"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="microseconds") if value else None


def _row_to_node(row: sqlite3.Row) -> Node:
    return Node(
        id=row["id"],
        title=row["title"],
        node_type=row["type"],
        description=row["description"],
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _placeholders(values: list[str]) -> str:
    return ", ".join("?" for _ in values)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_node(
    conn: sqlite3.Connection,
    title: str,
    node_type: str,
    description: Optional[str] = None,
    node_id: Optional[str] = None,
) -> Node:
    """Insert a new node row and return it.

    Args:
        conn: Open DB connection.
        title: Human-readable display name.
        node_type: Free-form type label stored in the ``type`` column.
        description: Optional longer text.
        node_id: Explicit UUID override (auto-generated when omitted).

    Returns:
        The newly created :class:`~treeapi.db.models.Node`.  ``updated_at``
        stays ``None`` until the first update.
    """
    node = Node(
        id=node_id or str(uuid.uuid4()),
        title=title,
        node_type=node_type,
        description=description,
        created_at=utcnow(),
    )
    conn.execute(
        """
        INSERT INTO nodes (id, title, type, description, created_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (node.id, node.title, node.node_type, node.description, _format_ts(node.created_at)),
    )
    return node


def update_node(conn: sqlite3.Connection, node_id: str, node: Node) -> Node:
    """Write ``title``, ``type``, ``description`` and ``updated_at`` of *node*.

    ``id`` and ``created_at`` are never touched.

    Raises:
        NodeNotFoundError: If no row has ``node_id``.
    """
    cursor = conn.execute(
        """
        UPDATE nodes
        SET    title = ?, type = ?, description = ?, updated_at = ?
        WHERE  id = ?
        """,
        (node.title, node.node_type, node.description, _format_ts(node.updated_at), node_id),
    )
    if cursor.rowcount == 0:
        raise NodeNotFoundError(node_id)
    return get_node(conn, node_id)


def delete_nodes_by_ids(conn: sqlite3.Connection, node_ids: Iterable[str]) -> int:
    """Delete every node whose id is in *node_ids*; returns the row count."""
    ids = list(node_ids)
    if not ids:
        return 0
    cursor = conn.execute(
        f"DELETE FROM nodes WHERE id IN ({_placeholders(ids)})", ids  # noqa: S608
    )
    return cursor.rowcount


def node_exists(conn: sqlite3.Connection, node_id: str) -> bool:
    row = conn.execute("SELECT 1 FROM nodes WHERE id = ?", (node_id,)).fetchone()
    return row is not None


def get_node(conn: sqlite3.Connection, node_id: str) -> Node:
    """Fetch a single node by its UUID.

    Raises:
        NodeNotFoundError: If the node does not exist.
    """
    row = conn.execute(
        f"SELECT {_COLUMNS} FROM nodes n WHERE n.id = ?", (node_id,)  # noqa: S608
    ).fetchone()
    if row is None:
        raise NodeNotFoundError(node_id)
    return _row_to_node(row)


def list_roots(conn: sqlite3.Connection) -> list[Node]:
    """Return nodes that are nobody's descendant, newest first."""
    rows = conn.execute(
        f"""
        SELECT {_COLUMNS}
        FROM   nodes n
        JOIN   node_closure nc ON n.id = nc.descendant
        WHERE  nc.ancestor = nc.descendant
          AND  nc.depth = 0
          AND  NOT EXISTS (
                   SELECT 1
                   FROM   node_closure nc2
                   WHERE  nc2.descendant = nc.descendant
                     AND  nc2.depth > 0
               )
        ORDER BY n.created_at DESC, n.rowid DESC
        """  # noqa: S608
    ).fetchall()
    return [_row_to_node(r) for r in rows]


def list_descendants(conn: sqlite3.Connection, ancestor_id: str) -> list[Node]:
    """Return every node below *ancestor_id* (any depth > 0), newest first."""
    rows = conn.execute(
        f"""
        SELECT {_COLUMNS}
        FROM   nodes n
        JOIN   node_closure nc ON n.id = nc.descendant
        WHERE  nc.ancestor = ?
          AND  nc.depth > 0
        ORDER BY n.created_at DESC, n.rowid DESC
        """,  # noqa: S608
        (ancestor_id,),
    ).fetchall()
    return [_row_to_node(r) for r in rows]

"""Operations on the ``node_closure`` table.

Each row says "``descendant`` is ``depth`` levels below ``ancestor``".  Every
node owns a depth-0 row pointing at itself, so "all descendants of X" and
"all ancestors of X" are single indexed lookups.
"""

from __future__ import annotations

import sqlite3
from typing import Iterable

from treeapi.db.models import ClosureEdge


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_edge(row: sqlite3.Row) -> ClosureEdge:
    return ClosureEdge(
        ancestor=row["ancestor"],
        descendant=row["descendant"],
        depth=row["depth"],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def save_edge(conn: sqlite3.Connection, edge: ClosureEdge) -> ClosureEdge:
    conn.execute(
        "INSERT INTO node_closure (ancestor, descendant, depth) VALUES (?, ?, ?)",
        (edge.ancestor, edge.descendant, edge.depth),
    )
    return edge


def delete_by_descendant_ids(conn: sqlite3.Connection, descendant_ids: Iterable[str]) -> int:
    """Delete every edge that points *at* one of ``descendant_ids``.

    Returns:
        Number of rows removed.
    """
    ids = list(descendant_ids)
    if not ids:
        return 0
    placeholders = ", ".join("?" for _ in ids)
    cursor = conn.execute(
        f"DELETE FROM node_closure WHERE descendant IN ({placeholders})",  # noqa: S608
        ids,
    )
    return cursor.rowcount


def find_descendant_ids(conn: sqlite3.Connection, ancestor_id: str) -> list[str]:
    """Return ``ancestor_id`` plus the ids of its whole subtree."""
    rows = conn.execute(
        "SELECT descendant FROM node_closure WHERE ancestor = ? ORDER BY depth",
        (ancestor_id,),
    ).fetchall()
    return [r["descendant"] for r in rows]


def find_by_descendant(conn: sqlite3.Connection, node_id: str) -> list[ClosureEdge]:
    """Return the ancestor chain of *node_id*.

    Ordered by depth ascending: the self-edge first, then the parent, then
    the grandparent, up to the root.
    """
    rows = conn.execute(
        """
        SELECT ancestor, descendant, depth
        FROM   node_closure
        WHERE  descendant = ?
        ORDER BY depth
        """,
        (node_id,),
    ).fetchall()
    return [_row_to_edge(r) for r in rows]


def compute_edges_for_reparent(
    conn: sqlite3.Connection,
    node_id: str,
    new_ancestor_id: str,
) -> list[ClosureEdge]:
    """Compute the complete edge set of *node_id*'s subtree after a move.

    Two parts are returned:

    * every ancestor ``A`` of ``new_ancestor_id`` (itself included) joined
      with every descendant ``D`` of ``node_id`` (itself included), at depth
      ``depth(A -> new_ancestor) + depth(node -> D) + 1``;
    * the subtree's own edges (self-edges and internal paths), unchanged.

    Deleting every edge whose descendant lies in the subtree and inserting
    this list therefore re-roots the subtree without losing its shape.  The
    caller must ensure ``new_ancestor_id`` is outside the subtree.
    """
    rows = conn.execute(
        """
        SELECT super_tree.ancestor                        AS ancestor,
               sub_tree.descendant                        AS descendant,
               super_tree.depth + sub_tree.depth + 1      AS depth
        FROM   node_closure AS super_tree
        JOIN   node_closure AS sub_tree ON sub_tree.ancestor = :node
        WHERE  super_tree.descendant = :target

        UNION ALL

        SELECT internal.ancestor, internal.descendant, internal.depth
        FROM   node_closure AS internal
        WHERE  internal.ancestor IN (
                   SELECT descendant FROM node_closure WHERE ancestor = :node
               )

        ORDER BY depth, ancestor, descendant
        """,
        {"node": node_id, "target": new_ancestor_id},
    ).fetchall()
    return [_row_to_edge(r) for r in rows]


def find_child_edges(conn: sqlite3.Connection, root_id: str) -> list[ClosureEdge]:
    """Return the parent -> child (depth 1) edges inside *root_id*'s subtree.

    Children come in creation order, which is what tree renderers expect.
    """
    rows = conn.execute(
        """
        SELECT nc.ancestor, nc.descendant, nc.depth
        FROM   node_closure nc
        JOIN   nodes n ON n.id = nc.descendant
        WHERE  nc.depth = 1
          AND  nc.ancestor IN (
                   SELECT descendant FROM node_closure WHERE ancestor = ?
               )
        ORDER BY n.created_at, n.rowid
        """,
        (root_id,),
    ).fetchall()
    return [_row_to_edge(r) for r in rows]

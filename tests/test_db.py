"""Database layer tests: connection, schema, node store and closure store.

All tests use an in-memory SQLite database so they are:
- Fast (no disk I/O)
- Isolated (each fixture gets a fresh DB)
- Side-effect free (nothing written to ~/.closure_tree)
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from treeapi.db import closures, nodes
from treeapi.db.connection import TreeConnection, get_connection, transaction
from treeapi.db.migrations import current_version, init_db
from treeapi.db.models import ClosureEdge, Node
from treeapi.errors import NodeNotFoundError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn() -> Generator[TreeConnection, None, None]:
    """In-memory connection with the schema initialised."""
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


def _add(conn: TreeConnection, title: str, parent: Node | None = None) -> Node:
    """Insert a node plus its closure rows the same way the service does."""
    node = nodes.create_node(conn, title=title, node_type="category")
    closures.save_edge(conn, ClosureEdge(node.id, node.id, 0))
    if parent is not None:
        for depth, edge in enumerate(closures.find_by_descendant(conn, parent.id), start=1):
            closures.save_edge(conn, ClosureEdge(edge.ancestor, node.id, depth))
    return node


# ---------------------------------------------------------------------------
# connection / init
# ---------------------------------------------------------------------------

class TestConnection:
    def test_foreign_keys_enabled(self, conn: TreeConnection) -> None:
        row = conn.execute("PRAGMA foreign_keys").fetchone()
        assert row[0] == 1

    def test_wal_mode(self, conn: TreeConnection) -> None:
        row = conn.execute("PRAGMA journal_mode").fetchone()
        # In-memory DBs always return 'memory', on-disk returns 'wal'
        assert row[0] in ("wal", "memory")

    def test_on_disk_uses_wal(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr("treeapi.config.settings.workspace_dir", tmp_path)
        disk = get_connection(tmp_path / "tree.db")
        try:
            assert disk.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        finally:
            disk.close()


class TestTransaction:
    def test_commit_on_success(self, conn: TreeConnection) -> None:
        with transaction(conn):
            nodes.create_node(conn, title="Kept", node_type="x")
        assert conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0] == 1

    def test_rollback_on_error(self, conn: TreeConnection) -> None:
        with pytest.raises(RuntimeError):
            with transaction(conn):
                nodes.create_node(conn, title="Lost", node_type="x")
                raise RuntimeError("boom")
        assert conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0] == 0
        assert not conn.in_transaction

    def test_nested_block_joins_outer_transaction(self, conn: TreeConnection) -> None:
        with pytest.raises(RuntimeError):
            with transaction(conn):
                with transaction(conn):
                    nodes.create_node(conn, title="Inner", node_type="x")
                raise RuntimeError("outer fails")
        assert conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0] == 0

    def test_foreign_key_violation_rolls_back(self, conn: TreeConnection) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            with transaction(conn):
                node = nodes.create_node(conn, title="Orphan edge", node_type="x")
                closures.save_edge(conn, ClosureEdge("missing", node.id, 1))
        assert conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0] == 0


class TestInitDb:
    def test_tables_exist(self, conn: TreeConnection) -> None:
        tables = {
            r[0]
            for r in conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        }
        assert {"nodes", "node_closure", "schema_version"} <= tables

    def test_current_version_zero_on_fresh_db(self, conn: TreeConnection) -> None:
        assert current_version(conn) == 0

    def test_init_db_is_idempotent(self, conn: TreeConnection) -> None:
        # Calling init_db a second time must not raise
        init_db(conn)

    def test_pending_migration_applied_once(self, conn: TreeConnection, monkeypatch) -> None:
        monkeypatch.setattr(
            "treeapi.db.migrations.MIGRATIONS",
            [(1, "ALTER TABLE nodes ADD COLUMN note TEXT")],
        )
        init_db(conn)
        init_db(conn)
        assert current_version(conn) == 1
        columns = {r["name"] for r in conn.execute("PRAGMA table_info(nodes)").fetchall()}
        assert "note" in columns

    def test_negative_depth_rejected(self, conn: TreeConnection) -> None:
        node = nodes.create_node(conn, title="A", node_type="x")
        with pytest.raises(sqlite3.IntegrityError):
            closures.save_edge(conn, ClosureEdge(node.id, node.id, -1))


# ---------------------------------------------------------------------------
# Node store
# ---------------------------------------------------------------------------

class TestNodeStore:
    def test_create_node_returns_node(self, conn: TreeConnection) -> None:
        node = nodes.create_node(conn, title="Hello", node_type="folder")
        assert isinstance(node, Node)
        assert node.title == "Hello"
        assert node.node_type == "folder"
        assert len(node.id) == 36
        assert node.created_at is not None
        assert node.updated_at is None

    def test_create_node_explicit_id(self, conn: TreeConnection) -> None:
        node = nodes.create_node(conn, title="Fixed", node_type="x", node_id="fixed-id")
        assert nodes.get_node(conn, "fixed-id").title == node.title

    def test_get_node_round_trips_fields(self, conn: TreeConnection) -> None:
        created = nodes.create_node(conn, title="Fetch", node_type="x", description="about")
        fetched = nodes.get_node(conn, created.id)
        assert fetched == created

    def test_get_node_not_found(self, conn: TreeConnection) -> None:
        with pytest.raises(NodeNotFoundError):
            nodes.get_node(conn, "nonexistent-uuid")

    def test_node_exists(self, conn: TreeConnection) -> None:
        node = nodes.create_node(conn, title="Here", node_type="x")
        assert nodes.node_exists(conn, node.id)
        assert not nodes.node_exists(conn, "not-there")

    def test_update_node_keeps_id_and_created_at(self, conn: TreeConnection) -> None:
        node = nodes.create_node(conn, title="Old", node_type="x")
        changed = Node(
            id="ignored",
            title="New",
            node_type="y",
            description="desc",
            created_at=None,
            updated_at=node.created_at,
        )
        updated = nodes.update_node(conn, node.id, changed)
        assert updated.id == node.id
        assert updated.created_at == node.created_at
        assert (updated.title, updated.node_type, updated.description) == ("New", "y", "desc")
        assert updated.updated_at == node.created_at

    def test_update_missing_node_raises(self, conn: TreeConnection) -> None:
        with pytest.raises(NodeNotFoundError):
            nodes.update_node(conn, "fake-id", Node(id="fake-id", title="x", node_type="x"))

    def test_delete_nodes_by_ids(self, conn: TreeConnection) -> None:
        a = nodes.create_node(conn, title="A", node_type="x")
        b = nodes.create_node(conn, title="B", node_type="x")
        c = nodes.create_node(conn, title="C", node_type="x")
        assert nodes.delete_nodes_by_ids(conn, [a.id, b.id]) == 2
        assert not nodes.node_exists(conn, a.id)
        assert nodes.node_exists(conn, c.id)

    def test_delete_nodes_empty_list_is_noop(self, conn: TreeConnection) -> None:
        assert nodes.delete_nodes_by_ids(conn, []) == 0

    def test_list_roots_newest_first(self, conn: TreeConnection) -> None:
        first = _add(conn, "First")
        second = _add(conn, "Second")
        _add(conn, "Child", parent=first)
        assert [n.id for n in nodes.list_roots(conn)] == [second.id, first.id]

    def test_list_roots_empty(self, conn: TreeConnection) -> None:
        assert nodes.list_roots(conn) == []

    def test_list_descendants_excludes_self(self, conn: TreeConnection) -> None:
        root = _add(conn, "R")
        child = _add(conn, "C", parent=root)
        grandchild = _add(conn, "G", parent=child)
        assert [n.id for n in nodes.list_descendants(conn, root.id)] == [grandchild.id, child.id]
        assert nodes.list_descendants(conn, grandchild.id) == []


# ---------------------------------------------------------------------------
# Closure store
# ---------------------------------------------------------------------------

class TestClosureStore:
    def test_save_edge_returns_edge(self, conn: TreeConnection) -> None:
        node = nodes.create_node(conn, title="A", node_type="x")
        edge = ClosureEdge(node.id, node.id, 0)
        assert closures.save_edge(conn, edge) == edge

    def test_duplicate_edge_rejected(self, conn: TreeConnection) -> None:
        node = _add(conn, "A")
        with pytest.raises(sqlite3.IntegrityError):
            closures.save_edge(conn, ClosureEdge(node.id, node.id, 0))

    def test_find_by_descendant_ordered_by_depth(self, conn: TreeConnection) -> None:
        root = _add(conn, "R")
        child = _add(conn, "C", parent=root)
        grandchild = _add(conn, "G", parent=child)
        chain = closures.find_by_descendant(conn, grandchild.id)
        assert chain == [
            ClosureEdge(grandchild.id, grandchild.id, 0),
            ClosureEdge(child.id, grandchild.id, 1),
            ClosureEdge(root.id, grandchild.id, 2),
        ]

    def test_find_descendant_ids_includes_self(self, conn: TreeConnection) -> None:
        root = _add(conn, "R")
        child = _add(conn, "C", parent=root)
        other = _add(conn, "Other")
        ids = closures.find_descendant_ids(conn, root.id)
        assert ids[0] == root.id
        assert set(ids) == {root.id, child.id}
        assert other.id not in ids

    def test_delete_by_descendant_ids(self, conn: TreeConnection) -> None:
        root = _add(conn, "R")
        child = _add(conn, "C", parent=root)
        removed = closures.delete_by_descendant_ids(conn, [child.id])
        assert removed == 2  # self-edge + edge from root
        assert closures.find_by_descendant(conn, child.id) == []
        assert closures.find_by_descendant(conn, root.id) == [ClosureEdge(root.id, root.id, 0)]

    def test_compute_edges_for_reparent(self, conn: TreeConnection) -> None:
        old_root = _add(conn, "Old")
        node = _add(conn, "N", parent=old_root)
        leaf = _add(conn, "L", parent=node)
        new_root = _add(conn, "New")
        target = _add(conn, "T", parent=new_root)

        edges = set(closures.compute_edges_for_reparent(conn, node.id, target.id))
        assert edges == {
            # New paths from the target's chain into the subtree
            ClosureEdge(target.id, node.id, 1),
            ClosureEdge(target.id, leaf.id, 2),
            ClosureEdge(new_root.id, node.id, 2),
            ClosureEdge(new_root.id, leaf.id, 3),
            # The subtree's own shape
            ClosureEdge(node.id, node.id, 0),
            ClosureEdge(leaf.id, leaf.id, 0),
            ClosureEdge(node.id, leaf.id, 1),
        }
        assert all(e.ancestor != old_root.id for e in edges)

    def test_find_child_edges(self, conn: TreeConnection) -> None:
        root = _add(conn, "R")
        a = _add(conn, "A", parent=root)
        b = _add(conn, "B", parent=root)
        a1 = _add(conn, "A1", parent=a)
        _add(conn, "Elsewhere")
        edges = closures.find_child_edges(conn, root.id)
        assert [(e.ancestor, e.descendant) for e in edges] == [
            (root.id, a.id),
            (root.id, b.id),
            (a.id, a1.id),
        ]
        assert all(e.depth == 1 for e in edges)

"""Closure Tree CLI, entry-point for local tree operations.

Usage:
    closure-tree --help

Sub-command groups:
    db        schema management
    node      create / inspect / update / move / delete nodes
    serve     run the REST API with uvicorn
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from treeapi.config import settings
from treeapi.db import TreeService, get_connection, init_db
from treeapi.errors import TreeError
from treeapi.logging_setup import configure_logging
from treecli.rendering import format_node, render_tree

app = typer.Typer(
    name="closure-tree",
    help="Closure Tree CLI.",
    no_args_is_help=True,
)


@contextmanager
def _open_tree() -> Iterator[TreeService]:
    """Yield a service over a freshly initialised connection.

    Domain errors are printed and turned into exit code 1.
    """
    conn = get_connection()
    init_db(conn)
    try:
        yield TreeService(conn)
    except TreeError as exc:
        typer.echo(f"❌ {exc.message}")
        raise typer.Exit(code=1)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Node commands
# ---------------------------------------------------------------------------
node_app = typer.Typer(help="Tree node operations.", no_args_is_help=True)
app.add_typer(node_app, name="node")


@node_app.command("create")
def node_create(
    title: str = typer.Option(..., help="Node title."),
    type: str = typer.Option(..., "--type", help="Node type label."),
    description: Optional[str] = typer.Option(None, help="Optional description."),
    parent: Optional[str] = typer.Option(None, "--parent", help="Ancestor node UUID."),
) -> None:
    """Create a node, optionally as a child of ``--parent``."""
    with _open_tree() as tree:
        node = tree.create(title, type, description=description, ancestor_id=parent)
    typer.echo(f"✅ Created node: {node.id}  title={node.title!r}  type={node.node_type!r}")


@node_app.command("roots")
def node_roots() -> None:
    """List root nodes, newest first."""
    with _open_tree() as tree:
        roots = tree.roots()
    if not roots:
        typer.echo("No root nodes found.")
        return
    for n in roots:
        typer.echo(f"  {n.id}  [{n.node_type}]  {n.title!r}")


@node_app.command("show")
def node_show(
    node_id: str = typer.Argument(..., help="Node UUID."),
) -> None:
    """Print a node and its subtree as an ASCII tree."""
    with _open_tree() as tree:
        root = tree.detail(node_id)
        descendants = tree.descendants(node_id)
        edges = tree.child_edges(node_id)
    typer.echo(render_tree(root, descendants, edges))


@node_app.command("update")
def node_update(
    node_id: str = typer.Argument(..., help="Node UUID."),
    title: str = typer.Option(..., help="New title."),
    type: str = typer.Option(..., "--type", help="New type label."),
    description: Optional[str] = typer.Option(None, help="New description."),
) -> None:
    """Update a node's title, type and (optionally) description."""
    with _open_tree() as tree:
        node = tree.update(node_id, title, type, description=description)
    typer.echo(f"✅ Updated node: {format_node(node)}")


@node_app.command("move")
def node_move(
    node_id: str = typer.Argument(..., help="Node UUID."),
    to: str = typer.Option(..., "--to", help="UUID of the new ancestor."),
) -> None:
    """Move a node and its subtree under another node."""
    with _open_tree() as tree:
        tree.move(node_id, to)
    typer.echo(f"✅ Moved {node_id} under {to}")


@node_app.command("delete")
def node_delete(
    node_id: str = typer.Argument(..., help="Node UUID."),
) -> None:
    """Delete a node together with all of its descendants."""
    with _open_tree() as tree:
        removed = tree.delete(node_id)
    typer.echo(f"🗑️ Deleted {len(removed)} node(s)")


# ---------------------------------------------------------------------------
# API server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option(settings.api_host, help="Bind address."),
    port: int = typer.Option(settings.api_port, help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the REST API with uvicorn."""
    import uvicorn

    configure_logging()
    uvicorn.run("treeapi.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()

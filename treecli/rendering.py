"""Utilities for rendering trees in the CLI."""

from __future__ import annotations

from typing import Dict, List

from treeapi.db.models import ClosureEdge, Node


def format_node(node: Node) -> str:
    return f"{node.title} [{node.node_type}] ({node.id[:8]})"


def render_tree(root: Node, descendants: List[Node], child_edges: List[ClosureEdge]) -> str:
    """Render the subtree under *root* as an ASCII tree.

    Args:
        root: The node drawn on the first line.
        descendants: Every node below *root*.
        child_edges: Depth-1 closure edges of the subtree, children in the
            order they should be drawn.

    Returns:
        String representation of the tree.
    """
    node_map: Dict[str, Node] = {n.id: n for n in descendants}
    node_map[root.id] = root

    children: Dict[str, List[str]] = {}
    for edge in child_edges:
        children.setdefault(edge.ancestor, []).append(edge.descendant)

    lines = [format_node(root)]

    def _render(node_id: str, prefix: str) -> None:
        kids = [k for k in children.get(node_id, []) if k in node_map]
        for i, child_id in enumerate(kids):
            is_last = i == len(kids) - 1
            connector = "└── " if is_last else "├── "
            lines.append(f"{prefix}{connector}{format_node(node_map[child_id])}")
            _render(child_id, prefix + ("    " if is_last else "│   "))

    _render(root.id, "")
    return "\n".join(lines)

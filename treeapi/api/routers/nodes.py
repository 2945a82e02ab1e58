"""Tree endpoints for nodes.

Routes
------
POST   /nodes                          Create a node (optionally under an ancestor)
GET    /nodes                          List root nodes
GET    /nodes/{node_id}                Fetch a single node by UUID
PUT    /nodes/{node_id}                Update title / type / description
DELETE /nodes/{node_id}                Delete a node with all its descendants
GET    /nodes/{node_id}/descendants    List every node below a node
GET    /nodes/{node_id}/ancestors      List the closure edges above a node
POST   /nodes/{node_id}/move           Move a node (and its subtree) under another node

Every response uses the envelope ``{success, message, data?}``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from treeapi.db.models import ClosureEdge, Node
from treeapi.db.tree import TreeService

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class NodeCreate(BaseModel):
    title: str = Field(min_length=1)
    type: str = Field(min_length=1)
    description: Optional[str] = None
    ancestor_id: Optional[str] = None


class NodeUpdate(BaseModel):
    title: str = Field(min_length=1)
    type: str = Field(min_length=1)
    description: Optional[str] = None


class NodeMove(BaseModel):
    to_ancestor_id: str = Field(min_length=1)


class NodeResponse(BaseModel):
    id: str
    title: str
    type: str
    description: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class EdgeResponse(BaseModel):
    ancestor: str
    descendant: str
    depth: int


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str


class NodeEnvelope(MessageEnvelope):
    data: NodeResponse


class NodeListEnvelope(MessageEnvelope):
    data: list[NodeResponse]


class EdgeListEnvelope(MessageEnvelope):
    data: list[EdgeResponse]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _service(request: Request) -> TreeService:
    return TreeService(request.app.state.db)


def _node_response(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "title": node.title,
        "type": node.node_type,
        "description": node.description,
        "created_at": node.created_at,
        "updated_at": node.updated_at,
    }


def _edge_response(edge: ClosureEdge) -> dict[str, Any]:
    return {"ancestor": edge.ancestor, "descendant": edge.descendant, "depth": edge.depth}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("", response_model=NodeEnvelope, status_code=201)
def create(body: NodeCreate, request: Request) -> dict[str, Any]:
    """Create a node; with ``ancestor_id`` it becomes that node's child."""
    node = _service(request).create(
        title=body.title,
        node_type=body.type,
        description=body.description,
        ancestor_id=body.ancestor_id,
    )
    return {"success": True, "message": "Node has been created", "data": _node_response(node)}


@router.get("", response_model=NodeListEnvelope)
def root_list(request: Request) -> dict[str, Any]:
    """Return every root node, newest first."""
    roots = _service(request).roots()
    return {
        "success": True,
        "message": "List of root nodes",
        "data": [_node_response(n) for n in roots],
    }


@router.get("/{node_id}", response_model=NodeEnvelope)
def detail(node_id: str, request: Request) -> dict[str, Any]:
    node = _service(request).detail(node_id)
    return {"success": True, "message": "Detail of node", "data": _node_response(node)}


@router.put("/{node_id}", response_model=NodeEnvelope)
def update(node_id: str, body: NodeUpdate, request: Request) -> dict[str, Any]:
    """Replace title and type; description is only replaced when sent."""
    node = _service(request).update(
        node_id,
        title=body.title,
        node_type=body.type,
        description=body.description,
    )
    return {
        "success": True,
        "message": "Node detail has been updated",
        "data": _node_response(node),
    }


@router.delete("/{node_id}", response_model=MessageEnvelope)
def remove(node_id: str, request: Request) -> dict[str, Any]:
    """Delete a node and every node below it."""
    _service(request).delete(node_id)
    return {"success": True, "message": "Node with all descendants has been deleted"}


@router.get("/{node_id}/descendants", response_model=NodeListEnvelope)
def descendant_list(node_id: str, request: Request) -> dict[str, Any]:
    descendants = _service(request).descendants(node_id)
    return {
        "success": True,
        "message": "List of descendant nodes",
        "data": [_node_response(n) for n in descendants],
    }


@router.get("/{node_id}/ancestors", response_model=EdgeListEnvelope)
def ancestor_list(node_id: str, request: Request) -> dict[str, Any]:
    """Return the closure edges ending at *node_id*, self-edge first."""
    edges = _service(request).ancestors(node_id)
    return {
        "success": True,
        "message": "List of ancestor edges",
        "data": [_edge_response(e) for e in edges],
    }


@router.post("/{node_id}/move", response_model=MessageEnvelope)
def move(node_id: str, body: NodeMove, request: Request) -> dict[str, Any]:
    """Re-attach a node and its subtree under ``to_ancestor_id``."""
    _service(request).move(node_id, body.to_ancestor_id)
    return {"success": True, "message": "Node has been moved"}

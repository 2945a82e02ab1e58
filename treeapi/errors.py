"""Exception hierarchy for tree operations.

Every error carries the HTTP status it maps to, so the API layer can render
any :class:`TreeError` without knowing the concrete subclass::

    TreeError
    ├── ValidationError            400
    ├── ReferenceNotFoundError     422
    │   └── CyclicMoveError        422
    ├── NodeNotFoundError          404
    └── InfrastructureError        500
"""

from __future__ import annotations

from typing import Any, Optional


class TreeError(Exception):
    """Base class for all errors raised by the tree service."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Render the error with the standard response envelope."""
        return {"success": False, "message": self.message}


class ValidationError(TreeError):
    """The request body is malformed or misses a required field."""

    status_code = 400
    default_message = "Invalid request"


class ReferenceNotFoundError(TreeError):
    """A node referenced from the request body (an ancestor) does not exist."""

    status_code = 422
    default_message = "Ancestor node is not found"


class CyclicMoveError(ReferenceNotFoundError):
    """A move would place a node under itself or one of its descendants."""

    default_message = "Node cannot be moved under itself or its own descendant"


class NodeNotFoundError(TreeError):
    """The node addressed by the request path does not exist."""

    status_code = 404
    default_message = "Node is not found"

    def __init__(self, node_id: Optional[str] = None, message: Optional[str] = None) -> None:
        super().__init__(message, node_id=node_id)
        self.node_id = node_id


class InfrastructureError(TreeError):
    """The database failed; the surrounding transaction has been rolled back."""

    status_code = 500
    default_message = "Database operation failed"

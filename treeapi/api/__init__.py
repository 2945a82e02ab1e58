"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from treeapi.api import app

    uvicorn treeapi.api:app --reload
"""

from treeapi.api.app import app, create_app

__all__ = ["app", "create_app"]

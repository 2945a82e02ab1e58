"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``) and initialises the schema.  On
shutdown it closes the connection cleanly.

Routers
-------
    /nodes     tree operations on nodes (closure-table maintained)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from treeapi.api.errors import register_exception_handlers
from treeapi.api.routers import nodes as nodes_router
from treeapi.db import get_connection, init_db
from treeapi.logging_setup import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    configure_logging()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    logger.info("Closure Tree API started")
    try:
        yield
    finally:
        conn.close()
        logger.info("Closure Tree API stopped")


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Closure Tree API",
        description=(
            "REST interface for hierarchical data stored with a closure table. "
            "Exposes node CRUD, root and descendant listings, and subtree moves."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(nodes_router.router, prefix="/nodes", tags=["nodes"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn treeapi.api.app:app --reload
app = create_app()

"""Exception handlers rendering every failure with the response envelope.

    {"success": false, "message": "..."}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from treeapi.errors import TreeError, ValidationError

logger = logging.getLogger(__name__)


def _envelope(message: str) -> dict[str, Any]:
    return {"success": False, "message": message}


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        # Drop the leading "body" / "path" segment from the location.
        loc = [str(p) for p in error.get("loc", ()) if p not in ("body", "path", "query")]
        field = ".".join(loc)
        parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return "; ".join(parts) or ValidationError.default_message


async def tree_error_handler(request: Request, exc: TreeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = ValidationError(_describe_validation_errors(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-rendering handlers on *app*."""
    app.add_exception_handler(TreeError, tree_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

"""Logging configuration shared by the API and the CLI."""

from __future__ import annotations

import logging
from typing import Optional

from treeapi.config import settings

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the ``treeapi`` logger.

    Calling it more than once only updates the level.
    """
    logger = logging.getLogger("treeapi")
    logger.setLevel((level or settings.log_level).upper())

    if not any(getattr(h, "_treeapi_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._treeapi_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger

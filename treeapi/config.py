"""Centralised settings for the Closure Tree service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("TREE_WORKSPACE", Path.home() / ".closure_tree")
        )
    )
    db_name: str = field(
        default_factory=lambda: os.environ.get("TREE_DB_NAME", "tree.db")
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / self.db_name

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # HTTP server
    # ------------------------------------------------------------------
    api_host: str = field(
        default_factory=lambda: os.environ.get("TREE_API_HOST", "127.0.0.1")
    )
    api_port: int = field(
        default_factory=lambda: int(os.environ.get("TREE_API_PORT", "8000"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("TREE_LOG_LEVEL", "INFO").upper()
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from treeapi.config import settings
settings = Settings()

"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current time, the value stored in ``*_at`` columns."""
    return datetime.now(timezone.utc)


@dataclass
class Node:
    id: str
    title: str
    node_type: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ClosureEdge:
    """``descendant`` sits ``depth`` levels below ``ancestor`` (0 = itself)."""

    ancestor: str
    descendant: str
    depth: int

    @property
    def is_self(self) -> bool:
        return self.ancestor == self.descendant

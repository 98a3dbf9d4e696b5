"""Exception hierarchy for tree index construction and splitting.

Structural problems (bad input tables, impossible cut levels) are raised at
the call that received them. Stale or unknown node overrides are raised only
inside override resolution and absorbed there, so a split never aborts
because a caller referenced a node that a subset dropped.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class TreeIndexError(Exception):
    """Base exception for all tree index errors.

    Attributes:
        message: Human-readable error description
        details: Additional debugging information
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class InvalidHierarchyInput(TreeIndexError, ValueError):
    """The hierarchy table cannot produce a usable catalog."""


class LevelOutOfRange(TreeIndexError, ValueError):
    """A requested tree level is below 1 or deeper than the tree."""

    def __init__(self, level: Any, height: int) -> None:
        super().__init__(
            f"level {level!r} is out of range; tree height is {height} (valid levels: 1..{height})",
            {"level": level, "height": height},
        )
        self.level = level
        self.height = height


class UnknownNodeOverride(TreeIndexError, KeyError):
    """A node state override references an id missing from the catalog."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"unknown node id in overrides: {node_id!r}", {"node_id": node_id})
        self.node_id = node_id


class InvalidNodeState(TreeIndexError, ValueError):
    """A node state override value is not one of removed/expanded/aggregated."""

"""Data models for hierarchy nodes and split results."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Tuple


class NodeState(IntEnum):
    """Per-node behavior at a level cut."""

    REMOVED = 0  # Drop the node and its whole subtree
    EXPANDED = 1  # Replace the node with its direct children
    AGGREGATED = 2  # Collapse the subtree into one group (default at the cut)


# Public name -> code table; other components reference states by these values.
NODE_STATES: Dict[str, int] = {
    "removed": int(NodeState.REMOVED),
    "expanded": int(NodeState.EXPANDED),
    "aggregated": int(NodeState.AGGREGATED),
}


@dataclass(frozen=True)
class Node:
    """A distinct category at one hierarchy level."""

    id: str  # "n{level}_{digest}"
    parent: Optional[str]  # None at level 1
    lineage: Tuple[str, ...]  # Ancestor ids, root first, ending with this node's id
    label: str  # Raw column value
    level: int  # 1 = coarsest

    @property
    def ancestors(self) -> Tuple[str, ...]:
        """Strict ancestors, root first."""
        return self.lineage[:-1]

    def lineage_string(self, delimiter: str = ",") -> str:
        return delimiter.join(self.lineage)


@dataclass
class SplitGroup:
    """One group emitted by a split: a surviving node and its member leaves."""

    node: Node
    otu_indices: List[int]
    leaf_keys: List[str]

    @property
    def size(self) -> int:
        return len(self.otu_indices)


@dataclass
class SplitResult:
    """Format-independent outcome of a split."""

    selected_level: int
    start: int
    end: int
    groups: List[SplitGroup] = field(default_factory=list)
    removed_ids: List[str] = field(default_factory=list)  # Explicitly removed nodes that were known
    ignored_ids: List[str] = field(default_factory=list)  # Override ids missing from the catalog

    @property
    def n_leaves(self) -> int:
        return sum(group.size for group in self.groups)

    @property
    def is_empty(self) -> bool:
        return not self.groups

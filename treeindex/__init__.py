"""Indexed leveled hierarchies with level-cut leaf grouping."""
from treeindex.errors import (
    InvalidHierarchyInput,
    InvalidNodeState,
    LevelOutOfRange,
    TreeIndexError,
    UnknownNodeOverride,
)
from treeindex.hierarchy import (
    HierarchyTable,
    Node,
    NodeCatalog,
    NodeState,
    TreeIndex,
    split_at,
)

__version__ = "0.1.0"

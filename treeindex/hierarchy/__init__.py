"""Hierarchy package: tree index construction and level-cut splitting."""
from treeindex.hierarchy.models import (
    NODE_STATES,
    Node,
    NodeState,
    SplitGroup,
    SplitResult,
)
from treeindex.hierarchy.table import HierarchyTable, OTU_INDEX_COLUMN
from treeindex.hierarchy.catalog import NodeCatalog, make_node_id
from treeindex.hierarchy.splitter import (
    normalize_state,
    resolve_frontier,
    resolve_overrides,
    split_at,
)
from treeindex.hierarchy.formats import FORMATS, make_names, make_unique
from treeindex.hierarchy.index import TreeIndex

"""Split a tree index into leaf groups at a level cut.

Every node at the selected level starts out aggregated. Callers layer sparse
per-node overrides on top:

- removed: the node and its whole subtree disappear from every output.
- expanded: the node is replaced by its direct children, each aggregated
  unless overridden too. Expansion goes exactly one level per override; a
  grandchild only shows up if its parent is also marked expanded.
- aggregated: the node's subtree collapses into one group. A node below an
  aggregated node is absorbed by it and never forms its own group.

Expanding a node above the cut therefore coarsens its subtree: the promoted
children are aggregated by default and absorb the level nodes beneath them.
To get finer groups under such a node, mark the children expanded as well.

Removal wins over aggregation: leaves under a removed node are dropped even
when an aggregated ancestor survives as a group.
"""
from __future__ import annotations

import logging
import numbers
import time
from collections import deque
from typing import Dict, List, Mapping, Optional, Set, Tuple

from treeindex.config import get_split_settings
from treeindex.errors import InvalidNodeState, UnknownNodeOverride
from treeindex.hierarchy.catalog import NodeCatalog
from treeindex.hierarchy.formats import FORMATS, render
from treeindex.hierarchy.models import NodeState, SplitGroup, SplitResult
from treeindex.hierarchy.table import OTU_INDEX_COLUMN
from treeindex.hierarchy.traversal import has_ancestor_in

logger = logging.getLogger(__name__)

_STATE_ALIASES = {
    "removed": NodeState.REMOVED,
    "remove": NodeState.REMOVED,
    "expanded": NodeState.EXPANDED,
    "expand": NodeState.EXPANDED,
    "aggregated": NodeState.AGGREGATED,
    "aggregate": NodeState.AGGREGATED,
}


def normalize_state(value) -> NodeState:
    """Coerce a NodeState, its integer code or its name to a NodeState."""
    if isinstance(value, NodeState):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _STATE_ALIASES:
            return _STATE_ALIASES[key]
        if key.isdigit():
            value = int(key)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        try:
            return NodeState(int(value))
        except ValueError:
            pass
    raise InvalidNodeState(
        f"invalid node state: {value!r}; expected one of {[s.name.lower() for s in NodeState]} or 0/1/2"
    )


def _check_known(catalog: NodeCatalog, node_id: str) -> str:
    if node_id not in catalog:
        raise UnknownNodeOverride(node_id)
    return node_id


def resolve_overrides(
    catalog: NodeCatalog,
    selected_nodes: Optional[Mapping[str, object]],
) -> Tuple[Dict[str, NodeState], List[str]]:
    """Normalize overrides and drop ids the catalog does not know.

    Returns (known overrides, ignored ids). Invalid state values raise.
    """
    overrides: Dict[str, NodeState] = {}
    ignored: List[str] = []
    for node_id, value in (selected_nodes or {}).items():
        state = normalize_state(value)
        try:
            overrides[_check_known(catalog, node_id)] = state
        except UnknownNodeOverride as exc:
            logger.warning("Ignoring override %s=%s: %s", node_id, state.name.lower(), exc)
            ignored.append(node_id)
    return overrides, ignored


def resolve_frontier(
    catalog: NodeCatalog,
    selected_level: int,
    overrides: Mapping[str, NodeState],
) -> Tuple[List[str], Set[str]]:
    """Surviving group node ids and the set of removed node ids.

    Survivors are returned in catalog order and never contain a node together
    with one of its ancestors.
    """
    states: Dict[str, NodeState] = {
        node.id: NodeState.AGGREGATED for node in catalog.nodes_at_level(selected_level)
    }
    states.update(overrides)

    # Level nodes first, then override-named nodes at any depth
    queue = deque(states)
    seen: Set[str] = set()
    frontier: List[str] = []
    while queue:
        node_id = queue.popleft()
        if node_id in seen:
            continue
        seen.add(node_id)
        if states[node_id] is NodeState.EXPANDED:
            children = catalog.children(node_id)
            logger.debug("Expanding %s into %d children", node_id, len(children))
            for child in children:
                states.setdefault(child.id, NodeState.AGGREGATED)
                queue.append(child.id)
            continue
        frontier.append(node_id)

    removed = {node_id for node_id, state in states.items() if state is NodeState.REMOVED}
    aggregated = {node_id for node_id, state in states.items() if state is NodeState.AGGREGATED}

    kept = []
    for node_id in frontier:
        node = catalog.get(node_id)
        if node_id in removed or has_ancestor_in(node, removed):
            continue
        # An aggregated ancestor already represents this node
        if has_ancestor_in(node, aggregated):
            continue
        kept.append(node_id)

    order = {node.id: position for position, node in enumerate(catalog)}
    kept.sort(key=order.__getitem__)
    return kept, removed


def collect_groups(
    tree,
    survivors: List[str],
    removed: Set[str],
    start: int,
    end: int,
) -> List[SplitGroup]:
    """Assign in-range leaves to surviving nodes, ordered by ``otu_index``."""
    catalog = tree.catalog
    survivor_set = set(survivors)
    leaf_column = tree.hierarchy.leaf_column
    in_range = tree.hierarchy.rows_in_range(start, end, [leaf_column, OTU_INDEX_COLUMN])

    groups: Dict[str, SplitGroup] = {}
    for leaf_key, otu_index in zip(in_range[leaf_column], in_range[OTU_INDEX_COLUMN]):
        lineage = catalog.leaf_lineage(leaf_key)
        if removed and any(node_id in removed for node_id in lineage):
            continue
        group_id = next((node_id for node_id in lineage if node_id in survivor_set), None)
        if group_id is None:
            continue
        group = groups.get(group_id)
        if group is None:
            group = groups[group_id] = SplitGroup(node=catalog.get(group_id), otu_indices=[], leaf_keys=[])
        group.otu_indices.append(int(otu_index))
        group.leaf_keys.append(leaf_key)

    return list(groups.values())


def split_at(
    tree,
    selected_level: Optional[int] = None,
    selected_nodes: Optional[Mapping[str, object]] = None,
    start: int = 1,
    end: Optional[int] = None,
    format: str = "list",
):
    """Divide a TreeIndex into leaf groups.

    Args:
        tree: TreeIndex to split
        selected_level: 1-based level of the cut; defaults to TREEINDEX_DEFAULT_LEVEL (3)
        selected_nodes: sparse node id -> state overrides (NodeState, 0/1/2 or name)
        start, end: inclusive ``otu_index`` range of leaves to keep; end defaults to N
        format: "list", "dataframe", "aggTable", "TreeIndex" or "groups"

    Returns:
        The groups rendered in the requested format. A split with no
        surviving leaves returns the empty form of that format.

    Raises:
        LevelOutOfRange: selected_level is below 1 or deeper than the tree
        InvalidNodeState: an override value is not a known state
        ValueError: unknown format
    """
    if format not in FORMATS:
        raise ValueError(f"unknown split format {format!r}; expected one of {list(FORMATS)}")
    if selected_level is None:
        selected_level = get_split_settings().default_level
    selected_level = tree.check_level(selected_level)
    if end is None:
        end = len(tree)

    t_start = time.time()
    overrides, ignored = resolve_overrides(tree.catalog, selected_nodes)
    survivors, removed = resolve_frontier(tree.catalog, selected_level, overrides)
    groups = collect_groups(tree, survivors, removed, int(start), int(end))

    result = SplitResult(
        selected_level=selected_level,
        start=int(start),
        end=int(end),
        groups=groups,
        removed_ids=sorted(removed),
        ignored_ids=ignored,
    )
    logger.info(
        "Split at level %d: %d groups, %d leaves in range [%d, %d], %d overrides (%d ignored)",
        selected_level, len(groups), result.n_leaves, result.start, result.end,
        len(overrides), len(ignored),
    )
    if result.is_empty:
        logger.info("Split at level %d produced no groups", selected_level)
    logger.info("split timing: resolve+collect=%.3fs", time.time() - t_start)

    return render(tree, result, format)

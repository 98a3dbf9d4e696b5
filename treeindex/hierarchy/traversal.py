"""Tree traversal utilities over a node catalog.

Ancestry is answered from each node's lineage tuple, so containment is
always anchored on whole node ids.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Set

import networkx as nx

from treeindex.hierarchy.catalog import NodeCatalog
from treeindex.hierarchy.models import Node


def get_parent(catalog: NodeCatalog, node_id: str) -> Optional[Node]:
    """Get parent of a node, or None at level 1."""
    parent_id = catalog.get(node_id).parent
    return catalog.get(parent_id) if parent_id is not None else None


def get_children(catalog: NodeCatalog, node_id: str) -> List[Node]:
    """Get direct children of a node."""
    return catalog.children(node_id)


def get_ancestors(catalog: NodeCatalog, node_id: str) -> List[Node]:
    """Strict ancestors of a node, root first."""
    return [catalog.get(ancestor_id) for ancestor_id in catalog.get(node_id).ancestors]


def get_descendants(catalog: NodeCatalog, node_id: str) -> Set[str]:
    """Ids of every node strictly below ``node_id``."""
    return set(nx.descendants(catalog.graph, node_id))


def is_descendant(catalog: NodeCatalog, node_id: str, ancestor_id: str) -> bool:
    """Check if node_id is a descendant of ancestor_id (or equal to it)."""
    return ancestor_id in catalog.get(node_id).lineage


def has_ancestor_in(node: Node, ancestor_ids: Iterable[str]) -> bool:
    """True if any strict ancestor of ``node`` is in ``ancestor_ids``."""
    ancestor_ids = ancestor_ids if isinstance(ancestor_ids, (set, frozenset)) else set(ancestor_ids)
    return any(ancestor in ancestor_ids for ancestor in node.ancestors)


def subtree_size(catalog: NodeCatalog, node_id: str) -> int:
    """Number of leaves under a node."""
    return len(catalog.leaves_under(node_id))

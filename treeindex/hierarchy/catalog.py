"""Node catalog construction from a hierarchy table."""
from __future__ import annotations

import hashlib
import logging
import time
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import networkx as nx

from treeindex.config import get_split_settings
from treeindex.errors import InvalidHierarchyInput
from treeindex.hierarchy.models import Node
from treeindex.hierarchy.table import HierarchyTable

logger = logging.getLogger(__name__)

_PATH_SEPARATOR = "\x1f"


def make_node_id(level: int, path: Sequence[str], digest_length: Optional[int] = None) -> str:
    """Deterministic node id for the ancestor path ``path`` ending at ``level``.

    The id depends only on the level and the values along the path, so two
    equal labels under different parents get different ids and rebuilding
    from the same table reproduces the same ids.
    """
    if digest_length is None:
        digest_length = get_split_settings().node_id_digest
    key = f"{level}{_PATH_SEPARATOR}" + _PATH_SEPARATOR.join(path)
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:digest_length]
    return f"n{level}_{digest}"


class NodeCatalog:
    """Every distinct (level, ancestor path) of a hierarchy as a node.

    Also holds the leaf membership: for each leaf key, the id of the node at
    the deepest level that the leaf belongs to.
    """

    def __init__(
        self,
        nodes: Iterable[Node],
        leaf_membership: Mapping[str, str],
        leaf_order: Mapping[str, int],
        height: int,
    ):
        self._nodes: Dict[str, Node] = {}
        self._by_level: Dict[int, List[str]] = {level: [] for level in range(1, height + 1)}
        self._graph = nx.DiGraph()
        for node in nodes:
            self._nodes[node.id] = node
            self._by_level[node.level].append(node.id)
            self._graph.add_node(node.id)
            if node.parent is not None:
                self._graph.add_edge(node.parent, node.id)

        self._leaf_membership: Dict[str, str] = dict(leaf_membership)
        self._leaf_order: Dict[str, int] = dict(leaf_order)
        self._height = height

        # Leaf keys under each deepest-level node, in otu_index order
        self._leaves_by_node: Dict[str, List[str]] = {}
        for leaf in sorted(self._leaf_membership, key=self._leaf_order.__getitem__):
            self._leaves_by_node.setdefault(self._leaf_membership[leaf], []).append(leaf)

    @classmethod
    def from_table(cls, table: HierarchyTable, digest_length: Optional[int] = None) -> "NodeCatalog":
        """Build the catalog level by level, top-down."""
        if digest_length is None:
            digest_length = get_split_settings().node_id_digest
        if table.n_leaves == 0:
            raise InvalidHierarchyInput("cannot build a node catalog from an empty hierarchy")

        t_start = time.time()
        nodes: List[Node] = []
        path_to_node: Dict[Tuple[str, ...], Node] = {}
        leaf_membership: Dict[str, str] = {}
        leaf_order: Dict[str, int] = {}

        rows = table.level_values()
        height = table.height
        # Level-major scan keeps every level's nodes in first-seen row order
        for level in range(1, height + 1):
            for values in rows:
                path = tuple(values[:level])
                if path in path_to_node:
                    continue
                parent = path_to_node[path[:-1]] if level > 1 else None
                node_id = make_node_id(level, path, digest_length)
                lineage = (parent.lineage if parent else ()) + (node_id,)
                node = Node(
                    id=node_id,
                    parent=parent.id if parent else None,
                    lineage=lineage,
                    label=path[-1],
                    level=level,
                )
                path_to_node[path] = node
                nodes.append(node)

        for values, otu_index in zip(rows, table.otu_indices):
            leaf_key = values[-1]
            leaf_membership[leaf_key] = path_to_node[tuple(values)].id
            leaf_order[leaf_key] = otu_index

        ids = [node.id for node in nodes]
        if len(set(ids)) != len(ids):
            raise InvalidHierarchyInput(
                "node id collision; increase TREEINDEX_NODE_ID_DIGEST",
                {"digest_length": digest_length},
            )

        catalog = cls(nodes, leaf_membership, leaf_order, height)
        logger.info(
            "Built node catalog: %d nodes over %d levels, %d leaves",
            len(nodes), height, len(leaf_membership),
        )
        logger.info("catalog timing: build=%.3fs", time.time() - t_start)
        return catalog

    @property
    def height(self) -> int:
        return self._height

    @property
    def graph(self) -> nx.DiGraph:
        """Parent -> child edges; read-only view."""
        return self._graph.copy(as_view=True)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id) -> bool:
        return node_id in self._nodes

    def __iter__(self):
        return iter(self._nodes.values())

    def get(self, node_id: str) -> Node:
        """Node by id; raises KeyError for unknown ids."""
        return self._nodes[node_id]

    def nodes_at_level(self, level: int) -> List[Node]:
        return [self._nodes[node_id] for node_id in self._by_level.get(level, [])]

    def children(self, node_id: str) -> List[Node]:
        """Direct children in catalog order."""
        if node_id not in self._nodes:
            return []
        child_ids = set(self._graph.successors(node_id))
        level = self._nodes[node_id].level + 1
        return [self._nodes[cid] for cid in self._by_level.get(level, []) if cid in child_ids]

    @property
    def leaf_membership(self) -> Dict[str, str]:
        """leaf key -> deepest-level node id."""
        return dict(self._leaf_membership)

    def otu_index(self, leaf_key: str) -> int:
        return self._leaf_order[leaf_key]

    def leaves_under(self, node_id: str) -> List[str]:
        """Leaf keys in the subtree of ``node_id``, in ``otu_index`` order."""
        node = self._nodes[node_id]
        if node.level == self._height:
            return list(self._leaves_by_node.get(node_id, []))
        descendants = nx.descendants(self._graph, node_id)
        leaves = [
            leaf
            for deepest in self._by_level[self._height]
            if deepest in descendants
            for leaf in self._leaves_by_node.get(deepest, [])
        ]
        return sorted(leaves, key=self._leaf_order.__getitem__)

    def leaf_lineage(self, leaf_key: str) -> Tuple[str, ...]:
        """Node ids from the root down to the leaf's deepest node."""
        return self._nodes[self._leaf_membership[leaf_key]].lineage

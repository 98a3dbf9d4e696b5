"""TreeIndex: a hierarchy table, its node catalog and leaf membership."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from treeindex.config import get_split_settings
from treeindex.errors import LevelOutOfRange
from treeindex.hierarchy.catalog import NodeCatalog
from treeindex.hierarchy.formats import make_unique
from treeindex.hierarchy.models import NODE_STATES, Node
from treeindex.hierarchy.splitter import split_at
from treeindex.hierarchy.table import HierarchyTable

logger = logging.getLogger(__name__)

_ALL_NODE_COLUMNS = ["id", "lineage", "label", "level"]
_LEVEL_NODE_COLUMNS = ["id", "label"]


class TreeIndex:
    """Immutable index over a leveled hierarchy.

    Build one from a DataFrame whose columns are hierarchy levels ordered
    coarsest to finest, the last level naming the leaf::

        tree = TreeIndex(frame, feature_order=["Kingdom", "Phylum", "Genus", "OTU"])
        tree.split_at(2)

    Subsetting and ``split_at(format="TreeIndex")`` return new instances with a
    freshly derived catalog; nothing is mutated in place.
    """

    def __init__(
        self,
        hierarchy: Union[pd.DataFrame, HierarchyTable],
        feature_order: Optional[Sequence[str]] = None,
    ):
        if isinstance(hierarchy, HierarchyTable):
            table = hierarchy
            if feature_order is not None and list(feature_order) != table.feature_order:
                table = HierarchyTable(table.select(), feature_order)
        else:
            table = HierarchyTable(hierarchy, feature_order)

        settings = get_split_settings()
        self._table = table
        self._catalog = NodeCatalog.from_table(table, settings.node_id_digest)
        self._delimiter = settings.lineage_delimiter

    @property
    def hierarchy(self) -> HierarchyTable:
        return self._table

    @property
    def catalog(self) -> NodeCatalog:
        return self._catalog

    @property
    def feature_order(self) -> List[str]:
        return self._table.feature_order

    @property
    def height(self) -> int:
        return self._table.height

    @property
    def lineage_delimiter(self) -> str:
        return self._delimiter

    def __len__(self) -> int:
        return len(self._table)

    @property
    def leaf_membership(self) -> Dict[str, str]:
        return self._catalog.leaf_membership

    def check_level(self, level) -> int:
        """Validate a 1-based level against the tree height."""
        if isinstance(level, bool) or not isinstance(level, (int, np.integer)):
            raise LevelOutOfRange(level, self.height)
        if level < 1 or level > self.height:
            raise LevelOutOfRange(level, self.height)
        return int(level)

    def node(self, node_id: str) -> Node:
        return self._catalog.get(node_id)

    def get_nodes(self, level: Optional[int] = None) -> pd.DataFrame:
        """Nodes of the tree as a table.

        Without ``level``: one row per node with id, lineage, label and level.
        With ``level``: distinct id/label pairs at that level (empty when the
        level holds no nodes).
        """
        if level is None:
            records = [
                {
                    "id": node.id,
                    "lineage": node.lineage_string(self._delimiter),
                    "label": node.label,
                    "level": node.level,
                }
                for node in self._catalog
            ]
            return pd.DataFrame(records, columns=_ALL_NODE_COLUMNS).drop_duplicates(ignore_index=True)

        records = [{"id": node.id, "label": node.label} for node in self._catalog.nodes_at_level(level)]
        return pd.DataFrame(records, columns=_LEVEL_NODE_COLUMNS).drop_duplicates(ignore_index=True)

    @staticmethod
    def get_node_states() -> Dict[str, int]:
        """Node state codes: removed 0, expanded 1, aggregated 2."""
        return dict(NODE_STATES)

    def leaves_of(self, node_id: str) -> List[int]:
        """Sorted ``otu_index`` values of the leaves under a node."""
        return [self._catalog.otu_index(leaf) for leaf in self._catalog.leaves_under(node_id)]

    def subset(self, rows=None, columns=None) -> "TreeIndex":
        """New TreeIndex over selected rows and level columns.

        Rows are 0-based positions, a slice or a boolean mask. Columns are
        level names or 0-based positions; they keep the tree's level order and
        the last one kept becomes the leaf column. Repeated leaf labels are
        suffixed ``.1``, ``.2`` as in ``split_at(format="TreeIndex")``.
        """
        if columns is None:
            selected_columns = self.feature_order
        else:
            if isinstance(columns, (str, int, np.integer)):
                columns = [columns]
            wanted = set()
            for col in columns:
                if isinstance(col, (int, np.integer)) and not isinstance(col, bool):
                    wanted.add(self.feature_order[col])
                else:
                    wanted.add(str(col))
            unknown = wanted.difference(self.feature_order)
            if unknown:
                raise KeyError(f"unknown level columns: {sorted(unknown)}")
            selected_columns = [col for col in self.feature_order if col in wanted]

        frame = self._table.select(rows, selected_columns)
        frame = frame[~frame.duplicated(keep="first")].copy()
        # A coarser leaf column can repeat a label under different parents
        leaf_column = selected_columns[-1]
        frame[leaf_column] = make_unique(frame[leaf_column].tolist())
        logger.debug("Subsetting tree: %d rows x %d levels", len(frame), len(selected_columns))
        return self.__class__(frame, feature_order=selected_columns)

    def __getitem__(self, key) -> "TreeIndex":
        if isinstance(key, tuple):
            if len(key) != 2:
                raise IndexError("TreeIndex takes tree[rows] or tree[rows, columns]")
            rows, columns = key
        else:
            rows, columns = key, None
        if isinstance(rows, slice) and rows == slice(None):
            rows = None
        if isinstance(columns, slice) and columns == slice(None):
            columns = None
        elif isinstance(columns, slice):
            columns = self.feature_order[columns]
        return self.subset(rows, columns)

    def split_at(
        self,
        selected_level: Optional[int] = None,
        selected_nodes: Optional[Mapping[str, object]] = None,
        start: int = 1,
        end: Optional[int] = None,
        format: str = "list",
    ):
        """Group leaves at a level cut with per-node overrides.

        See :func:`treeindex.hierarchy.splitter.split_at`.
        """
        return split_at(
            self,
            selected_level=selected_level,
            selected_nodes=selected_nodes,
            start=start,
            end=end,
            format=format,
        )

    def describe(self) -> str:
        return (
            f"Tree Index with height: {self.height}\n"
            f" Tree levels: {' -> '.join(self.feature_order)}\n"
            f" Leaf nodes: {len(self)}"
        )

    def __repr__(self) -> str:
        return (
            f"TreeIndex(height={self.height}, levels={' -> '.join(self.feature_order)}, "
            f"leaves={len(self)}, nodes={len(self._catalog)})"
        )

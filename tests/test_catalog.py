"""Tests for treeindex/hierarchy/catalog.py and traversal.py.

These tests verify node identity, parent links and lineage paths, plus the
ancestor queries built on top of them.
"""
from __future__ import annotations

import pandas as pd
import pytest

from treeindex.hierarchy.catalog import NodeCatalog, make_node_id
from treeindex.hierarchy.table import HierarchyTable
from treeindex.hierarchy.traversal import (
    get_ancestors,
    get_children,
    get_descendants,
    get_parent,
    has_ancestor_in,
    is_descendant,
    subtree_size,
)

from conftest import TAXONOMY_LEVELS


@pytest.fixture
def catalog(taxonomy_frame) -> NodeCatalog:
    return NodeCatalog.from_table(HierarchyTable(taxonomy_frame, TAXONOMY_LEVELS))


@pytest.fixture
def collision_catalog(collision_frame) -> NodeCatalog:
    return NodeCatalog.from_table(HierarchyTable(collision_frame, TAXONOMY_LEVELS))


def _by_label(catalog, level, label):
    matches = [node for node in catalog.nodes_at_level(level) if node.label == label]
    assert len(matches) == 1
    return matches[0]


@pytest.mark.unit
class TestNodeIds:
    """Ids are a deterministic function of level and ancestor path."""

    def test_same_input_same_ids(self, taxonomy_frame):
        first = NodeCatalog.from_table(HierarchyTable(taxonomy_frame, TAXONOMY_LEVELS))
        second = NodeCatalog.from_table(HierarchyTable(taxonomy_frame.copy(), TAXONOMY_LEVELS))

        assert [node.id for node in first] == [node.id for node in second]

    def test_ids_do_not_depend_on_row_order(self, taxonomy_frame):
        forward = NodeCatalog.from_table(HierarchyTable(taxonomy_frame, TAXONOMY_LEVELS))
        backward = NodeCatalog.from_table(HierarchyTable(taxonomy_frame.iloc[::-1], TAXONOMY_LEVELS))

        assert {node.id for node in forward} == {node.id for node in backward}

    def test_id_encodes_level(self):
        assert make_node_id(2, ("Bacteria", "Firmicutes"), 12).startswith("n2_")
        assert len(make_node_id(2, ("Bacteria", "Firmicutes"), 12)) == len("n2_") + 12

    def test_colliding_labels_get_distinct_ids(self, collision_catalog):
        unclassified = [node for node in collision_catalog.nodes_at_level(3) if node.label == "unclassified"]

        assert len(unclassified) == 2
        assert unclassified[0].id != unclassified[1].id
        assert unclassified[0].parent != unclassified[1].parent

    def test_ids_unique_across_catalog(self, collision_catalog):
        ids = [node.id for node in collision_catalog]
        assert len(ids) == len(set(ids))


@pytest.mark.unit
class TestNodeStructure:
    """Parent links, levels and lineage invariants."""

    def test_node_counts_per_level(self, catalog):
        assert len(catalog.nodes_at_level(1)) == 1
        assert len(catalog.nodes_at_level(2)) == 2
        assert len(catalog.nodes_at_level(3)) == 4
        assert len(catalog.nodes_at_level(4)) == 5
        assert len(catalog) == 12

    def test_root_level_has_no_parent(self, catalog):
        root = catalog.nodes_at_level(1)[0]

        assert root.parent is None
        assert root.lineage == (root.id,)

    def test_lineage_extends_parent_lineage(self, collision_catalog):
        for node in collision_catalog:
            if node.parent is None:
                assert node.level == 1
                continue
            parent = collision_catalog.get(node.parent)
            assert node.lineage == parent.lineage + (node.id,)
            assert node.level == parent.level + 1

    def test_nodes_keep_first_seen_order(self, catalog):
        labels = [node.label for node in catalog.nodes_at_level(2)]
        assert labels == ["Firmicutes", "Bacteroidetes"]

    def test_lineage_string_uses_delimiter(self, catalog):
        genus = _by_label(catalog, 3, "Prevotella")

        assert genus.lineage_string("|") == "|".join(genus.lineage)
        assert genus.lineage_string().count(",") == 2

    def test_every_node_has_a_leaf(self, collision_catalog):
        for node in collision_catalog:
            assert collision_catalog.leaves_under(node.id), node

    def test_empty_table_is_rejected(self):
        # HierarchyTable itself refuses, so nothing partial can reach the catalog
        from treeindex.errors import InvalidHierarchyInput

        with pytest.raises(InvalidHierarchyInput):
            NodeCatalog.from_table(HierarchyTable(pd.DataFrame({"OTU": []})))


@pytest.mark.unit
class TestLeafMembership:
    """Leaf key -> deepest node mapping."""

    def test_membership_points_at_deepest_level(self, catalog):
        membership = catalog.leaf_membership

        assert set(membership) == {"otu1", "otu2", "otu3", "otu4", "otu5"}
        for leaf, node_id in membership.items():
            node = catalog.get(node_id)
            assert node.level == 4
            assert node.label == leaf

    def test_leaves_under_are_in_otu_order(self, catalog):
        firmicutes = _by_label(catalog, 2, "Firmicutes")

        assert catalog.leaves_under(firmicutes.id) == ["otu1", "otu3", "otu5"]
        assert [catalog.otu_index(leaf) for leaf in catalog.leaves_under(firmicutes.id)] == [1, 3, 5]

    def test_leaf_lineage_runs_root_to_leaf(self, catalog):
        lineage = catalog.leaf_lineage("otu4")

        assert [catalog.get(node_id).label for node_id in lineage] == [
            "Bacteria", "Bacteroidetes", "Prevotella", "otu4",
        ]


@pytest.mark.unit
class TestTraversal:
    """Ancestor and descendant queries."""

    def test_parent_and_children(self, catalog):
        firmicutes = _by_label(catalog, 2, "Firmicutes")

        assert get_parent(catalog, firmicutes.id).label == "Bacteria"
        assert [child.label for child in get_children(catalog, firmicutes.id)] == [
            "Clostridium", "Lactobacillus",
        ]
        assert get_parent(catalog, catalog.nodes_at_level(1)[0].id) is None

    def test_children_of_deepest_node_is_empty(self, catalog):
        leaf_node = catalog.nodes_at_level(4)[0]
        assert get_children(catalog, leaf_node.id) == []

    def test_ancestors_root_first(self, catalog):
        genus = _by_label(catalog, 3, "Bacteroides")

        assert [node.label for node in get_ancestors(catalog, genus.id)] == ["Bacteria", "Bacteroidetes"]

    def test_descendants(self, catalog):
        bacteroidetes = _by_label(catalog, 2, "Bacteroidetes")

        labels = {catalog.get(node_id).label for node_id in get_descendants(catalog, bacteroidetes.id)}
        assert labels == {"Bacteroides", "Prevotella", "otu2", "otu4"}

    def test_is_descendant_includes_self(self, catalog):
        firmicutes = _by_label(catalog, 2, "Firmicutes")
        clostridium = _by_label(catalog, 3, "Clostridium")
        prevotella = _by_label(catalog, 3, "Prevotella")

        assert is_descendant(catalog, clostridium.id, firmicutes.id)
        assert is_descendant(catalog, firmicutes.id, firmicutes.id)
        assert not is_descendant(catalog, prevotella.id, firmicutes.id)

    def test_ancestor_check_matches_whole_ids(self, catalog):
        """An id that is a prefix of another id is not its ancestor."""
        clostridium = _by_label(catalog, 3, "Clostridium")
        truncated = clostridium.ancestors[-1][:-1]

        assert has_ancestor_in(clostridium, {clostridium.ancestors[-1]})
        assert not has_ancestor_in(clostridium, {truncated})
        assert not has_ancestor_in(clostridium, {clostridium.id})

    def test_subtree_size(self, catalog):
        assert subtree_size(catalog, catalog.nodes_at_level(1)[0].id) == 5
        assert subtree_size(catalog, _by_label(catalog, 3, "Clostridium").id) == 2

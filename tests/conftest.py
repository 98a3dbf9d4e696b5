"""Shared pytest configuration and fixtures for the test suite.

This module centralizes:
- Path setup (so `treeindex` and `scripts` import without installation)
- Pytest markers for test categorization
- Small hierarchy tables used across the tree index and splitter tests
"""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


# ==============================================================================
# Path Setup - Ensures treeindex/ is importable
# ==============================================================================

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# ==============================================================================
# Pytest Configuration
# ==============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Fast tests with no I/O",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests touching the file system (CSV input, log files)",
    )


# ==============================================================================
# Hierarchy Fixtures
# ==============================================================================

TAXONOMY_LEVELS = ["Kingdom", "Phylum", "Genus", "OTU"]


@pytest.fixture
def taxonomy_frame() -> pd.DataFrame:
    """Five OTUs, one kingdom, two phyla.

    Tree structure:
                    Bacteria
                   /        \\
           Firmicutes      Bacteroidetes
            /      \\         /       \\
    Clostridium  Lactobacillus  Bacteroides  Prevotella
      otu1 otu5     otu3          otu2         otu4
    """
    return pd.DataFrame(
        {
            "Kingdom": ["Bacteria"] * 5,
            "Phylum": ["Firmicutes", "Bacteroidetes", "Firmicutes", "Bacteroidetes", "Firmicutes"],
            "Genus": ["Clostridium", "Bacteroides", "Lactobacillus", "Prevotella", "Clostridium"],
            "OTU": ["otu1", "otu2", "otu3", "otu4", "otu5"],
        },
        index=[f"row{i}" for i in range(1, 6)],
    )


@pytest.fixture
def taxonomy_tree(taxonomy_frame):
    from treeindex.hierarchy import TreeIndex

    return TreeIndex(taxonomy_frame, feature_order=TAXONOMY_LEVELS)


@pytest.fixture
def collision_frame() -> pd.DataFrame:
    """Two kingdoms, repeated genus labels across phyla, and one incomplete row.

    "unclassified" appears as a genus under both Proteobacteria and
    Euryarchaeota; the row with a missing Phylum is dropped on load.
    """
    return pd.DataFrame(
        {
            "Kingdom": ["Bacteria", "Bacteria", "Archaea", "Bacteria", "Archaea", "Bacteria", "Bacteria"],
            "Phylum": [
                "Proteobacteria", "Proteobacteria", "Euryarchaeota", np.nan,
                "Euryarchaeota", "Actinobacteria", "Proteobacteria",
            ],
            "Genus": [
                "Escherichia", "unclassified", "unclassified", "Orphan",
                "Methanobrevibacter", "Bifidobacterium", "Escherichia",
            ],
            "OTU": ["a1", "a2", "a3", "a4", "a5", "a6", "a7"],
        }
    )


@pytest.fixture
def collision_tree(collision_frame):
    from treeindex.hierarchy import TreeIndex

    return TreeIndex(collision_frame, feature_order=TAXONOMY_LEVELS)


def node_id_for(tree, level: int, label: str) -> str:
    """Id of the single node with ``label`` at ``level``."""
    nodes = tree.get_nodes(level)
    matches = nodes[nodes["label"] == label]["id"].tolist()
    assert len(matches) == 1, f"expected one node labeled {label!r} at level {level}, got {matches}"
    return matches[0]


@pytest.fixture
def node_id():
    return node_id_for

"""Render split results as lists, tables or a reduced tree index."""
from __future__ import annotations

import re
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List

import pandas as pd

from treeindex.hierarchy.models import SplitResult

AGG_TABLE_COLUMNS = ["leaf", "otu_index", "id", "parent", "lineage", "label", "level"]
GROUP_TABLE_COLUMNS = ["id", "parent", "lineage", "label", "level", "indices", "leaf_nodes"]

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9._]")
_VALID_START = re.compile(r"^([A-Za-z]|\.(?![0-9]))")


def make_unique(names: Iterable[str], sep: str = ".") -> List[str]:
    """Suffix repeated names with ``.1``, ``.2``, ... in order of appearance.

    The first occurrence keeps its name; suffixes that would collide with a
    name already present are skipped.
    """
    names = list(names)
    taken = set(names)
    counters: Dict[str, int] = {}
    seen = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
            continue
        counter = counters.get(name, 0)
        while True:
            counter += 1
            candidate = f"{name}{sep}{counter}"
            if candidate not in taken:
                break
        counters[name] = counter
        taken.add(candidate)
        result.append(candidate)
    return result


def make_safe_name(label: str) -> str:
    """Filesystem- and identifier-safe version of a label."""
    name = _INVALID_CHARS.sub(".", str(label))
    if not _VALID_START.match(name):
        name = "X" + name
    return name


def make_names(labels: Iterable[str], unique: bool = True) -> List[str]:
    names = [make_safe_name(label) for label in labels]
    return make_unique(names) if unique else names


def to_list(result: SplitResult) -> "OrderedDict[str, List[int]]":
    """Unique safe group label -> ordered ``otu_index`` values."""
    labels = make_names(group.node.label for group in result.groups)
    return OrderedDict(
        (label, list(group.otu_indices)) for label, group in zip(labels, result.groups)
    )


def to_agg_table(result: SplitResult, delimiter: str = ",") -> pd.DataFrame:
    """One row per (group, member leaf)."""
    records = [
        {
            "leaf": leaf_key,
            "otu_index": otu_index,
            "id": group.node.id,
            "parent": group.node.parent,
            "lineage": group.node.lineage_string(delimiter),
            "label": group.node.label,
            "level": group.node.level,
        }
        for group in result.groups
        for leaf_key, otu_index in zip(group.leaf_keys, group.otu_indices)
    ]
    table = pd.DataFrame(records, columns=AGG_TABLE_COLUMNS)
    return table.sort_values("otu_index", kind="stable", ignore_index=True)


def to_group_table(result: SplitResult, delimiter: str = ",") -> pd.DataFrame:
    """One row per group with comma-joined member indices and leaf keys."""
    records = [
        {
            "id": group.node.id,
            "parent": group.node.parent,
            "lineage": group.node.lineage_string(delimiter),
            "label": group.node.label,
            "level": group.node.level,
            "indices": ",".join(str(i) for i in group.otu_indices),
            "leaf_nodes": ",".join(group.leaf_keys),
        }
        for group in result.groups
    ]
    return pd.DataFrame(records, columns=GROUP_TABLE_COLUMNS)


def to_tree_index(tree, result: SplitResult):
    """Shallower TreeIndex over levels 1..selected_level of the grouped leaves.

    Raises InvalidHierarchyInput when the split kept no leaves.
    """
    columns = tree.feature_order[: result.selected_level]
    members = {otu_index for group in result.groups for otu_index in group.otu_indices}
    mask = [otu_index in members for otu_index in tree.hierarchy.otu_indices]

    frame = tree.hierarchy.select(mask, columns).dropna()
    frame = frame[~frame.duplicated(keep="first")].copy()
    labels = frame[columns[-1]].tolist()
    # Equal labels under different parents must stay distinct leaf keys
    frame[columns[-1]] = make_unique(labels)
    frame.index = make_names(labels)
    return tree.__class__(frame, feature_order=columns)


FORMATS: Dict[str, Callable] = {
    "list": lambda tree, result: to_list(result),
    "dataframe": lambda tree, result: to_group_table(result, tree.lineage_delimiter),
    "aggTable": lambda tree, result: to_agg_table(result, tree.lineage_delimiter),
    "TreeIndex": to_tree_index,
    "groups": lambda tree, result: result,
}


def render(tree, result: SplitResult, format: str):
    try:
        renderer = FORMATS[format]
    except KeyError:
        raise ValueError(f"unknown split format {format!r}; expected one of {list(FORMATS)}") from None
    return renderer(tree, result)

"""Validated hierarchy input table.

A hierarchy table holds one row per leaf and one column per level, ordered
coarsest to finest. The last level column identifies the leaf. Row order of
the validated table defines ``otu_index`` (1..N).
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from treeindex.errors import InvalidHierarchyInput

logger = logging.getLogger(__name__)

OTU_INDEX_COLUMN = "otu_index"


def _missing_mask(frame: pd.DataFrame) -> pd.Series:
    """Rows with a missing or blank value in any column."""
    blank = pd.DataFrame(
        {col: frame[col].astype(str).str.strip().eq("") for col in frame.columns},
        index=frame.index,
    )
    return (frame.isna() | blank).any(axis=1)


def _integral_floats_to_int(frame: pd.DataFrame) -> pd.DataFrame:
    """Cast float columns holding only whole numbers back to int64.

    A numeric id column with a missing value is read as float; once the
    incomplete rows are gone its labels must render as "7", not "7.0".
    """
    integral = [
        col for col in frame.columns
        if pd.api.types.is_float_dtype(frame[col]) and np.all(np.mod(frame[col].to_numpy(), 1) == 0)
    ]
    if not integral:
        return frame
    return frame.astype({col: np.int64 for col in integral})


class HierarchyTable:
    """Ordered level columns plus a stable leaf order."""

    def __init__(self, frame: pd.DataFrame, feature_order: Optional[Sequence[str]] = None):
        if not isinstance(frame, pd.DataFrame):
            raise InvalidHierarchyInput(
                f"hierarchy must be a pandas DataFrame, got {type(frame).__name__}"
            )

        if feature_order is None:
            feature_order = [col for col in frame.columns if col != OTU_INDEX_COLUMN]
        feature_order = [str(col) for col in feature_order]
        frame = frame.rename(columns=str)

        if not feature_order:
            raise InvalidHierarchyInput("feature_order must name at least one level column")
        if len(set(feature_order)) != len(feature_order):
            raise InvalidHierarchyInput(
                "feature_order contains duplicate column names",
                {"feature_order": feature_order},
            )
        missing_cols = [col for col in feature_order if col not in frame.columns]
        if missing_cols:
            raise InvalidHierarchyInput(
                f"feature_order names columns not present in the table: {missing_cols}",
                {"missing": missing_cols, "available": list(frame.columns)},
            )

        levels = frame[feature_order]
        missing = _missing_mask(levels)
        n_missing = int(missing.sum())
        if n_missing:
            logger.info("Dropping %d hierarchy rows with missing level values", n_missing)
            levels = levels[~missing]

        levels = _integral_floats_to_int(levels).astype(str)
        levels = levels[~levels.duplicated(keep="first")]

        if levels.empty:
            raise InvalidHierarchyInput(
                "hierarchy has no complete rows; every row is missing a level value",
                {"input_rows": len(frame), "dropped": n_missing},
            )

        leaf_column = feature_order[-1]
        duplicated_leaves = levels[leaf_column][levels[leaf_column].duplicated(keep=False)]
        if not duplicated_leaves.empty:
            examples = sorted(set(duplicated_leaves))[:5]
            raise InvalidHierarchyInput(
                f"leaf column '{leaf_column}' has duplicate keys after de-duplication: {examples}",
                {"leaf_column": leaf_column, "duplicates": examples},
            )

        self._feature_order: List[str] = list(feature_order)
        self._row_names = pd.Index(levels.index)
        self._frame = levels.reset_index(drop=True)
        self._frame[OTU_INDEX_COLUMN] = np.arange(1, len(self._frame) + 1, dtype=np.int64)

    @property
    def feature_order(self) -> List[str]:
        return list(self._feature_order)

    @property
    def leaf_column(self) -> str:
        return self._feature_order[-1]

    @property
    def height(self) -> int:
        return len(self._feature_order)

    @property
    def n_leaves(self) -> int:
        return len(self._frame)

    def __len__(self) -> int:
        return len(self._frame)

    @property
    def frame(self) -> pd.DataFrame:
        """Copy of the level columns plus ``otu_index``."""
        return self._frame.copy()

    @property
    def row_names(self) -> pd.Index:
        """Row labels of the input frame, aligned with ``otu_index``."""
        return self._row_names.copy()

    @property
    def leaf_keys(self) -> List[str]:
        return self._frame[self.leaf_column].tolist()

    @property
    def otu_indices(self) -> List[int]:
        return self._frame[OTU_INDEX_COLUMN].astype(int).tolist()

    def level_values(self) -> List[List[str]]:
        """Level values per row, coarsest first, in ``otu_index`` order."""
        return self._frame[self._feature_order].values.tolist()

    def select(self, rows=None, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Raw level sub-frame by row positions/mask and column names.

        Rows are 0-based positions, a slice, or a boolean mask; the row labels
        of the input frame are kept as the index.
        """
        columns = self.feature_order if columns is None else list(columns)
        selected = self._frame[columns].set_axis(self._row_names, axis=0)
        if rows is None:
            return selected.copy()
        if isinstance(rows, slice):
            return selected.iloc[rows].copy()
        rows = np.asarray(rows)
        if rows.dtype == bool:
            if len(rows) != len(selected):
                raise IndexError(
                    f"boolean row mask has length {len(rows)}, table has {len(selected)} rows"
                )
            return selected[rows].copy()
        return selected.iloc[rows.astype(int)].copy()

    def rows_in_range(self, start: int, end: int, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Sub-frame for rows whose ``otu_index`` lies in ``[start, end]``, in ``otu_index`` order.

        ``columns`` may include ``otu_index`` itself.
        """
        otu = self._frame[OTU_INDEX_COLUMN]
        return self.select((otu >= start).to_numpy() & (otu <= end).to_numpy(), columns)

    def __repr__(self) -> str:
        return f"HierarchyTable(levels={self._feature_order}, leaves={len(self)})"

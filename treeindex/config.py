"""Configuration helpers for the hierarchy tree index."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"

# Load environment variables early so downstream modules can rely on them.
load_dotenv(ENV_PATH, override=False)

DEFAULT_LEVEL_ENV = "TREEINDEX_DEFAULT_LEVEL"
NODE_ID_DIGEST_ENV = "TREEINDEX_NODE_ID_DIGEST"
LINEAGE_DELIMITER_ENV = "TREEINDEX_LINEAGE_DELIMITER"

DEFAULT_SPLIT_LEVEL = 3
DEFAULT_NODE_ID_DIGEST = 12
DEFAULT_LINEAGE_DELIMITER = ","

MIN_NODE_ID_DIGEST = 6
MAX_NODE_ID_DIGEST = 40  # full SHA-1 hex length


@dataclass(frozen=True)
class SplitSettings:
    """Defaults used when building catalogs and splitting trees."""

    default_level: int
    node_id_digest: int
    lineage_delimiter: str


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_int_env(name: str, default: int) -> int:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer; received '{raw}'.") from exc


def get_split_settings() -> SplitSettings:
    """Resolve split/catalog settings from the environment with sensible defaults."""

    default_level = _get_int_env(DEFAULT_LEVEL_ENV, DEFAULT_SPLIT_LEVEL)
    if default_level < 1:
        raise RuntimeError(f"{DEFAULT_LEVEL_ENV} must be >= 1; received {default_level}.")

    digest = _get_int_env(NODE_ID_DIGEST_ENV, DEFAULT_NODE_ID_DIGEST)
    if not MIN_NODE_ID_DIGEST <= digest <= MAX_NODE_ID_DIGEST:
        raise RuntimeError(
            f"{NODE_ID_DIGEST_ENV} must be between {MIN_NODE_ID_DIGEST} and "
            f"{MAX_NODE_ID_DIGEST}; received {digest}."
        )

    delimiter = _get_env(LINEAGE_DELIMITER_ENV, DEFAULT_LINEAGE_DELIMITER)
    return SplitSettings(
        default_level=default_level,
        node_id_digest=digest,
        lineage_delimiter=delimiter,
    )

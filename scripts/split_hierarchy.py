"""Build a tree index from a hierarchy CSV and split it at a level cut."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import pandas as pd

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from treeindex.errors import TreeIndexError
from treeindex.hierarchy import FORMATS, NodeState, TreeIndex
from treeindex.logging_utils import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("csv", type=Path, help="Hierarchy table, one row per leaf")
    parser.add_argument(
        "--levels",
        nargs="+",
        help="Level columns, coarsest first; the last one names the leaf (default: all columns)",
    )
    parser.add_argument("--index-col", help="Column holding row names")
    parser.add_argument("--level", type=int, default=None, help="Level to cut at (default: TREEINDEX_DEFAULT_LEVEL)")
    parser.add_argument("--expand", nargs="*", default=[], metavar="ID", help="Node ids to expand")
    parser.add_argument("--remove", nargs="*", default=[], metavar="ID", help="Node ids to remove")
    parser.add_argument("--aggregate", nargs="*", default=[], metavar="ID", help="Node ids to aggregate")
    parser.add_argument("--start", type=int, default=1, help="First otu_index to keep")
    parser.add_argument("--end", type=int, default=None, help="Last otu_index to keep")
    parser.add_argument(
        "--format",
        choices=[name for name in FORMATS if name != "groups"],
        default="list",
    )
    parser.add_argument("--output", type=Path, help="Write the split here instead of stdout")
    parser.add_argument(
        "--list-nodes",
        nargs="?",
        const=0,
        type=int,
        metavar="LEVEL",
        help="Print nodes (all, or at LEVEL) and exit",
    )
    parser.add_argument("--log-dir", type=Path, help="Also write a verbose log file here")
    parser.add_argument("--quiet", action="store_true", help="Suppress console logging")
    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    overrides = {}
    for node_id in args.aggregate:
        overrides[node_id] = NodeState.AGGREGATED
    for node_id in args.expand:
        overrides[node_id] = NodeState.EXPANDED
    # Removal is applied last so it wins on conflicting flags
    for node_id in args.remove:
        overrides[node_id] = NodeState.REMOVED
    return overrides


def _emit(text: str, output: Path = None) -> None:
    if output is None:
        print(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    logger.info("Wrote %s", output)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(quiet=args.quiet, log_dir=args.log_dir)

    frame = pd.read_csv(args.csv, index_col=args.index_col, dtype=str, keep_default_na=True)
    try:
        tree = TreeIndex(frame, feature_order=args.levels)
    except TreeIndexError as exc:
        logger.error("Cannot build tree index from %s: %s", args.csv, exc)
        return 1

    print(tree.describe())

    if args.list_nodes is not None:
        nodes = tree.get_nodes(args.list_nodes or None)
        _emit(nodes.to_csv(index=False).rstrip("\n"), args.output)
        return 0

    try:
        result = tree.split_at(
            selected_level=args.level,
            selected_nodes=build_overrides(args),
            start=args.start,
            end=args.end,
            format=args.format,
        )
    except TreeIndexError as exc:
        logger.error("Split failed: %s", exc)
        return 1

    if args.format == "list":
        _emit(json.dumps(result, indent=2), args.output)
    elif args.format == "TreeIndex":
        _emit(result.describe(), args.output)
    else:
        _emit(result.to_csv(index=False).rstrip("\n"), args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Score the TreeFriends datasets offline and export the result.

Runs the same enrichment the API serves (nearest-neighbour density, rent
interpolation, health, accessibility) and writes one row per tree. Without
--output it prints the collection summary with the per-stage trace.

Usage:
    python scripts/score_trees.py
    python scripts/score_trees.py --output scored_trees.csv
    python scripts/score_trees.py --trees Data/CleanedTreeData.csv --output out.json --limit 500
"""

import argparse
import csv
import json
import logging
import os
import sys

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pipeline import DatasetUnavailableError, DatasetPaths, load_trees, resolve_dataset_paths
from presentation import collection_summary, serialize_tree
from scoring_config import SCORING_MODEL
from tf_trace import TraceContext, clear_trace, set_trace

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "tree_id",
    "status",
    "species",
    "sidewalk",
    "problems",
    "latitude",
    "longitude",
    "neighborhood",
    "expected_rent",
    "tree_friends_score",
    "affordability_score",
    "accessibility_score",
    "health_score",
    "accessibility_band",
]


def _csv_row(tree_dict: dict) -> dict:
    row = {key: tree_dict[key] for key in CSV_FIELDS if key != "accessibility_band"}
    row["accessibility_band"] = tree_dict["accessibility_band"]["label"]
    # Blank cells for unknown values rather than the string "None"
    return {k: ("" if v is None else v) for k, v in row.items()}


def write_output(path: str, trees) -> None:
    serialized = [serialize_tree(tree) for tree in trees]
    if path.lower().endswith(".json"):
        with open(path, "w", encoding="utf-8") as f:
            json.dump(serialized, f, indent=2)
    else:
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
            writer.writeheader()
            for tree_dict in serialized:
                writer.writerow(_csv_row(tree_dict))
    logger.info("Wrote %d trees to %s", len(serialized), path)


def main(argv=None) -> int:
    load_dotenv()
    defaults = resolve_dataset_paths()

    parser = argparse.ArgumentParser(description="Score TreeFriends datasets")
    parser.add_argument("--trees", default=defaults.trees, help="Tree census CSV")
    parser.add_argument("--neighborhoods", default=defaults.neighborhoods,
                        help="Neighborhood centroid CSV")
    parser.add_argument("--rents", default=defaults.rents, help="Rent table CSV")
    parser.add_argument("--output", help="Write scored trees to this .csv or .json file")
    parser.add_argument("--limit", type=int, default=0,
                        help="Only export the first N trees (0 = all)")
    args = parser.parse_args(argv)

    paths = DatasetPaths(trees=args.trees, neighborhoods=args.neighborhoods, rents=args.rents)
    trace = TraceContext(trace_id="score-trees", model_version=SCORING_MODEL.version)
    set_trace(trace)
    try:
        trees = load_trees(paths)
    except DatasetUnavailableError as e:
        logger.error("%s", e)
        return 1
    finally:
        clear_trace()

    if args.limit > 0:
        trees = trees[:args.limit]

    if args.output:
        write_output(args.output, trees)
    else:
        summary = collection_summary(trees)
        summary["trace"] = trace.full_trace_dict()
        print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Dataset loading and one-shot enrichment for TreeFriends.

Reads the three bundled CSV exports (trees, neighborhood centroids, rents)
once, runs them through the normalizer, and caches the scored collection
for the life of the process. Paths come from the environment so a
deployment (or a test) can point at other files:

    TREEFRIENDS_DATA_DIR           default "Data"
    TREEFRIENDS_TREE_CSV           default <data dir>/CleanedTreeData.csv
    TREEFRIENDS_NEIGHBORHOOD_CSV   default <data dir>/NeighborhoodCoordinates.csv
    TREEFRIENDS_RENT_CSV           default <data dir>/StreetEasyRentDataCL.csv
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import List, Optional

from models import TreeRecord
from normalizer import parse_neighborhood_data, parse_rent_data, parse_tree_data
from scoring_config import SCORING_MODEL
from tf_trace import TraceContext, clear_trace, get_trace, set_trace

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "Data"
DEFAULT_TREE_FILE = "CleanedTreeData.csv"
DEFAULT_NEIGHBORHOOD_FILE = "NeighborhoodCoordinates.csv"
DEFAULT_RENT_FILE = "StreetEasyRentDataCL.csv"


class DatasetUnavailableError(RuntimeError):
    """A dataset file is missing or unreadable."""


@dataclass(frozen=True)
class DatasetPaths:
    trees: str
    neighborhoods: str
    rents: str


def resolve_dataset_paths() -> DatasetPaths:
    """Resolve dataset paths from the environment at call time."""
    data_dir = os.environ.get("TREEFRIENDS_DATA_DIR", DEFAULT_DATA_DIR)
    return DatasetPaths(
        trees=os.environ.get(
            "TREEFRIENDS_TREE_CSV", os.path.join(data_dir, DEFAULT_TREE_FILE)
        ),
        neighborhoods=os.environ.get(
            "TREEFRIENDS_NEIGHBORHOOD_CSV", os.path.join(data_dir, DEFAULT_NEIGHBORHOOD_FILE)
        ),
        rents=os.environ.get(
            "TREEFRIENDS_RENT_CSV", os.path.join(data_dir, DEFAULT_RENT_FILE)
        ),
    )


def read_dataset_text(path: str) -> str:
    """Read a dataset file as text. The BOM, if any, is left for the parser."""
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Dataset unavailable at %s: %s", path, e)
        raise DatasetUnavailableError(f"Dataset unavailable: {path}") from e


def enrich_trees(tree_csv: str, neighborhood_csv: str, rent_csv: str) -> List[TreeRecord]:
    """Run the full enrichment over three raw CSV texts.

    Returns scored trees in input row order (minus dropped rows).
    """
    rent_lookup = parse_rent_data(rent_csv)
    neighborhoods = parse_neighborhood_data(neighborhood_csv)
    return parse_tree_data(tree_csv, neighborhoods, rent_lookup)


def load_trees(paths: Optional[DatasetPaths] = None) -> List[TreeRecord]:
    """Read the three dataset files and enrich them.

    Raises DatasetUnavailableError if any file cannot be read; nothing is
    scored in that case.
    """
    if paths is None:
        paths = resolve_dataset_paths()

    tree_csv = read_dataset_text(paths.trees)
    neighborhood_csv = read_dataset_text(paths.neighborhoods)
    rent_csv = read_dataset_text(paths.rents)

    owns_trace = get_trace() is None
    if owns_trace:
        set_trace(TraceContext(trace_id="load-trees", model_version=SCORING_MODEL.version))
    trace = get_trace()
    try:
        trees = enrich_trees(tree_csv, neighborhood_csv, rent_csv)
    finally:
        trace.log_summary()
        if owns_trace:
            clear_trace()

    logger.info(
        "Loaded %d scored trees from %s (model %s)",
        len(trees), paths.trees, SCORING_MODEL.version,
    )
    return trees


# ---------------------------------------------------------------------------
# Process-wide cache
# ---------------------------------------------------------------------------

_cache_lock = threading.Lock()
_cached_trees: Optional[List[TreeRecord]] = None


def get_trees() -> List[TreeRecord]:
    """The scored tree collection, loaded on first use.

    The returned list is shared; callers must not mutate it. A failed load
    is not cached, so the next call retries.
    """
    global _cached_trees
    if _cached_trees is not None:
        return _cached_trees
    with _cache_lock:
        if _cached_trees is None:
            _cached_trees = load_trees()
        return _cached_trees


def reset_cache() -> None:
    global _cached_trees
    with _cache_lock:
        _cached_trees = None

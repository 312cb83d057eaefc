"""
Per-tree scores and the two collection-wide scoring passes.

Sub-scores:
  - Tree Friends (0-10): how closely packed the nearest trees are.
  - Affordability (0-10): inverse of the interpolated neighborhood rent.
  - Health (0-3): categorical, from status / sidewalk / problems text.

Accessibility is the sum of Tree Friends and Affordability rescaled to
0-4 each plus Health, so it runs 0-11. Dead trees always score 0.

assign_tree_friends_scores() must run before assign_accessibility_scores():
accessibility reads the tree friends score.
"""

import logging
import math
from typing import List, Optional

from kd_tree import IndexedPoint, build_kd_tree, find_k_nearest_distances
from models import TreeRecord
from scoring_config import SCORING_MODEL, clamp, rescale_subscore

logger = logging.getLogger(__name__)


def tree_friends_score(average_distance: float) -> float:
    """Density score from the average distance (m) to the nearest trees.

    An infinite average (no neighbours at all) scores the maximum, as do
    non-positive and sub-2m spacings.
    """
    cfg = SCORING_MODEL.tree_friends
    if not math.isfinite(average_distance) or average_distance <= 0:
        return cfg.max_score
    if average_distance < cfg.min_spacing_m:
        return cfg.max_score
    raw = cfg.max_score - cfg.decay_per_meter * (average_distance - cfg.min_spacing_m)
    return clamp(raw, 0.0, cfg.max_score)


def affordability_score(expected_rent: Optional[float]) -> float:
    """Affordability from expected rent. Unknown or zero rent scores 0."""
    cfg = SCORING_MODEL.affordability
    if expected_rent is None or not math.isfinite(expected_rent) or expected_rent == 0:
        return 0.0
    return clamp(cfg.numerator / expected_rent - cfg.offset, 0.0, cfg.max_score)


def _status(tree: TreeRecord) -> str:
    return tree.status.strip().lower()


def is_dead(tree: TreeRecord) -> bool:
    return _status(tree) == "dead"


def health_score(tree: TreeRecord) -> int:
    """0 for stumps and dead trees; otherwise 3 minus mismatches, floored at 1."""
    baseline = SCORING_MODEL.health
    status = _status(tree)
    if status in baseline.zero_statuses:
        return 0

    mismatches = 0
    if status != baseline.status:
        mismatches += 1
    if tree.sidewalk.strip().lower() != baseline.sidewalk:
        mismatches += 1
    problems = tree.problems.strip().lower()
    if problems and problems != baseline.problems:
        mismatches += 1

    if mismatches == 0:
        return baseline.max_score
    if mismatches == 1:
        return baseline.max_score - 1
    return 1


def accessibility_score(tree: TreeRecord) -> float:
    if is_dead(tree):
        return 0.0
    return (
        rescale_subscore(tree.tree_friends_score, SCORING_MODEL.tree_friends.max_score)
        + rescale_subscore(tree.affordability_score, SCORING_MODEL.affordability.max_score)
        + health_score(tree)
    )


def assign_tree_friends_scores(trees: List[TreeRecord], neighbor_count: Optional[int] = None) -> None:
    """Set tree_friends_score on every tree from its nearest neighbours.

    Builds one k-d tree over the whole collection. Mutates *trees* in place.
    """
    if not trees:
        return
    if neighbor_count is None:
        neighbor_count = SCORING_MODEL.tree_friends.neighbor_count

    points = [
        IndexedPoint(latitude=tree.latitude, longitude=tree.longitude, index=i)
        for i, tree in enumerate(trees)
    ]
    root = build_kd_tree(points)
    if root is None:
        return

    for point in points:
        distances = find_k_nearest_distances(root, point, neighbor_count)
        average = sum(distances) / len(distances) if distances else math.inf
        trees[point.index].tree_friends_score = tree_friends_score(average)

    logger.info("Assigned tree friends scores to %d trees (k=%d)", len(trees), neighbor_count)


def assign_accessibility_scores(trees: List[TreeRecord]) -> None:
    """Set accessibility_score on every tree. Mutates *trees* in place."""
    for tree in trees:
        tree.accessibility_score = accessibility_score(tree)

"""
Display-ready views of scored trees.

Formatting, summary lines and JSON serialization for the API and CLI.
Nothing here renders anything; clients decide how to lay the data out.
"""

import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from models import UNKNOWN_TREE_ID, TreeRecord
from scoring_config import SCORING_MODEL, get_accessibility_band, rescale_subscore
from tree_scoring import health_score, is_dead

GRID_SIZE = 12
GRID_CELL_COUNT = GRID_SIZE * GRID_SIZE

MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query={lat},{lng}"


@dataclass(frozen=True)
class SummaryLine:
    """One line of a tree's summary card.

    dead_suffix is shown after text, styled separately, on dead trees.
    """
    text: str
    dead_suffix: Optional[str] = None

    def plain(self) -> str:
        return f"{self.text} {self.dead_suffix}" if self.dead_suffix else self.text


# =============================================================================
# Formatting
# =============================================================================

def format_tree_friends_score(score: float) -> str:
    """Tree friends score shown on the 0-4 scale it contributes to accessibility."""
    return f"{rescale_subscore(score, SCORING_MODEL.tree_friends.max_score):.1f}"


def format_affordability_score(score: Optional[float]) -> str:
    return f"{rescale_subscore(score, SCORING_MODEL.affordability.max_score):.1f}"


def format_accessibility_score(score: Optional[float]) -> str:
    if score is None or not math.isfinite(score):
        return "0.0"
    return f"{score:.1f}"


def format_coordinate(value: float) -> str:
    if not math.isfinite(value):
        return "unknown"
    return f"{value:.5f}"


def format_problems(tree: TreeRecord) -> str:
    """The most specific problem description available."""
    problems = tree.problems.strip()
    if problems and problems.lower() != SCORING_MODEL.health.problems:
        return problems
    sidewalk = tree.sidewalk.strip()
    if sidewalk and sidewalk.lower() != SCORING_MODEL.health.sidewalk:
        return sidewalk
    return "Unknown"


def should_show_problems(tree: TreeRecord) -> bool:
    if is_dead(tree):
        return True
    return health_score(tree) != SCORING_MODEL.health.max_score


def summary_lines(tree: TreeRecord) -> List[SummaryLine]:
    lines = [
        SummaryLine(f"tree-#{tree.tree_id or UNKNOWN_TREE_ID}"),
        SummaryLine(f"Accessibility: {format_accessibility_score(tree.accessibility_score)}"),
        SummaryLine(f"Neighborhood: {tree.neighborhood}"),
        SummaryLine(
            f"Coordinates: {format_coordinate(tree.latitude)}, {format_coordinate(tree.longitude)}"
        ),
        SummaryLine(f"Species: {tree.species or 'unknown'}"),
        SummaryLine(f"Tree Friends: {format_tree_friends_score(tree.tree_friends_score)}"),
        SummaryLine(f"Affordability: {format_affordability_score(tree.affordability_score)}"),
        SummaryLine(f"Health: {health_score(tree)}"),
    ]

    if should_show_problems(tree):
        if is_dead(tree):
            lines.append(SummaryLine("Problems:", dead_suffix="dead"))
        else:
            lines.append(SummaryLine(f"Problems: {format_problems(tree)}"))

    return lines


def maps_url(tree: TreeRecord) -> str:
    return MAPS_SEARCH_URL.format(lat=tree.latitude, lng=tree.longitude)


# =============================================================================
# Selection & serialization
# =============================================================================

def pick_random_trees(
    trees: Sequence[TreeRecord],
    count: int,
    rng: Optional[random.Random] = None,
) -> List[TreeRecord]:
    """*count* independent uniform picks (repeats allowed), one per grid cell."""
    if not trees or count <= 0:
        return []
    rng = rng or random.Random()
    return [trees[rng.randrange(len(trees))] for _ in range(count)]


def serialize_tree(tree: TreeRecord) -> Dict[str, Any]:
    band = get_accessibility_band(tree.accessibility_score)
    return {
        "tree_id": tree.tree_id,
        "status": tree.status,
        "species": tree.species,
        "sidewalk": tree.sidewalk,
        "problems": tree.problems,
        "latitude": tree.latitude,
        "longitude": tree.longitude,
        "neighborhood": tree.neighborhood,
        "expected_rent": (
            round(tree.expected_rent, 2) if tree.expected_rent is not None else None
        ),
        "tree_friends_score": round(tree.tree_friends_score, 2),
        "affordability_score": (
            round(tree.affordability_score, 2)
            if tree.affordability_score is not None else None
        ),
        "accessibility_score": (
            round(tree.accessibility_score, 2)
            if tree.accessibility_score is not None else None
        ),
        "health_score": health_score(tree),
        "accessibility_band": {"label": band.label, "color": band.color},
        "summary": [
            {"text": line.text, "dead_suffix": line.dead_suffix}
            for line in summary_lines(tree)
        ],
        "maps_url": maps_url(tree),
    }


def collection_summary(trees: Sequence[TreeRecord]) -> Dict[str, Any]:
    """Band counts and mean scores over the whole collection."""
    band_counts: Dict[str, int] = {
        band.label: 0 for band in SCORING_MODEL.accessibility_bands
    }
    band_counts[SCORING_MODEL.unknown_band.label] = 0
    for tree in trees:
        band_counts[get_accessibility_band(tree.accessibility_score).label] += 1

    def _mean(values: List[float]) -> Optional[float]:
        return round(sum(values) / len(values), 2) if values else None

    return {
        "trees": len(trees),
        "model_version": SCORING_MODEL.version,
        "bands": band_counts,
        "mean_tree_friends_score": _mean([t.tree_friends_score for t in trees]),
        "mean_affordability_score": _mean(
            [t.affordability_score for t in trees if t.affordability_score is not None]
        ),
        "mean_accessibility_score": _mean(
            [t.accessibility_score for t in trees if t.accessibility_score is not None]
        ),
    }

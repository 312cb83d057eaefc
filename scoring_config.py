"""
Scoring model configuration for TreeFriends.

Owns every numeric constant that affects a tree's scores. Distance
constants live in geodesy.py; the neighborhood count used for rent
interpolation lives in interpolation.py.

Frozen dataclasses provide type checking and IDE support without
the indirection of YAML/JSON config files.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple


# =============================================================================
# Dataclasses
# =============================================================================

@dataclass(frozen=True)
class TreeFriendsConfig:
    """Density score from the average spacing to the nearest trees.

    score = max_score - decay_per_meter * (avg_spacing - min_spacing_m),
    clamped to [0, max_score]. Spacing below min_spacing_m scores max.
    """
    neighbor_count: int = 5
    min_spacing_m: float = 2.0
    decay_per_meter: float = 0.12
    max_score: float = 10.0


@dataclass(frozen=True)
class AffordabilityConfig:
    """Affordability from expected monthly rent.

    score = numerator / rent - offset, clamped to [0, max_score].
    About $3,000 maps to ~9.4 and $10,000 to ~0.9.
    """
    numerator: float = 36370.0
    offset: float = 2.737
    max_score: float = 10.0


@dataclass(frozen=True)
class HealthBaseline:
    """Field values (lower-cased) a fully healthy tree reports."""
    status: str = "alive"
    sidewalk: str = "nodamage"
    problems: str = "none"
    zero_statuses: Tuple[str, ...] = ("stump", "dead")
    max_score: int = 3


@dataclass(frozen=True)
class AccessibilityBand:
    """Maps a minimum accessibility score to a label and display color."""
    threshold: Optional[float]  # None for the unknown band
    label: str
    color: str


@dataclass(frozen=True)
class ScoringModel:
    """Top-level container for all scoring parameters.

    A single module-level instance (SCORING_MODEL) is the source of truth.
    Bump `version` on every change that alters score outputs.
    """
    version: str
    tree_friends: TreeFriendsConfig
    affordability: AffordabilityConfig
    health: HealthBaseline
    # 0-10 sub-scores are rescaled to 0-subscore_scale before summing
    subscore_scale: float
    accessibility_bands: Tuple[AccessibilityBand, ...]
    unknown_band: AccessibilityBand


# =============================================================================
# Pure scoring functions
# =============================================================================

def clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


def rescale_subscore(score: Optional[float], max_score: float = 10.0,
                     scale: Optional[float] = None) -> float:
    """Rescale a 0-max_score sub-score to 0-scale.

    None and non-finite scores count as 0.
    """
    if scale is None:
        scale = SCORING_MODEL.subscore_scale
    if score is None or not math.isfinite(score):
        return 0.0
    return clamp(score, 0.0, max_score) / max_score * scale


def get_accessibility_band(score: Optional[float]) -> AccessibilityBand:
    """Band for an accessibility score. Missing scores get the unknown band.

    Bands are evaluated highest-first: the first whose threshold <= score
    is used.
    """
    if score is None or not math.isfinite(score):
        return SCORING_MODEL.unknown_band
    for band in SCORING_MODEL.accessibility_bands:
        if score >= band.threshold:
            return band
    return SCORING_MODEL.accessibility_bands[-1]


# =============================================================================
# SCORING_MODEL: current production values
# =============================================================================

SCORING_MODEL = ScoringModel(
    version="1.0.0",

    tree_friends=TreeFriendsConfig(
        neighbor_count=5,
        min_spacing_m=2.0,
        decay_per_meter=0.12,
        max_score=10.0,
    ),

    affordability=AffordabilityConfig(
        numerator=36370.0,
        offset=2.737,
        max_score=10.0,
    ),

    health=HealthBaseline(),

    subscore_scale=4.0,

    # Accessibility runs 0-11 (4 + 4 + 3).
    accessibility_bands=(
        AccessibilityBand(8.5, "excellent", "#0C3B1D"),
        AccessibilityBand(7.5, "great", "#1C7F3B"),
        AccessibilityBand(4.5, "fair", "#FFFFFF"),
        AccessibilityBand(float("-inf"), "poor", "#C0392B"),
    ),
    unknown_band=AccessibilityBand(None, "unknown", "#3A2A24"),
)

# Validate band ordering at import time (ValueError, not assert,
# so validation is never stripped by python -O).
for _prev, _next in zip(SCORING_MODEL.accessibility_bands, SCORING_MODEL.accessibility_bands[1:]):
    if _next.threshold >= _prev.threshold:
        raise ValueError(
            f"Accessibility band {_next.label!r} must have a lower threshold than {_prev.label!r}"
        )

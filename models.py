"""
Record types for the TreeFriends enrichment pipeline, plus the name
normalization shared by the neighborhood list and the rent lookup.
"""

import re
from dataclasses import dataclass
from typing import Optional

UNKNOWN_NEIGHBORHOOD = "Unknown"
UNKNOWN_TREE_ID = "unknown"
UNKNOWN_SPECIES = "unknown"

# Rent dataset spellings that differ from the neighborhood dataset.
RENT_KEY_ALIASES = {
    "gramecy park": "gramercy park",
    "stuyvesant town": "stuyvesant town/pcv",
}

_WHITESPACE = re.compile(r"\s+")


@dataclass
class TreeRecord:
    """One street tree with its derived scores.

    tree_friends_score and accessibility_score are filled in by the two
    collection-wide passes in tree_scoring.py, in that order.
    """
    tree_id: str
    status: str
    sidewalk: str
    problems: str
    latitude: float
    longitude: float
    neighborhood: str
    species: str
    expected_rent: Optional[float] = None
    tree_friends_score: float = 0.0           # 0-10, density of nearby trees
    affordability_score: Optional[float] = None  # 0-10, None when rent unknown
    accessibility_score: Optional[float] = None  # 0-11, set last


@dataclass(frozen=True)
class NeighborhoodRecord:
    """A named neighborhood centroid used as an interpolation anchor."""
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class NeighborhoodMatch:
    name: str
    distance: float  # meters
    rent: Optional[float] = None


def normalize_neighborhood_name(value: str) -> str:
    """Collapse internal whitespace and trim. Blank names become "Unknown"."""
    collapsed = _WHITESPACE.sub(" ", value or "").strip()
    return collapsed or UNKNOWN_NEIGHBORHOOD


def normalize_rent_key(value: str) -> str:
    """Lookup key for the rent table.

    Returns "" for names that carry no information (blank or "Unknown"),
    which callers treat as "no key".
    """
    normalized = normalize_neighborhood_name(value)
    if normalized == UNKNOWN_NEIGHBORHOOD:
        return ""
    lowered = normalized.lower()
    return RENT_KEY_ALIASES.get(lowered, lowered)

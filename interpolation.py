"""
Rent estimate for a tree from the three nearest neighborhood centroids.

Each tree takes the nearest neighborhood's name, and an expected rent
interpolated from the three nearest neighborhoods (only when all three have
a rent on file).
"""

import math
from typing import List, Mapping, Optional, Sequence, Tuple

from geodesy import haversine_m
from models import (
    UNKNOWN_NEIGHBORHOOD,
    NeighborhoodMatch,
    NeighborhoodRecord,
    normalize_rent_key,
)

NEAREST_NEIGHBORHOOD_COUNT = 3


def neighborhood_rent(name: str, rent_lookup: Mapping[str, float]) -> Optional[float]:
    """Rent for a neighborhood name, or None when not in the lookup."""
    key = normalize_rent_key(name)
    if not key:
        return None
    return rent_lookup.get(key)


def closest_neighborhood_matches(
    latitude: float,
    longitude: float,
    neighborhoods: Sequence[NeighborhoodRecord],
    rent_lookup: Mapping[str, float],
    limit: int = NEAREST_NEIGHBORHOOD_COUNT,
) -> List[NeighborhoodMatch]:
    """The *limit* neighborhoods nearest to (latitude, longitude), nearest first.

    Once the working set is full, a candidate replaces the current farthest
    only when it is strictly closer, so the earliest of equally distant
    neighborhoods wins.
    """
    if not neighborhoods or limit <= 0:
        return []

    matches: List[NeighborhoodMatch] = []
    for neighborhood in neighborhoods:
        distance = haversine_m(
            latitude, longitude, neighborhood.latitude, neighborhood.longitude,
        )
        if not math.isfinite(distance):
            continue

        match = NeighborhoodMatch(
            name=neighborhood.name,
            distance=distance,
            rent=neighborhood_rent(neighborhood.name, rent_lookup),
        )

        if len(matches) < limit:
            matches.append(match)
            matches.sort(key=lambda m: m.distance)
            continue

        if distance < matches[-1].distance:
            matches[-1] = match
            matches.sort(key=lambda m: m.distance)

    return matches


def resolve_neighborhood_name(matches: Sequence[NeighborhoodMatch]) -> str:
    return matches[0].name if matches else UNKNOWN_NEIGHBORHOOD


def barycentric_weights(d1: float, d2: float, d3: float) -> Optional[Tuple[float, float, float]]:
    """Weights for three anchors at distances d1 <= d2 <= d3.

    w_i = (sum of the other two distances - d_i) / (d1 + d2 + d3). The
    weights always sum to 1 and go negative when one distance exceeds the
    other two combined; they are not clamped. Returns None when all three
    distances are zero.
    """
    d1, d2, d3 = max(d1, 0.0), max(d2, 0.0), max(d3, 0.0)
    denominator = d1 + d2 + d3
    if denominator == 0:
        return None
    return (
        (d2 + d3 - d1) / denominator,
        (d1 + d3 - d2) / denominator,
        (d1 + d2 - d3) / denominator,
    )


def calculate_expected_rent(matches: Sequence[NeighborhoodMatch]) -> Optional[float]:
    """Interpolated rent from exactly three matches with known rents.

    Returns None (not 0) when fewer than three matches exist or any of them
    lacks a rent. A point sitting on all three anchors gets their plain mean.
    """
    if len(matches) < NEAREST_NEIGHBORHOOD_COUNT:
        return None
    x1, x2, x3 = matches[:NEAREST_NEIGHBORHOOD_COUNT]
    if x1.rent is None or x2.rent is None or x3.rent is None:
        return None

    weights = barycentric_weights(x1.distance, x2.distance, x3.distance)
    if weights is None:
        return (x1.rent + x2.rent + x3.rent) / 3

    w1, w2, w3 = weights
    return w1 * x1.rent + w2 * x2.rent + w3 * x3.rent


def interpolate_tree_location(
    latitude: float,
    longitude: float,
    neighborhoods: Sequence[NeighborhoodRecord],
    rent_lookup: Mapping[str, float],
) -> Tuple[str, Optional[float]]:
    """(nearest neighborhood name, expected rent) for one location."""
    matches = closest_neighborhood_matches(latitude, longitude, neighborhoods, rent_lookup)
    return resolve_neighborhood_name(matches), calculate_expected_rent(matches)

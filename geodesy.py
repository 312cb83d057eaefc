"""
Distance helpers for lat/lng points.

Two kinds of distance are provided:

  - haversine_m(): great-circle distance on a spherical Earth. Used for
    every distance that ends up in a score.
  - axis_distance_m(): converts a single-axis degree gap into meters. Only
    the k-d tree uses it, to decide whether the far side of a splitting
    line can still hold a closer neighbour.
"""

import math

# Spherical Earth, no ellipsoid correction.
EARTH_RADIUS_M = 6_371_000

METERS_PER_DEGREE_LAT = 111_132
METERS_PER_DEGREE_LON_AT_EQUATOR = 111_320

AXIS_LATITUDE = 0
AXIS_LONGITUDE = 1


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two points, returned in meters."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
         * math.sin(dlon / 2) ** 2)
    # Rounding can push a just past 1 for near-antipodal points.
    a = min(a, 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def meters_per_degree_longitude(latitude: float) -> float:
    """Length of one degree of longitude at *latitude*, floored at 0."""
    meters = METERS_PER_DEGREE_LON_AT_EQUATOR * math.cos(math.radians(latitude))
    if not math.isfinite(meters) or meters <= 0:
        return 0.0
    return meters


def axis_distance_m(delta_degrees: float, axis: int, reference_latitude: float) -> float:
    """Convert a degree gap along one axis into meters.

    Longitude gaps are scaled at *reference_latitude* (the query point's
    latitude), not at the splitting node's.
    """
    if delta_degrees == 0:
        return 0.0
    if axis == AXIS_LATITUDE:
        return delta_degrees * METERS_PER_DEGREE_LAT
    return delta_degrees * meters_per_degree_longitude(reference_latitude)

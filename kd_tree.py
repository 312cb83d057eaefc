"""
2-D k-d tree over tree locations for nearest-neighbour spacing.

Built once per dataset load. Splits alternate latitude / longitude by depth
and always take the median by sorted position, so the tree is balanced
regardless of how the points are distributed.

Queries use true haversine distance for the candidates they keep, and a
per-axis degree-to-meter conversion (geodesy.axis_distance_m) to decide
whether the far side of a split can be skipped.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from geodesy import AXIS_LATITUDE, axis_distance_m, haversine_m

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexedPoint:
    """A location plus its position in the source collection.

    The index is the point's identity: queries exclude the target by index,
    so two trees at identical coordinates still see each other.
    """
    latitude: float
    longitude: float
    index: int

    def coordinate(self, axis: int) -> float:
        return self.latitude if axis == AXIS_LATITUDE else self.longitude


@dataclass
class KdNode:
    point: IndexedPoint
    axis: int  # 0 = latitude, 1 = longitude
    left: Optional["KdNode"] = None
    right: Optional["KdNode"] = None


def build_kd_tree(points: Sequence[IndexedPoint], depth: int = 0) -> Optional[KdNode]:
    """Build a balanced k-d tree. Returns None for an empty input."""
    if not points:
        return None

    axis = depth % 2
    # sorted() is stable: equal coordinates keep input order.
    ordered = sorted(points, key=lambda p: p.coordinate(axis))
    median = len(ordered) // 2

    node = KdNode(
        point=ordered[median],
        axis=axis,
        left=build_kd_tree(ordered[:median], depth + 1),
        right=build_kd_tree(ordered[median + 1:], depth + 1),
    )
    if depth == 0:
        logger.debug("Built k-d tree over %d points", len(points))
    return node


def find_k_nearest_distances(root: Optional[KdNode], target: IndexedPoint, k: int) -> List[float]:
    """Distances (meters, ascending) from *target* to its k nearest neighbours.

    *target* must be a point of the tree; it is skipped by index. Fewer than
    k distances come back when the tree holds fewer than k other points.
    """
    distances: List[float] = []
    if root is None or k <= 0:
        return distances

    def offer(distance: float) -> None:
        if not math.isfinite(distance):
            return
        distances.append(distance)
        distances.sort()
        if len(distances) > k:
            distances.pop()

    def search(node: Optional[KdNode]) -> None:
        if node is None:
            return

        target_value = target.coordinate(node.axis)
        node_value = node.point.coordinate(node.axis)
        if target_value < node_value:
            near, far = node.left, node.right
        else:
            near, far = node.right, node.left

        search(near)

        if node.point.index != target.index:
            offer(haversine_m(
                target.latitude, target.longitude,
                node.point.latitude, node.point.longitude,
            ))

        axis_gap_m = axis_distance_m(
            abs(target_value - node_value), node.axis, target.latitude,
        )
        worst = distances[-1] if distances else math.inf
        if len(distances) < k or axis_gap_m < worst:
            search(far)

    search(root)
    return distances

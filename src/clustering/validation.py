"""
Coordinate validation applied before clustering.

Invalid points are dropped, never raised: a missing pin is preferable to a
crash or a pin placed at the origin.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Tuple

from .models import Point

logger = logging.getLogger(__name__)


def is_valid_coordinate(lat: float, lng: float) -> bool:
    """
    Check a latitude/longitude pair.

    Valid when both values are finite numbers, latitude is within
    [-90, 90], longitude within [-180, 180], and the pair is not the
    (0, 0) "no data" sentinel.
    """
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return False

    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    if not -90.0 <= lat <= 90.0:
        return False
    if not -180.0 <= lng <= 180.0:
        return False
    if lat == 0.0 and lng == 0.0:
        return False
    return True


def partition_points(points: Iterable[Point]) -> Tuple[List[Point], List[Point]]:
    """Split points into (valid, rejected), both in input order."""
    valid: List[Point] = []
    rejected: List[Point] = []
    for point in points:
        if is_valid_coordinate(point.lat, point.lng):
            valid.append(point)
        else:
            rejected.append(point)
    return valid, rejected


def validate_points(points: Iterable[Point]) -> List[Point]:
    """Return the order-preserving subsequence of points with valid coordinates."""
    valid, rejected = partition_points(points)
    if rejected:
        logger.debug(
            "Dropped %d point(s) with invalid coordinates: %s",
            len(rejected),
            ", ".join(p.id for p in rejected[:10]),
        )
    return valid

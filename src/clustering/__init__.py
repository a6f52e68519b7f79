"""
src/clustering: Coordinate validation and fixed-radius proximity clustering.

Seed-relative greedy grouping of map locations in great-circle distance.
"""

from .clusterer import (
    DEFAULT_RADIUS_M,
    ClusteringConfig,
    ClusteringDiagnostics,
    build_snapshot,
    cluster_points,
)
from .geodesic import EARTH_RADIUS_M, haversine_array, haversine_m
from .models import Cluster, ClusterSnapshot, Coordinate, Point
from .validation import is_valid_coordinate, partition_points, validate_points

__all__ = [
    "DEFAULT_RADIUS_M",
    "ClusteringConfig",
    "ClusteringDiagnostics",
    "build_snapshot",
    "cluster_points",
    "EARTH_RADIUS_M",
    "haversine_array",
    "haversine_m",
    "Cluster",
    "ClusterSnapshot",
    "Coordinate",
    "Point",
    "is_valid_coordinate",
    "partition_points",
    "validate_points",
]

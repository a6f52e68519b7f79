"""
Fixed-radius proximity clustering of map locations.

This module provides:
1. Seed-relative greedy grouping within a great-circle radius
2. Centroid computation (unweighted mean of member coordinates)
3. Snapshot building with validation and diagnostics

Membership is decided against the cluster's seed only. A point within the
radius of some member but outside the radius of the seed does not join;
clusters never chain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .geodesic import haversine_array
from .models import Cluster, ClusterSnapshot, Coordinate, Point
from .validation import partition_points

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_M = 200.0


@dataclass
class ClusteringConfig:
    """Configuration for proximity clustering."""

    radius_m: float = DEFAULT_RADIUS_M
    """Maximum great-circle distance (metres) from the seed; inclusive."""

    def __post_init__(self) -> None:
        if not self.radius_m > 0:
            raise ValueError(f"radius_m must be positive, got {self.radius_m!r}")


@dataclass
class ClusteringDiagnostics:
    """Counts describing one clustering pass."""

    num_input: int
    """Points handed to the pass, before validation."""

    num_valid: int
    """Points that passed coordinate validation."""

    num_rejected: int
    """Points dropped for invalid coordinates."""

    num_clusters: int = 0
    num_singletons: int = 0
    cluster_sizes: List[int] = field(default_factory=list)
    radius_m: float = DEFAULT_RADIUS_M

    @property
    def largest_cluster(self) -> int:
        return max(self.cluster_sizes, default=0)


def cluster_points(
    points: Sequence[Point],
    config: Optional[ClusteringConfig] = None,
) -> List[Cluster]:
    """
    Group validated points into clusters around seeds.

    Single pass in input order: the first unprocessed point becomes a
    seed, every remaining unprocessed point within ``radius_m`` of the
    seed joins it, and the cluster's center is the mean of its members'
    latitudes and longitudes. Deterministic for a given input order.

    Args:
        points: Points with valid coordinates (see ``validate_points``)
        config: Clustering configuration (uses defaults if None)

    Returns:
        Clusters in seed order; members keep input order with the seed first
    """
    if config is None:
        config = ClusteringConfig()

    n = len(points)
    if n == 0:
        return []

    lats = np.fromiter((p.lat for p in points), dtype=float, count=n)
    lngs = np.fromiter((p.lng for p in points), dtype=float, count=n)
    processed = np.zeros(n, dtype=bool)

    clusters: List[Cluster] = []
    for seed_idx in range(n):
        if processed[seed_idx]:
            continue
        processed[seed_idx] = True

        member_idx = [seed_idx]
        candidates = np.flatnonzero(~processed)
        if candidates.size:
            distances = haversine_array(
                lats[seed_idx], lngs[seed_idx], lats[candidates], lngs[candidates]
            )
            joined = candidates[distances <= config.radius_m]
            processed[joined] = True
            member_idx.extend(joined.tolist())

        idx = np.asarray(member_idx)
        center = Coordinate(lat=float(lats[idx].mean()), lng=float(lngs[idx].mean()))
        members = tuple(points[i] for i in member_idx)
        clusters.append(Cluster(members=members, center=center, count=len(members)))

    return clusters


def build_snapshot(
    points: Sequence[Point],
    config: Optional[ClusteringConfig] = None,
    generation: int = 0,
) -> Tuple[ClusterSnapshot, ClusteringDiagnostics]:
    """
    Validate raw points and cluster them into a snapshot.

    Args:
        points: Decoded points, possibly with invalid coordinates
        config: Clustering configuration (uses defaults if None)
        generation: Version tag for the snapshot (the store re-stamps on publish)

    Returns:
        (snapshot, diagnostics)
    """
    if config is None:
        config = ClusteringConfig()

    valid, rejected = partition_points(points)
    if rejected:
        logger.warning(
            "Excluded %d of %d location(s) with invalid coordinates",
            len(rejected), len(points),
        )

    clusters = cluster_points(valid, config)
    snapshot = ClusterSnapshot(
        clusters=tuple(clusters), generation=generation, radius_m=config.radius_m
    )

    sizes = [c.count for c in clusters]
    diagnostics = ClusteringDiagnostics(
        num_input=len(points),
        num_valid=len(valid),
        num_rejected=len(rejected),
        num_clusters=len(clusters),
        num_singletons=sum(1 for s in sizes if s == 1),
        cluster_sizes=sizes,
        radius_m=config.radius_m,
    )

    logger.debug(
        "Created %d clusters from %d valid locations out of %d total (radius %.0fm)",
        diagnostics.num_clusters, diagnostics.num_valid, diagnostics.num_input, config.radius_m,
    )
    if logger.isEnabledFor(logging.DEBUG):
        for i, cluster in enumerate(clusters, start=1):
            logger.debug(
                "Cluster %d: %d location(s) at [%.6f, %.6f]: %s",
                i, cluster.count, cluster.center.lat, cluster.center.lng,
                ", ".join(p.name for p in cluster.members),
            )

    return snapshot, diagnostics

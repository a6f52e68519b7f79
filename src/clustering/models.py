"""
Data model for proximity clustering of map locations.

A :class:`Point` is a mutable location record shared by reference: the
cluster that owns it and the id index of its snapshot point at the same
object, so interaction flags written by id are visible through the
cluster. Clusters and snapshots are immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Iterator, List, Optional, Tuple

import pandas as pd


@dataclass(frozen=True)
class Coordinate:
    """Latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


@dataclass(eq=False)
class Point:
    """A location pin with display metadata and per-user interaction flags."""

    id: str
    name: str
    lat: float
    lng: float
    saved: Optional[bool] = None
    """Saved by the current user (None = not known yet)."""

    subscribed: Optional[bool] = None
    """Subscribed by the current user (None = not known yet)."""

    address: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    claim_status: Optional[str] = None
    """Ownership claim status, e.g. 'unclaimed', 'approved', 'verified'."""

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    @property
    def is_saved(self) -> bool:
        return bool(self.saved)

    @property
    def is_subscribed(self) -> bool:
        return bool(self.subscribed)


@dataclass(frozen=True)
class Cluster:
    """Points grouped around a seed, with their centroid."""

    members: Tuple[Point, ...]
    center: Coordinate
    count: int

    def __post_init__(self) -> None:
        if not self.members:
            raise ValueError("Cluster must have at least one member")
        if self.count != len(self.members):
            raise ValueError(
                f"Cluster count {self.count} does not match {len(self.members)} members"
            )

    @property
    def seed(self) -> Point:
        return self.members[0]

    @property
    def primary_location(self) -> Point:
        """The point shown for a singleton (the seed for larger clusters)."""
        return self.members[0]

    @property
    def is_singleton(self) -> bool:
        return self.count == 1

    @property
    def member_ids(self) -> List[str]:
        return [p.id for p in self.members]


@dataclass(frozen=True)
class ClusterSnapshot:
    """One complete clustering result, published as a unit."""

    clusters: Tuple[Cluster, ...] = ()
    generation: int = 0
    """Version tag assigned by the store when the snapshot is published."""

    radius_m: float = 200.0

    def __len__(self) -> int:
        return len(self.clusters)

    def __iter__(self) -> Iterator[Cluster]:
        return iter(self.clusters)

    @property
    def num_points(self) -> int:
        return sum(c.count for c in self.clusters)

    def points(self) -> List[Point]:
        """All points, cluster by cluster in member order."""
        return [p for c in self.clusters for p in c.members]

    @cached_property
    def point_index(self) -> Dict[str, Point]:
        """id -> Point, built once per snapshot. First occurrence wins."""
        index: Dict[str, Point] = {}
        for point in self.points():
            index.setdefault(point.id, point)
        return index

    def find_point(self, point_id: str) -> Optional[Point]:
        return self.point_index.get(point_id)

    def cluster_of(self, point_id: str) -> Optional[Cluster]:
        for cluster in self.clusters:
            if any(p.id == point_id for p in cluster.members):
                return cluster
        return None

    def signature(self) -> Tuple[Tuple[Tuple[str, ...], float, float, int], ...]:
        """Value-level fingerprint, comparable across independently built snapshots."""
        return tuple(
            (tuple(c.member_ids), c.center.lat, c.center.lng, c.count)
            for c in self.clusters
        )

    def to_dataframe(self) -> pd.DataFrame:
        """One row per point, tagged with the index of its cluster."""
        records = [
            {
                "cluster": idx,
                "cluster_size": cluster.count,
                "id": point.id,
                "name": point.name,
                "lat": point.lat,
                "lng": point.lng,
                "saved": point.saved,
                "subscribed": point.subscribed,
            }
            for idx, cluster in enumerate(self.clusters)
            for point in cluster.members
        ]
        columns = ["cluster", "cluster_size", "id", "name", "lat", "lng", "saved", "subscribed"]
        df = pd.DataFrame(records, columns=columns)
        df.attrs["generation"] = self.generation
        df.attrs["radius_m"] = self.radius_m
        return df

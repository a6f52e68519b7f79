"""What a tap on a cluster pin asks the UI to show."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from src.clustering.models import Cluster, Point


@dataclass(frozen=True)
class ShowSinglePreview:
    """Open the detail preview for one location."""

    point: Point


@dataclass(frozen=True)
class ShowClusterPicker:
    """Open a picker listing every member of a multi-location cluster."""

    cluster: Cluster

    @property
    def points(self):
        return list(self.cluster.members)


SelectionIntent = Union[ShowSinglePreview, ShowClusterPicker]


def select_cluster(cluster: Cluster) -> SelectionIntent:
    """Singletons go straight to a preview; anything larger opens the picker."""
    if cluster.count == 1:
        return ShowSinglePreview(point=cluster.primary_location)
    return ShowClusterPicker(cluster=cluster)


def resolve_pick(picker: ShowClusterPicker, point_id: str) -> ShowSinglePreview:
    """
    Turn a pick-one-of-N choice from the picker into a single preview.

    Raises:
        KeyError: If ``point_id`` is not a member of the picker's cluster
    """
    for point in picker.cluster.members:
        if point.id == point_id:
            return ShowSinglePreview(point=point)
    raise KeyError(f"Location '{point_id}' is not in the selected cluster")

"""
Map annotations derived from a cluster snapshot.

One annotation per cluster, placed at the cluster center. Singletons show
a pin glyph, larger clusters a numeric badge. The surface gets the whole
set again on every snapshot replacement; taps resolve back to the cluster
through the annotation's own reference.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Union

from src.clustering.models import Cluster, ClusterSnapshot, Coordinate
from src.state.selection import SelectionIntent
from src.state.store import SNAPSHOT_REPLACED, ClusterStore

logger = logging.getLogger(__name__)

PIN_GLYPH = "pin"
BADGE_GLYPH = "badge"
DEFAULT_PRIMARY_COLOR = "#FF6B6B"


@dataclass(frozen=True)
class Annotation:
    """Visual descriptor for one cluster on the map."""

    annotation_id: str
    position: Coordinate
    glyph: str
    badge: Optional[str]
    title: str
    color: str
    cluster: Cluster
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.annotation_id,
            "lat": self.position.lat,
            "lng": self.position.lng,
            "glyph": self.glyph,
            "badge": self.badge,
            "title": self.title,
            "color": self.color,
            "count": self.cluster.count,
            "locationIds": self.cluster.member_ids,
        }


class MapSurface(Protocol):
    def render(self, annotations: Sequence[Annotation]) -> None:
        """Replace every annotation currently shown with ``annotations``."""
        ...


class InMemoryMapSurface:
    """Map surface that just keeps what it was asked to show."""

    def __init__(self) -> None:
        self.annotations: List[Annotation] = []
        self.render_count = 0

    def render(self, annotations: Sequence[Annotation]) -> None:
        self.annotations.clear()
        self.annotations.extend(annotations)
        self.render_count += 1


def annotation_for(
    cluster: Cluster,
    index: int,
    generation: int = 0,
    color: str = DEFAULT_PRIMARY_COLOR,
) -> Annotation:
    if cluster.count == 1:
        glyph, badge, title = PIN_GLYPH, None, cluster.primary_location.name
    else:
        glyph, badge, title = BADGE_GLYPH, str(cluster.count), f"{cluster.count} locations"
    return Annotation(
        annotation_id=f"{generation}:{index}",
        position=cluster.center,
        glyph=glyph,
        badge=badge,
        title=title,
        color=color,
        cluster=cluster,
        generation=generation,
    )


def build_annotations(
    snapshot: ClusterSnapshot,
    color: str = DEFAULT_PRIMARY_COLOR,
) -> List[Annotation]:
    """One annotation per cluster, in snapshot order."""
    return [
        annotation_for(cluster, i, snapshot.generation, color)
        for i, cluster in enumerate(snapshot.clusters)
    ]


def annotations_to_widget(
    annotations: Sequence[Annotation],
    center: Optional[Coordinate] = None,
) -> Dict[str, Any]:
    """Widget payload for a map client that draws cluster pins."""
    return {
        "widget": "geo.poiClusters",
        "props": {
            "center": {"lat": center.lat, "lng": center.lng} if center else None,
            "pois": [a.to_dict() for a in annotations],
        },
    }


AnnotationRef = Union[Annotation, str]


class AnnotationSync:
    """Keeps a map surface in step with the store's current snapshot."""

    def __init__(
        self,
        store: ClusterStore,
        surface: MapSurface,
        color: str = DEFAULT_PRIMARY_COLOR,
    ) -> None:
        self.store = store
        self.surface = surface
        self.color = color
        self._by_id: Dict[str, Annotation] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def annotations(self) -> List[Annotation]:
        return list(self._by_id.values())

    def attach(self) -> "AnnotationSync":
        """Subscribe to snapshot replacements and draw the current snapshot."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_store_event)
        snapshot = self.store.current_snapshot()
        if snapshot is not None:
            self.sync(snapshot)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def sync(self, snapshot: ClusterSnapshot) -> List[Annotation]:
        annotations = build_annotations(snapshot, self.color)
        self._by_id = {a.annotation_id: a for a in annotations}
        self.surface.render(annotations)
        logger.debug(
            "Rendered %d annotations for generation %d", len(annotations), snapshot.generation
        )
        return annotations

    def on_tap(self, ref: AnnotationRef) -> Cluster:
        """
        Map a tapped annotation back to its cluster.

        Raises:
            KeyError: If an annotation id is not part of the rendered set
        """
        if isinstance(ref, Annotation):
            return ref.cluster
        annotation = self._by_id.get(ref)
        if annotation is None:
            raise KeyError(f"Unknown annotation '{ref}'")
        return annotation.cluster

    def tap(self, ref: AnnotationRef) -> SelectionIntent:
        return self.store.select(self.on_tap(ref))

    def _on_store_event(self, event: str, snapshot: ClusterSnapshot) -> None:
        if event == SNAPSHOT_REPLACED:
            self.sync(snapshot)

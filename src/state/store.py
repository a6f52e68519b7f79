"""
Owned holder of the published cluster snapshot.

The store is the only mutator of the current snapshot and is meant to be
driven from a single logical owner (one event loop). Each publish bumps a
generation counter; asynchronous work that captured an older generation
can check :meth:`ClusterStore.is_current` and drop its results.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Callable, List, Optional

from src.clustering.models import Cluster, ClusterSnapshot

from .selection import SelectionIntent, select_cluster

logger = logging.getLogger(__name__)

SNAPSHOT_REPLACED = "snapshot_replaced"
FLAGS_UPDATED = "flags_updated"

Listener = Callable[[str, ClusterSnapshot], None]


class ClusterStore:
    """Holds exactly one current snapshot (or none before the first load)."""

    def __init__(self) -> None:
        self._snapshot: Optional[ClusterSnapshot] = None
        self._generation = 0
        self._listeners: List[Listener] = []

    @property
    def generation(self) -> int:
        """Generation of the current snapshot (0 before the first publish)."""
        return self._generation

    def current_snapshot(self) -> Optional[ClusterSnapshot]:
        return self._snapshot

    def is_current(self, generation: int) -> bool:
        return self._snapshot is not None and generation == self._generation

    def select(self, cluster: Cluster) -> SelectionIntent:
        return select_cluster(cluster)

    def replace(self, snapshot: ClusterSnapshot) -> ClusterSnapshot:
        """
        Publish ``snapshot`` as the current one.

        The snapshot is stamped with the next generation number; the
        stamped instance is stored, announced to listeners and returned.
        """
        self._generation += 1
        published = dataclasses.replace(snapshot, generation=self._generation)
        self._snapshot = published
        logger.info(
            "Published snapshot generation %d: %d clusters, %d locations",
            published.generation, len(published), published.num_points,
        )
        self._emit(SNAPSHOT_REPLACED, published)
        return published

    def notify_flags_changed(self, snapshot: ClusterSnapshot) -> bool:
        """Announce in-place flag updates; ignored unless ``snapshot`` is current."""
        if self._snapshot is not snapshot:
            return False
        self._emit(FLAGS_UPDATED, snapshot)
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register ``listener(event, snapshot)``.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str, snapshot: ClusterSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, snapshot)
            except Exception:
                logger.exception("Cluster store listener failed on %s", event)

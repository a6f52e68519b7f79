"""
Best-effort overlay of saved/subscribed flags onto published points.

Flags are written in place on the points of an already-built snapshot,
looked up through the snapshot's id index; cluster membership is never
recomputed. A merge remembers the generation of the snapshot it started
from and writes nothing if the store has published a newer one meanwhile.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Sequence

from src.clustering.models import ClusterSnapshot

from .store import ClusterStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InteractionState:
    """Per-user interaction flags for one location."""

    saved: bool = False
    subscribed: bool = False
    save_count: Optional[int] = None
    subscriber_count: Optional[int] = None


class InteractionStateSource(Protocol):
    async def fetch(self, ids: Sequence[str]) -> Mapping[str, InteractionState]:
        ...


@dataclass(frozen=True)
class MergeOutcome:
    """Result of one merge attempt."""

    status: str
    """'applied', 'stale', 'failed' or 'empty'."""

    generation: int = 0
    updated: int = 0
    error: Optional[str] = None


def apply_interaction_states(
    snapshot: ClusterSnapshot,
    states: Mapping[str, InteractionState],
) -> int:
    """
    Write flags onto matching points of ``snapshot``.

    Ids unknown to the snapshot are ignored.

    Returns:
        Number of points updated
    """
    updated = 0
    index = snapshot.point_index
    for point_id, state in states.items():
        point = index.get(point_id)
        if point is None:
            continue
        point.saved = state.saved
        point.subscribed = state.subscribed
        updated += 1
    return updated


class InteractionStateMerger:
    """Runs interaction-state fetches against the store's current snapshot."""

    def __init__(
        self,
        store: ClusterStore,
        source: InteractionStateSource,
        timeout_s: float = 10.0,
    ) -> None:
        self.store = store
        self.source = source
        self.timeout_s = timeout_s

    async def merge(self, snapshot: Optional[ClusterSnapshot] = None) -> MergeOutcome:
        """
        Fetch flags for every point in ``snapshot`` and apply them.

        Args:
            snapshot: Published snapshot to update (defaults to the current one)

        Returns:
            MergeOutcome; failures are reported, never raised
        """
        if snapshot is None:
            snapshot = self.store.current_snapshot()
        if snapshot is None:
            return MergeOutcome(status="empty")

        generation = snapshot.generation
        if not self._still_current(snapshot):
            return self._discard(generation)

        ids = list(snapshot.point_index)
        if not ids:
            return MergeOutcome(status="empty", generation=generation)

        try:
            states = await asyncio.wait_for(self.source.fetch(ids), timeout=self.timeout_s)
        except Exception as exc:
            logger.warning(
                "Interaction state fetch failed for generation %d, keeping default flags: %r",
                generation, exc,
            )
            return MergeOutcome(status="failed", generation=generation, error=repr(exc))

        if not self._still_current(snapshot):
            return self._discard(generation)

        updated = apply_interaction_states(snapshot, states)
        logger.info(
            "Applied interaction state to %d of %d locations (generation %d)",
            updated, len(ids), generation,
        )
        self.store.notify_flags_changed(snapshot)
        return MergeOutcome(status="applied", generation=generation, updated=updated)

    def _still_current(self, snapshot: ClusterSnapshot) -> bool:
        return (
            self.store.is_current(snapshot.generation)
            and self.store.current_snapshot() is snapshot
        )

    def _discard(self, generation: int) -> MergeOutcome:
        logger.warning(
            "Discarding interaction state for superseded generation %d (current %d)",
            generation, self.store.generation,
        )
        return MergeOutcome(status="stale", generation=generation)

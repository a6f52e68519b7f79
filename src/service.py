"""
Load pipeline for the location map.

fetch -> validate -> cluster -> publish, then an interaction-state merge in
the background. The merge never delays publishing; a location fetch
failure leaves the previous snapshot in place and records a retryable
error for the UI.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from src.clustering.clusterer import ClusteringConfig, ClusteringDiagnostics, build_snapshot
from src.clustering.models import ClusterSnapshot
from src.sources.client import InteractionStateSource, LocationSource, SourceSettings
from src.sources.errors import LocationFetchError
from src.state.merger import InteractionStateMerger, MergeOutcome
from src.state.store import ClusterStore
from src.tools.config_loader import clustering_config_from_profile

logger = logging.getLogger(__name__)


@dataclass
class LoadState:
    """What the UI should show about the last load."""

    loading: bool = False
    error: Optional[str] = None
    retryable: bool = False
    diagnostics: Optional[ClusteringDiagnostics] = None


class ClusterMapService:
    """Owns the cluster store and drives refreshes against the remote sources."""

    def __init__(
        self,
        location_source: LocationSource,
        interaction_source: Optional[InteractionStateSource] = None,
        *,
        store: Optional[ClusterStore] = None,
        config: Optional[ClusteringConfig] = None,
        interaction_timeout_s: float = 10.0,
    ) -> None:
        self.location_source = location_source
        self.store = store or ClusterStore()
        self.config = config or ClusteringConfig()
        self.merger: Optional[InteractionStateMerger] = None
        if interaction_source is not None:
            self.merger = InteractionStateMerger(
                self.store, interaction_source, timeout_s=interaction_timeout_s
            )
        self.state = LoadState()
        self._merge_task: Optional["asyncio.Task[MergeOutcome]"] = None

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        store: Optional[ClusterStore] = None,
    ) -> "ClusterMapService":
        settings = SourceSettings.from_config(config)
        interactions_cfg = config.get("interactions", {}) or {}
        return cls(
            LocationSource(settings, transport=transport),
            InteractionStateSource(settings, transport=transport),
            store=store,
            config=clustering_config_from_profile(config),
            interaction_timeout_s=float(interactions_cfg.get("timeout_s", 10.0)),
        )

    async def refresh(
        self,
        config: Optional[ClusteringConfig] = None,
        merge_flags: bool = True,
    ) -> Optional[ClusterSnapshot]:
        """
        Fetch a full snapshot of locations and publish its clusters.

        Args:
            config: Clustering configuration for this pass (defaults to the service's)
            merge_flags: Start a background interaction-state merge after publishing

        Returns:
            The published snapshot, or None if the location fetch failed
        """
        self.state = LoadState(loading=True)
        try:
            points = await self.location_source.fetch_all()
        except LocationFetchError as exc:
            logger.warning("Location fetch failed, keeping previous snapshot: %s", exc)
            self.state = LoadState(error=str(exc), retryable=exc.retryable)
            return None

        snapshot, diagnostics = build_snapshot(points, config or self.config)
        published = self.store.replace(snapshot)
        self.state = LoadState(diagnostics=diagnostics)

        if merge_flags and self.merger is not None:
            self._merge_task = asyncio.create_task(self.merger.merge(published))
        return published

    async def wait_for_merge(self) -> Optional[MergeOutcome]:
        """Await the most recent background merge, if one was started."""
        task = self._merge_task
        if task is None:
            return None
        return await task

"""
Tests for the load pipeline (src/service.py)

Covers:
- Publishing clusters from a location fetch
- Background interaction-state merges
- Fetch failures keeping the previous snapshot
- Merges superseded by a newer refresh
"""

import asyncio

import httpx

from src.clustering.clusterer import ClusteringConfig
from src.service import ClusterMapService
from src.sources.errors import LocationFetchError
from src.state.merger import InteractionState
from tests.conftest import FakeInteractionSource, FakeLocationSource


class GatedInteractionSource:
    """Interaction source that blocks until released."""

    def __init__(self, states):
        self.states = states
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def fetch(self, ids):
        self.started.set()
        await self.gate.wait()
        return self.states


class TestRefresh:
    """Test fetch -> cluster -> publish."""

    def test_refresh_publishes_snapshot(self, sample_points):
        service = ClusterMapService(FakeLocationSource(sample_points))

        snapshot = asyncio.run(service.refresh())

        assert snapshot is service.store.current_snapshot()
        assert snapshot.generation == 1
        assert [c.member_ids for c in snapshot] == [["loc-1", "loc-2", "loc-3"], ["loc-4"]]
        assert service.state.error is None
        assert service.state.diagnostics.num_rejected == 1

    def test_refresh_with_radius_override(self, sample_points):
        service = ClusterMapService(FakeLocationSource(sample_points))

        snapshot = asyncio.run(service.refresh(config=ClusteringConfig(radius_m=50)))

        assert len(snapshot) == 4
        assert snapshot.radius_m == 50

    def test_each_refresh_bumps_generation(self, sample_points):
        service = ClusterMapService(FakeLocationSource(sample_points))

        async def scenario():
            first = await service.refresh()
            second = await service.refresh()
            return first, second

        first, second = asyncio.run(scenario())

        assert (first.generation, second.generation) == (1, 2)
        assert first.find_point("loc-1") is not second.find_point("loc-1")

    def test_fetch_failure_keeps_previous_snapshot(self, sample_points):
        source = FakeLocationSource(sample_points)
        service = ClusterMapService(source)

        async def scenario():
            first = await service.refresh()
            source.error = LocationFetchError("upstream unavailable", status_code=502)
            second = await service.refresh()
            return first, second

        first, second = asyncio.run(scenario())

        assert second is None
        assert service.store.current_snapshot() is first
        assert service.state.error == "upstream unavailable"
        assert service.state.retryable is True
        assert service.state.loading is False

    def test_failure_before_first_load_leaves_store_empty(self):
        service = ClusterMapService(FakeLocationSource(error=LocationFetchError("offline")))

        assert asyncio.run(service.refresh()) is None
        assert service.store.current_snapshot() is None


class TestInteractionMerge:
    """Test the background flag merge started by refresh."""

    def test_merge_applies_flags(self, sample_points):
        interactions = FakeInteractionSource({
            "loc-2": InteractionState(saved=True),
            "loc-4": InteractionState(subscribed=True),
        })
        service = ClusterMapService(FakeLocationSource(sample_points), interactions)

        async def scenario():
            snapshot = await service.refresh()
            outcome = await service.wait_for_merge()
            return snapshot, outcome

        snapshot, outcome = asyncio.run(scenario())

        assert outcome.status == "applied"
        assert outcome.updated == 2
        assert snapshot.find_point("loc-2").is_saved
        assert snapshot.find_point("loc-4").is_subscribed
        assert not snapshot.find_point("loc-1").is_saved
        assert sorted(interactions.calls[0]) == ["loc-1", "loc-2", "loc-3", "loc-4"]

    def test_merge_does_not_change_membership(self, sample_points):
        interactions = FakeInteractionSource({"loc-1": InteractionState(saved=True)})
        service = ClusterMapService(FakeLocationSource(sample_points), interactions)

        async def scenario():
            snapshot = await service.refresh()
            before = snapshot.signature()
            await service.wait_for_merge()
            return before, snapshot.signature()

        before, after = asyncio.run(scenario())

        assert before == after

    def test_merge_failure_keeps_default_flags(self, sample_points):
        interactions = FakeInteractionSource(error=RuntimeError("boom"))
        service = ClusterMapService(FakeLocationSource(sample_points), interactions)

        async def scenario():
            snapshot = await service.refresh()
            return snapshot, await service.wait_for_merge()

        snapshot, outcome = asyncio.run(scenario())

        assert outcome.status == "failed"
        assert service.store.current_snapshot() is snapshot
        assert all(p.saved is None for p in snapshot.points())

    def test_merge_timeout_is_a_failure(self, sample_points):
        async def scenario():
            interactions = GatedInteractionSource({})
            service = ClusterMapService(
                FakeLocationSource(sample_points), interactions, interaction_timeout_s=0.01
            )
            await service.refresh()
            return await service.wait_for_merge()

        outcome = asyncio.run(scenario())

        assert outcome.status == "failed"

    def test_refresh_during_merge_discards_stale_flags(self, sample_points):
        async def scenario():
            interactions = GatedInteractionSource({"loc-1": InteractionState(saved=True)})
            service = ClusterMapService(FakeLocationSource(sample_points), interactions)

            first = await service.refresh()
            await interactions.started.wait()
            second = await service.refresh(merge_flags=False)
            interactions.gate.set()
            outcome = await service.wait_for_merge()
            return first, second, outcome

        first, second, outcome = asyncio.run(scenario())

        assert outcome.status == "stale"
        assert outcome.generation == first.generation
        assert first.find_point("loc-1").saved is None
        assert second.find_point("loc-1").saved is None

    def test_wait_without_merge(self, sample_points):
        service = ClusterMapService(FakeLocationSource(sample_points))

        async def scenario():
            await service.refresh()
            return await service.wait_for_merge()

        assert asyncio.run(scenario()) is None


class TestFromConfig:
    """End-to-end over a mock HTTP transport."""

    def test_from_config_wires_both_sources(self, raw_locations):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/mobile/locations":
                return httpx.Response(200, json={"locations": raw_locations})
            return httpx.Response(200, json={
                "success": True,
                "message": "ok",
                "data": {"interactions": [
                    {"locationId": "loc-3", "isSaved": True, "isSubscribed": True},
                ]},
            })

        config = {
            "clustering": {"radius_m": 200},
            "source": {"base_url": "https://api.test", "page_size": 50, "max_pages": 2},
            "interactions": {"batch_size": 10, "timeout_s": 5},
        }
        service = ClusterMapService.from_config(config, transport=httpx.MockTransport(handler))

        async def scenario():
            snapshot = await service.refresh()
            return snapshot, await service.wait_for_merge()

        snapshot, outcome = asyncio.run(scenario())

        assert [c.member_ids for c in snapshot] == [["loc-1", "loc-2"], ["loc-3"]]
        assert outcome.status == "applied"
        assert snapshot.find_point("loc-3").is_saved
        assert service.config.radius_m == 200

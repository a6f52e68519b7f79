"""
Pytest configuration and shared fixtures for the location cluster map tests.

This file provides:
- Coordinate helpers for building points at known metric offsets
- Sample locations and raw API payloads
- Fake interaction-state and location sources
"""

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pytest

from src.clustering.geodesic import EARTH_RADIUS_M
from src.clustering.models import Point
from src.sources.errors import LocationFetchError
from src.state.merger import InteractionState


# ==============================================================================
# Coordinate Helpers
# ==============================================================================

# Downtown Sacramento
BASE_LAT = 38.5816
BASE_LNG = -121.4944


def offset(lat: float, lng: float, north_m: float = 0.0, east_m: float = 0.0):
    """Return (lat, lng) moved by the given metres (small-distance approximation)."""
    dlat = math.degrees(north_m / EARTH_RADIUS_M)
    dlng = math.degrees(east_m / (EARTH_RADIUS_M * math.cos(math.radians(lat))))
    return lat + dlat, lng + dlng


def make_point(point_id: str, north_m: float = 0.0, east_m: float = 0.0, **kwargs) -> Point:
    """Point placed ``north_m``/``east_m`` metres from the base location."""
    lat, lng = offset(BASE_LAT, BASE_LNG, north_m, east_m)
    return Point(id=point_id, name=kwargs.pop("name", f"Location {point_id}"), lat=lat, lng=lng, **kwargs)


@pytest.fixture
def point_factory():
    return make_point


# ==============================================================================
# Sample Locations
# ==============================================================================

@pytest.fixture
def sample_points() -> List[Point]:
    """Three close locations downtown, one across town, one invalid."""
    return [
        make_point("loc-1", name="Capitol Park"),
        make_point("loc-2", north_m=60, name="Cafe Bernardo"),
        make_point("loc-3", east_m=120, name="Crocker Gallery"),
        make_point("loc-4", north_m=5000, east_m=3000, name="Land Park"),
        Point(id="loc-bad", name="Broken Pin", lat=200.0, lng=-121.49),
    ]


@pytest.fixture
def raw_locations() -> List[Dict[str, Any]]:
    """Location records as the mobile API returns them."""
    return [
        {
            "id": "loc-1",
            "name": "Capitol Park",
            "address": "1315 10th St",
            "coordinates": {"latitude": 38.5766, "longitude": -121.4934},
            "categories": [{"name": "Parks"}, {"name": "Landmarks"}],
            "ownership": {"claimStatus": "verified"},
        },
        {
            "id": "loc-2",
            "name": "Cafe Bernardo",
            "coordinates": {"latitude": "38.5770", "longitude": "-121.4930"},
            "categories": ["Cafe"],
        },
        {
            "id": "loc-3",
            "name": "Tower Bridge",
            "latitude": "38.5803",
            "longitude": -121.5082,
        },
    ]


# ==============================================================================
# Fake Sources
# ==============================================================================

class FakeInteractionSource:
    """Interaction-state source returning canned flags."""

    def __init__(self, states: Optional[Mapping[str, InteractionState]] = None, error: Optional[Exception] = None):
        self.states = dict(states or {})
        self.error = error
        self.calls: List[List[str]] = []

    async def fetch(self, ids: Sequence[str]) -> Dict[str, InteractionState]:
        self.calls.append(list(ids))
        if self.error is not None:
            raise self.error
        return {k: v for k, v in self.states.items()}


class FakeLocationSource:
    """Location source returning a fresh copy of canned points per fetch."""

    def __init__(self, points: Optional[List[Point]] = None, error: Optional[LocationFetchError] = None):
        self.points = points or []
        self.error = error
        self.calls = 0

    async def fetch_all(self) -> List[Point]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [
            Point(id=p.id, name=p.name, lat=p.lat, lng=p.lng, address=p.address,
                  categories=list(p.categories), claim_status=p.claim_status)
            for p in self.points
        ]


@pytest.fixture
def fake_interaction_source():
    return FakeInteractionSource


@pytest.fixture
def fake_location_source():
    return FakeLocationSource


# ==============================================================================
# Utilities
# ==============================================================================

def assert_approx_equal(a: float, b: float, tolerance: float = 1e-9):
    """Assert two floats are approximately equal."""
    assert abs(a - b) < tolerance, f"{a} != {b} (tolerance={tolerance})"

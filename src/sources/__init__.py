"""Remote data sources: location list and per-user interaction state."""

from .client import InteractionStateSource, LocationSource, SourceSettings
from .errors import InteractionStateError, LocationFetchError
from .payloads import (
    LocationRecord,
    LocationsPage,
    decode_interaction_states,
    decode_locations_page,
    dedupe_points,
    parse_degrees,
)

__all__ = [
    "InteractionStateSource",
    "LocationSource",
    "SourceSettings",
    "InteractionStateError",
    "LocationFetchError",
    "LocationRecord",
    "LocationsPage",
    "decode_interaction_states",
    "decode_locations_page",
    "dedupe_points",
    "parse_degrees",
]

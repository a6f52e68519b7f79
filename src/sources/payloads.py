"""
Decoding of location and interaction-state payloads.

Coordinates arrive either nested under ``coordinates`` or as flat
``latitude``/``longitude`` fields, each as a number or a numeric string.
Values that cannot be parsed become NaN so coordinate validation drops the
point later; nothing here raises for a single bad record.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.clustering.models import Point
from src.state.merger import InteractionState

from .errors import InteractionStateError

logger = logging.getLogger(__name__)


def parse_degrees(value: Any) -> float:
    """Parse a coordinate given as a number or numeric string; NaN if unusable."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        return math.nan
    try:
        return float(value)
    except (OverflowError, ValueError):
        # ints beyond float range, non-numeric strings
        return math.nan


class RawCoordinates(BaseModel):
    latitude: float = math.nan
    longitude: float = math.nan

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_degrees(cls, value: Any) -> float:
        return parse_degrees(value)

    @property
    def is_complete(self) -> bool:
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)


class Ownership(BaseModel):
    claim_status: Optional[str] = Field(default=None, alias="claimStatus")

    model_config = {"populate_by_name": True}


class LocationRecord(BaseModel):
    """One location as returned by the locations endpoint."""

    id: str
    name: str
    address: Optional[str] = None
    coordinates: Optional[RawCoordinates] = None
    latitude: Any = None
    longitude: Any = None
    categories: List[str] = Field(default_factory=list)
    ownership: Optional[Ownership] = None
    is_saved: Optional[bool] = Field(default=None, alias="isSaved")
    is_subscribed: Optional[bool] = Field(default=None, alias="isSubscribed")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("address", mode="before")
    @classmethod
    def _address_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("coordinates", "ownership", mode="before")
    @classmethod
    def _object_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    @field_validator("categories", mode="before")
    @classmethod
    def _category_names(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        names: List[str] = []
        for entry in value:
            if isinstance(entry, str):
                names.append(entry)
            elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
                names.append(entry["name"])
        return names

    def lat_lng(self) -> Tuple[float, float]:
        flat = RawCoordinates(latitude=self.latitude, longitude=self.longitude)
        if self.coordinates is not None and self.coordinates.is_complete:
            return self.coordinates.latitude, self.coordinates.longitude
        if flat.is_complete or self.coordinates is None:
            return flat.latitude, flat.longitude
        return self.coordinates.latitude, self.coordinates.longitude

    def to_point(self) -> Point:
        lat, lng = self.lat_lng()
        return Point(
            id=self.id,
            name=self.name,
            lat=lat,
            lng=lng,
            saved=self.is_saved,
            subscribed=self.is_subscribed,
            address=self.address,
            categories=list(self.categories),
            claim_status=self.ownership.claim_status if self.ownership else None,
        )


@dataclass
class LocationsPage:
    """Decoded page of the locations endpoint."""

    points: List[Point] = field(default_factory=list)
    num_records: int = 0
    """Records present in the payload, including skipped ones."""

    num_skipped: int = 0
    has_more: Optional[bool] = None
    """Explicit pagination flag, None when the payload has none."""


def _pagination_flag(pagination: Any) -> Optional[bool]:
    if not isinstance(pagination, dict):
        return None
    for key in ("hasMore", "hasNextPage"):
        if isinstance(pagination.get(key), bool):
            return pagination[key]
    page, total_pages = pagination.get("page"), pagination.get("totalPages")
    if isinstance(page, int) and isinstance(total_pages, int):
        return page < total_pages
    return None


def decode_locations_page(payload: Any) -> LocationsPage:
    """
    Decode a locations response body.

    Accepts ``{"locations": [...]}`` at the root or the older
    ``{"data": {"locations": [...]}}`` envelope. An unrecognised body
    decodes to an empty page.
    """
    if not isinstance(payload, dict):
        logger.warning("Unparseable locations payload of type %s", type(payload).__name__)
        return LocationsPage(has_more=False)

    records = payload.get("locations")
    pagination = payload.get("pagination")
    if not isinstance(records, list):
        data = payload.get("data")
        if isinstance(data, dict):
            records = data.get("locations")
            pagination = pagination if pagination is not None else data.get("pagination")

    if not isinstance(records, list):
        logger.warning("Locations payload has no locations array (keys: %s)", sorted(payload))
        return LocationsPage(has_more=False)

    points: List[Point] = []
    skipped = 0
    for raw in records:
        try:
            points.append(LocationRecord.model_validate(raw).to_point())
        except ValidationError as exc:
            skipped += 1
            logger.warning("Skipping malformed location record: %s", exc.errors()[0].get("msg"))

    return LocationsPage(
        points=points,
        num_records=len(records),
        num_skipped=skipped,
        has_more=_pagination_flag(pagination),
    )


def dedupe_points(points: Iterable[Point]) -> List[Point]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    unique: List[Point] = []
    for point in points:
        if point.id in seen:
            logger.debug("Dropping duplicate location id %s", point.id)
            continue
        seen.add(point.id)
        unique.append(point)
    return unique


class LocationInteraction(BaseModel):
    location_id: str = Field(alias="locationId")
    is_saved: bool = Field(default=False, alias="isSaved")
    is_subscribed: bool = Field(default=False, alias="isSubscribed")
    save_count: Optional[int] = Field(default=None, alias="saveCount")
    subscriber_count: Optional[int] = Field(default=None, alias="subscriberCount")

    model_config = {"populate_by_name": True}

    @field_validator("is_saved", "is_subscribed", mode="before")
    @classmethod
    def _null_as_false(cls, value: Any) -> Any:
        return False if value is None else value


class InteractionStateData(BaseModel):
    interactions: List[Any] = Field(default_factory=list)
    """Raw items, validated one at a time."""

    total_locations: Optional[int] = Field(default=None, alias="totalLocations")
    total_saved: Optional[int] = Field(default=None, alias="totalSaved")
    total_subscribed: Optional[int] = Field(default=None, alias="totalSubscribed")

    model_config = {"populate_by_name": True}


class InteractionStateResponse(BaseModel):
    success: bool = False
    message: str = ""
    data: Optional[InteractionStateData] = None
    error: Optional[str] = None
    code: Optional[str] = None


def decode_interaction_states(payload: Any) -> Dict[str, InteractionState]:
    """
    Decode an interaction-state response into id -> InteractionState.

    Raises:
        InteractionStateError: If the body is malformed or reports failure
    """
    try:
        response = InteractionStateResponse.model_validate(payload)
    except ValidationError as exc:
        raise InteractionStateError(f"Malformed interaction state response: {exc}") from exc

    if not response.success or response.data is None:
        raise InteractionStateError(
            response.error or response.message or "Interaction state request was not successful"
        )

    states: Dict[str, InteractionState] = {}
    for raw in response.data.interactions:
        try:
            item = LocationInteraction.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Skipping malformed interaction state: %s", exc.errors()[0].get("msg"))
            continue
        states[item.location_id] = InteractionState(
            saved=item.is_saved,
            subscribed=item.is_subscribed,
            save_count=item.save_count,
            subscriber_count=item.subscriber_count,
        )
    return states

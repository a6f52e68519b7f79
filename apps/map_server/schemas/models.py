"""Pydantic models for the location cluster map server."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from src.clustering.models import Point
from src.mapping.annotations import Annotation


class LatLng(BaseModel):
    """Simple latitude/longitude container."""

    lat: float = Field(..., description="Latitude in decimal degrees")
    lng: float = Field(..., description="Longitude in decimal degrees")


class LocationSummary(BaseModel):
    """A location as shown in previews and cluster pickers."""

    id: str
    name: str
    lat: float
    lng: float
    address: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    claim_status: Optional[str] = Field(default=None, alias="claimStatus")
    is_saved: bool = Field(False, alias="isSaved")
    is_subscribed: bool = Field(False, alias="isSubscribed")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_point(cls, point: Point) -> "LocationSummary":
        return cls(
            id=point.id,
            name=point.name,
            lat=point.lat,
            lng=point.lng,
            address=point.address,
            categories=list(point.categories),
            claim_status=point.claim_status,
            is_saved=point.is_saved,
            is_subscribed=point.is_subscribed,
        )


class ClusterAnnotation(BaseModel):
    annotation_id: str = Field(..., alias="annotationId")
    position: LatLng
    glyph: Literal["pin", "badge"]
    badge: Optional[str] = None
    title: str
    color: str
    count: int
    location_ids: List[str] = Field(default_factory=list, alias="locationIds")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_annotation(cls, annotation: Annotation) -> "ClusterAnnotation":
        return cls(
            annotation_id=annotation.annotation_id,
            position=LatLng(lat=annotation.position.lat, lng=annotation.position.lng),
            glyph=annotation.glyph,
            badge=annotation.badge,
            title=annotation.title,
            color=annotation.color,
            count=annotation.cluster.count,
            location_ids=annotation.cluster.member_ids,
        )


class LocationClustersRequest(BaseModel):
    radius_m: Optional[float] = Field(
        default=None, gt=0, le=50000, alias="radiusM",
        description="Override the profile's clustering radius (metres)",
    )

    model_config = {"populate_by_name": True}


class ClusteringStats(BaseModel):
    num_input: int = Field(..., alias="numInput")
    num_valid: int = Field(..., alias="numValid")
    num_rejected: int = Field(..., alias="numRejected")
    num_clusters: int = Field(..., alias="numClusters")
    num_singletons: int = Field(..., alias="numSingletons")
    radius_m: float = Field(..., alias="radiusM")

    model_config = {"populate_by_name": True}


class LocationClustersResponse(BaseModel):
    generation: int
    annotations: List[ClusterAnnotation]
    stats: Optional[ClusteringStats] = None


class SelectClusterRequest(BaseModel):
    generation: int
    annotation_id: str = Field(..., alias="annotationId")

    model_config = {"populate_by_name": True}


class PickLocationRequest(BaseModel):
    generation: int
    annotation_id: str = Field(..., alias="annotationId")
    location_id: str = Field(..., alias="locationId")

    model_config = {"populate_by_name": True}


class SelectionResponse(BaseModel):
    intent: Literal["preview", "picker"]
    location: Optional[LocationSummary] = None
    locations: List[LocationSummary] = Field(default_factory=list)
    count: int = 1

"""FastAPI server exposing clustered location pins to map clients."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .schemas.models import (
    ClusterAnnotation,
    ClusteringStats,
    LocationClustersRequest,
    LocationClustersResponse,
    LocationSummary,
    PickLocationRequest,
    SelectClusterRequest,
    SelectionResponse,
)
from src.clustering.clusterer import ClusteringConfig
from src.clustering.models import Coordinate
from src.mapping.annotations import (
    DEFAULT_PRIMARY_COLOR,
    AnnotationSync,
    InMemoryMapSurface,
    annotations_to_widget,
)
from src.service import ClusterMapService
from src.state.selection import SelectionIntent, ShowClusterPicker, ShowSinglePreview, resolve_pick
from src.tools.config_loader import ConfigLoader


app = FastAPI(title="Location Cluster Map Server", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_service: Optional[ClusterMapService] = None
_sync: Optional[AnnotationSync] = None


def build_service(profile: Dict[str, Any]) -> ClusterMapService:
    return ClusterMapService.from_config(profile)


def get_service() -> ClusterMapService:
    global _service, _sync
    if _service is None:
        profile = ConfigLoader.load_default_or_env_profile()
        color = (profile.get("map", {}) or {}).get("primary_color", DEFAULT_PRIMARY_COLOR)
        _service = build_service(profile)
        _sync = AnnotationSync(_service.store, InMemoryMapSurface(), color=color).attach()
    return _service


def get_sync() -> AnnotationSync:
    get_service()
    assert _sync is not None
    return _sync


def reset_state() -> None:
    """Drop the shared service (used when the profile or sources change)."""
    global _service, _sync
    if _sync is not None:
        _sync.detach()
    _service = None
    _sync = None


def _selection_response(intent: SelectionIntent) -> SelectionResponse:
    if isinstance(intent, ShowSinglePreview):
        return SelectionResponse(
            intent="preview", location=LocationSummary.from_point(intent.point), count=1
        )
    return SelectionResponse(
        intent="picker",
        locations=[LocationSummary.from_point(p) for p in intent.cluster.members],
        count=intent.cluster.count,
    )


def _require_current(service: ClusterMapService, generation: int) -> None:
    if not service.store.is_current(generation):
        raise HTTPException(
            status_code=409,
            detail=f"Generation {generation} is not current (current: {service.store.generation}).",
        )


def _tap(generation: int, annotation_id: str) -> SelectionIntent:
    service = get_service()
    _require_current(service, generation)
    try:
        return get_sync().tap(annotation_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=exc.args[0]) from exc


@app.get("/health")
async def health_check() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/actions/location_clusters")
async def location_clusters_action(request: LocationClustersRequest) -> Dict[str, Any]:
    service = get_service()
    config = ClusteringConfig(radius_m=request.radius_m) if request.radius_m else None

    snapshot = await service.refresh(config=config)
    if snapshot is None:
        raise HTTPException(
            status_code=503,
            detail={"error": service.state.error, "retryable": service.state.retryable},
        )

    annotations = get_sync().annotations
    stats = None
    diagnostics = service.state.diagnostics
    if diagnostics is not None:
        stats = ClusteringStats(
            num_input=diagnostics.num_input,
            num_valid=diagnostics.num_valid,
            num_rejected=diagnostics.num_rejected,
            num_clusters=diagnostics.num_clusters,
            num_singletons=diagnostics.num_singletons,
            radius_m=diagnostics.radius_m,
        )

    response = LocationClustersResponse(
        generation=snapshot.generation,
        annotations=[ClusterAnnotation.from_annotation(a) for a in annotations],
        stats=stats,
    )

    center = None
    if annotations:
        center = Coordinate(
            lat=sum(a.position.lat for a in annotations) / len(annotations),
            lng=sum(a.position.lng for a in annotations) / len(annotations),
        )
    widget_payload = annotations_to_widget(annotations, center)
    widget_payload["assetsBaseUrl"] = "/assets"

    payload = response.model_dump(by_alias=True)
    payload["_meta"] = {"openai": {"outputTemplate": widget_payload}}
    return payload


@app.post("/actions/select_cluster")
async def select_cluster_action(request: SelectClusterRequest) -> Dict[str, Any]:
    intent = _tap(request.generation, request.annotation_id)
    return _selection_response(intent).model_dump(by_alias=True)


@app.post("/actions/pick_location")
async def pick_location_action(request: PickLocationRequest) -> Dict[str, Any]:
    intent = _tap(request.generation, request.annotation_id)
    if isinstance(intent, ShowClusterPicker):
        try:
            intent = resolve_pick(intent, request.location_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=exc.args[0]) from exc
    elif intent.point.id != request.location_id:
        raise HTTPException(
            status_code=404,
            detail=f"Location '{request.location_id}' is not in the selected cluster",
        )
    return _selection_response(intent).model_dump(by_alias=True)

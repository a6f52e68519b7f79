"""Map annotations for cluster snapshots."""

from .annotations import (
    BADGE_GLYPH,
    PIN_GLYPH,
    Annotation,
    AnnotationSync,
    InMemoryMapSurface,
    MapSurface,
    annotations_to_widget,
    build_annotations,
)

__all__ = [
    "BADGE_GLYPH",
    "PIN_GLYPH",
    "Annotation",
    "AnnotationSync",
    "InMemoryMapSurface",
    "MapSurface",
    "annotations_to_widget",
    "build_annotations",
]

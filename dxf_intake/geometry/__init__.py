"""Geometric records and design-level statistics."""

from dxf_intake.geometry.design_stats import (
    BoundingBox,
    DesignStatistics,
    calculate_bounding_box,
    calculate_design_statistics,
)
from dxf_intake.geometry.entities import (
    EntityKind,
    ParsedEntity,
    Point2D,
    Point3D,
    finalize_entity,
)

__all__ = [
    "BoundingBox",
    "DesignStatistics",
    "calculate_bounding_box",
    "calculate_design_statistics",
    "EntityKind",
    "ParsedEntity",
    "Point2D",
    "Point3D",
    "finalize_entity",
]

"""
Geometric entity records for DXF cut geometry.

Provides:
- EntityKind: the five entity types the pipeline consumes
- EntityBuilder: mutable staging record filled by the parser
- ParsedEntity: immutable record with computed length and centroid
- finalize_entity: builder -> ParsedEntity conversion

The builder never leaves the parser; everything downstream works on
ParsedEntity only.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class EntityKind(Enum):
    """DXF entity type consumed by the pipeline."""
    LINE = "LINE"
    LWPOLYLINE = "LWPOLYLINE"
    POLYLINE = "POLYLINE"
    CIRCLE = "CIRCLE"
    ARC = "ARC"

    @property
    def is_polyline(self) -> bool:
        return self in (EntityKind.LWPOLYLINE, EntityKind.POLYLINE)

    @classmethod
    def from_name(cls, name: str) -> Optional['EntityKind']:
        """Map a DXF type name to a kind, None for unsupported types."""
        try:
            return cls(name)
        except ValueError:
            return None


# Bit 0 of group code 70 on polylines
POLYLINE_CLOSED_FLAG = 1


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float

    def distance_to(self, other: 'Point2D') -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Point3D:
    x: float
    y: float
    z: float = 0.0

    def to_2d(self) -> Point2D:
        """Orthographic projection onto the XY plane."""
        return Point2D(self.x, self.y)


@dataclass
class EntityBuilder:
    """Staging record accumulated while scanning one entity.

    Attributes:
        kind: Entity type
        layer: Layer name (group code 8), "0" when absent
        color_index: ACI color (group code 62)
        line_type: Line type name (group code 6)
        visible: False when group code 60 carries the invisible flag
        radius: Circle/arc radius (group code 40)
        start_angle: Arc start angle in radians (group code 50)
        end_angle: Arc end angle in radians (group code 51)
        flags: Polyline flag bitmask (group code 70)
        vertices: Accumulated vertex buffer
    """
    kind: EntityKind
    layer: str = "0"
    color_index: Optional[int] = None
    line_type: Optional[str] = None
    visible: bool = True
    radius: Optional[float] = None
    start_angle: Optional[float] = None
    end_angle: Optional[float] = None
    flags: int = 0
    vertices: List[Point3D] = field(default_factory=list)

    @property
    def closed(self) -> bool:
        return self.kind.is_polyline and bool(self.flags & POLYLINE_CLOSED_FLAG)


@dataclass(frozen=True)
class ParsedEntity:
    """Finalized geometric entity.

    Attributes:
        kind: Entity type
        layer: Layer name (case-sensitive)
        vertices: Ordered 3D vertices as read from the file
        points_2d: XY projection of vertices, same length and order
        length: Cut length (segment sum, perimeter or arc length)
        centroid: Mean of points_2d, None when there are no points
        closed: Closed polyline flag
        radius: Circle/arc radius
        start_angle: Arc start angle (radians)
        end_angle: Arc end angle (radians)
        color_index: ACI color hint
        line_type: Line type hint
        visible: Visibility flag
    """
    kind: EntityKind
    layer: str
    vertices: Tuple[Point3D, ...]
    points_2d: Tuple[Point2D, ...]
    length: float
    centroid: Optional[Point2D]
    closed: bool = False
    radius: Optional[float] = None
    start_angle: Optional[float] = None
    end_angle: Optional[float] = None
    color_index: Optional[int] = None
    line_type: Optional[str] = None
    visible: bool = True

    @property
    def has_geometry(self) -> bool:
        return len(self.points_2d) > 0

    def has_valid_geometry(self) -> bool:
        """Check the kind-specific minimum vertex/parameter requirements."""
        n_points = len(self.points_2d)
        if self.kind is EntityKind.LINE or self.kind.is_polyline:
            return n_points >= 2
        if self.kind is EntityKind.CIRCLE:
            return n_points >= 1 and self.radius is not None and self.radius > 0
        if self.kind is EntityKind.ARC:
            return (
                n_points >= 1
                and self.radius is not None and self.radius > 0
                and self.start_angle is not None
                and self.end_angle is not None
            )
        return False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (UI/visualization layer)."""
        return {
            'entity_type': self.kind.value,
            'layer': self.layer,
            'length': self.length,
            'closed': self.closed,
            'points': [{'x': p.x, 'y': p.y} for p in self.points_2d],
        }


def _path_length(points: Tuple[Point2D, ...], closed: bool) -> float:
    total = 0.0
    for p1, p2 in zip(points, points[1:]):
        total += p1.distance_to(p2)
    if closed and len(points) >= 3:
        total += points[-1].distance_to(points[0])
    return total


def _arc_length(radius: Optional[float],
                start_angle: Optional[float],
                end_angle: Optional[float]) -> float:
    if radius is None or start_angle is None or end_angle is None:
        return 0.0
    if end_angle < start_angle:
        end_angle += 2 * math.pi
    return radius * (end_angle - start_angle)


def calculate_length(kind: EntityKind,
                     points: Tuple[Point2D, ...],
                     closed: bool = False,
                     radius: Optional[float] = None,
                     start_angle: Optional[float] = None,
                     end_angle: Optional[float] = None) -> float:
    """Compute the cut length of an entity.

    LINE:      distance between the first two points (0 with fewer than 2).
    POLYLINE:  sum of consecutive segments, plus last->first when closed
               and at least 3 points.
    CIRCLE:    2*pi*r for a positive radius, else 0.
    ARC:       r*(end - start), end wrapped by 2*pi when below start.

    Args:
        kind: Entity type
        points: 2D points of the entity
        closed: Closed polyline flag
        radius: Circle/arc radius
        start_angle: Arc start angle (radians)
        end_angle: Arc end angle (radians)

    Returns:
        Length in drawing units (>= 0)
    """
    if kind is EntityKind.LINE:
        if len(points) < 2:
            return 0.0
        return points[0].distance_to(points[1])

    if kind.is_polyline:
        return _path_length(points, closed)

    if kind is EntityKind.CIRCLE:
        if radius is None or radius <= 0:
            return 0.0
        return 2 * math.pi * radius

    if kind is EntityKind.ARC:
        return _arc_length(radius, start_angle, end_angle)

    return 0.0


def calculate_centroid(points: Tuple[Point2D, ...]) -> Optional[Point2D]:
    """Arithmetic mean of the points, None for an empty point list."""
    if not points:
        return None
    n = len(points)
    return Point2D(
        sum(p.x for p in points) / n,
        sum(p.y for p in points) / n,
    )


def finalize_entity(builder: EntityBuilder) -> ParsedEntity:
    """Consume a staging record into an immutable ParsedEntity.

    Args:
        builder: Entity accumulated by the parser

    Returns:
        ParsedEntity with projected points, length and centroid
    """
    vertices = tuple(builder.vertices)
    points_2d = tuple(v.to_2d() for v in vertices)
    closed = builder.closed

    length = calculate_length(
        builder.kind,
        points_2d,
        closed=closed,
        radius=builder.radius,
        start_angle=builder.start_angle,
        end_angle=builder.end_angle,
    )

    return ParsedEntity(
        kind=builder.kind,
        layer=builder.layer,
        vertices=vertices,
        points_2d=points_2d,
        length=length,
        centroid=calculate_centroid(points_2d),
        closed=closed,
        radius=builder.radius,
        start_angle=builder.start_angle,
        end_angle=builder.end_angle,
        color_index=builder.color_index,
        line_type=builder.line_type,
        visible=builder.visible,
    )

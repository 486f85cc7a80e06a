"""
Design-level statistics over parsed entities.

Provides:
- 2D axis-aligned bounding box
- Design centroid over all constituent points
- Mean / standard deviation of point-to-centroid distance
- Entity density

Computed once per run, before filtering; the filter stages use these
values as fixed reference.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from dxf_intake.geometry.entities import ParsedEntity, Point2D

logger = logging.getLogger(__name__)

# max_dimension used when the design has zero area (point or collinear)
DEFAULT_MAX_DIMENSION = 100.0


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned 2D bounding box."""
    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def max_dimension(self) -> float:
        return max(self.width, self.height)

    @property
    def center(self) -> Point2D:
        return Point2D((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'min_x': self.min_x,
            'min_y': self.min_y,
            'max_x': self.max_x,
            'max_y': self.max_y,
            'width': self.width,
            'height': self.height,
            'area': self.area,
        }


@dataclass(frozen=True)
class DesignStatistics:
    """Global descriptors of a design.

    Attributes:
        centroid: Mean of all entity points, None for a design without points
        bbox: Bounding box of all points
        max_dimension: max(width, height), DEFAULT_MAX_DIMENSION if the area is zero
        mean_distance: Mean point-to-centroid distance
        std_deviation: Population std of point-to-centroid distance
        entity_density: Entity count / bounding box area (0 for zero area)
        entity_count: Number of entities contributing
        point_count: Number of points contributing
    """
    centroid: Optional[Point2D]
    bbox: BoundingBox
    max_dimension: float
    mean_distance: float
    std_deviation: float
    entity_density: float
    entity_count: int
    point_count: int

    @classmethod
    def empty(cls) -> 'DesignStatistics':
        return cls(
            centroid=None,
            bbox=BoundingBox(),
            max_dimension=DEFAULT_MAX_DIMENSION,
            mean_distance=0.0,
            std_deviation=0.0,
            entity_density=0.0,
            entity_count=0,
            point_count=0,
        )

    def distance_from_centroid(self, point: Point2D) -> float:
        """Distance of a point to the design centroid (0 without centroid)."""
        if self.centroid is None:
            return 0.0
        return self.centroid.distance_to(point)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'center_x': self.centroid.x if self.centroid else None,
            'center_y': self.centroid.y if self.centroid else None,
            'max_dimension': self.max_dimension,
            'mean_distance': self.mean_distance,
            'std_deviation': self.std_deviation,
            'entity_density': self.entity_density,
            'entity_count': self.entity_count,
            'point_count': self.point_count,
            'bbox': self.bbox.to_dict(),
        }


def points_array(entities: Iterable[ParsedEntity]) -> NDArray[np.float64]:
    """Stack the 2D points of all entities into an Nx2 array."""
    coords = [(p.x, p.y) for e in entities for p in e.points_2d]
    if not coords:
        return np.zeros((0, 2), dtype=np.float64)
    return np.array(coords, dtype=np.float64)


def calculate_bounding_box(points: NDArray[np.float64]) -> BoundingBox:
    """Calculate the bounding box of an Nx2 point array (zeros when empty)."""
    if len(points) == 0:
        return BoundingBox()
    mins = points.min(axis=0)
    maxs = points.max(axis=0)
    return BoundingBox(float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1]))


def calculate_design_statistics(entities: Sequence[ParsedEntity]) -> DesignStatistics:
    """Aggregate global statistics over finalized entities.

    The centroid is the mean over every constituent point, not over entity
    centroids, so entities with many vertices weigh accordingly.

    Args:
        entities: Finalized entities (before any filtering)

    Returns:
        DesignStatistics instance
    """
    points = points_array(entities)
    if len(points) == 0:
        return DesignStatistics.empty()

    center = points.mean(axis=0)
    distances = np.linalg.norm(points - center, axis=1)
    bbox = calculate_bounding_box(points)

    area = bbox.area
    # Zero area: a point or a single straight run; thresholds use the nominal size
    max_dimension = bbox.max_dimension if area > 0 else DEFAULT_MAX_DIMENSION

    entity_count = sum(1 for e in entities if e.has_geometry)

    stats = DesignStatistics(
        centroid=Point2D(float(center[0]), float(center[1])),
        bbox=bbox,
        max_dimension=float(max_dimension),
        mean_distance=float(distances.mean()),
        std_deviation=float(distances.std()),
        entity_density=entity_count / area if area > 0 else 0.0,
        entity_count=entity_count,
        point_count=len(points),
    )

    logger.debug(
        "Design statistics calculated",
        extra={
            'entities': entity_count,
            'points': len(points),
            'max_dimension': stats.max_dimension,
            'mean_distance': stats.mean_distance,
        },
    )
    return stats

"""
Final reportable metrics of one DXF analysis run.

Provides:
- Layer: per-layer breakdown of surviving entities
- MaterialCoverage: usable area vs. a user-supplied sheet
- QualityAssessment: coarse quality grade from the filter counts
- Metrics: read-only snapshot returned by the pipeline
- aggregate_metrics: build Metrics from the filter stage outputs
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from dxf_intake.filtering.rules import (
    DEFAULT_THRESHOLDS,
    FilterStatistics,
    FilterThresholds,
    RejectedEntity,
)
from dxf_intake.geometry.design_stats import (
    BoundingBox,
    DesignStatistics,
    calculate_bounding_box,
    points_array,
)
from dxf_intake.geometry.entities import ParsedEntity

logger = logging.getLogger(__name__)

# Reported nesting efficiency when any vector survives. No packing is computed.
DEFAULT_SHEET_EFFICIENCY = 0.85


@dataclass(frozen=True)
class Layer:
    """Surviving entities of one layer.

    is_hidden comes from the layer-name patterns only, so a hidden layer
    may be listed with zero surviving entities.
    """
    name: str
    entities: Tuple[ParsedEntity, ...] = ()
    is_hidden: bool = False

    @property
    def vector_count(self) -> int:
        return len(self.entities)

    @property
    def total_length(self) -> float:
        return sum(e.length for e in self.entities)

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'vector_count': self.vector_count,
            'total_length': self.total_length,
            'is_hidden': self.is_hidden,
        }


@dataclass(frozen=True)
class MaterialCoverage:
    """Usable design area relative to a material sheet."""
    sheet_width: float
    sheet_height: float
    used_area: float
    efficiency: float

    @property
    def sheet_area(self) -> float:
        return self.sheet_width * self.sheet_height

    @property
    def coverage_ratio(self) -> float:
        if self.sheet_area <= 0:
            return 0.0
        return self.used_area / self.sheet_area

    def to_dict(self) -> dict:
        return {
            'sheet_width': self.sheet_width,
            'sheet_height': self.sheet_height,
            'sheet_area': self.sheet_area,
            'used_area': self.used_area,
            'coverage_ratio': self.coverage_ratio,
            'efficiency': self.efficiency,
        }


@dataclass(frozen=True)
class QualityAssessment:
    """Design quality grade derived from how much had to be filtered."""
    status: str
    label: str
    score: int

    @classmethod
    def from_filter_statistics(cls, stats: FilterStatistics) -> 'QualityAssessment':
        total = stats.total
        phantom = stats.phantom_entities
        if total == 0:
            return cls("excellent", "No artifacts detected", 100)
        if phantom == 0 and total < 3:
            return cls("very-good", "Basic filtering applied", 95)
        if phantom < 3 and total < 10:
            return cls("good", "Some entities filtered", 85)
        return cls("filtered", "Multiple artifacts filtered", max(70, 100 - phantom * 2))

    def to_dict(self) -> dict:
        return {'status': self.status, 'label': self.label, 'score': self.score}


@dataclass(frozen=True)
class Metrics:
    """Read-only result of one analysis run.

    Attributes:
        total_parsed: Entities produced by the parser
        valid_entities: Entities surviving every filter, in file order
        rejected_entities: Entities removed, with bucket and reason
        layers: Every layer seen in the file, in first-seen order
        bounding_box: Extent of the surviving entities only
        filter_statistics: Rejection counts by category
        design_statistics: Statistics of the unfiltered design
        material_coverage: Present when sheet dimensions were supplied
        quality: Quality grade from the filter counts
    """
    total_parsed: int = 0
    valid_entities: Tuple[ParsedEntity, ...] = ()
    rejected_entities: Tuple[RejectedEntity, ...] = ()
    layers: Tuple[Layer, ...] = ()
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    filter_statistics: FilterStatistics = field(default_factory=FilterStatistics)
    design_statistics: DesignStatistics = field(default_factory=DesignStatistics.empty)
    material_coverage: Optional[MaterialCoverage] = None
    quality: QualityAssessment = field(
        default_factory=lambda: QualityAssessment.from_filter_statistics(FilterStatistics())
    )

    @property
    def total_vectors(self) -> int:
        return len(self.valid_entities)

    @property
    def total_length(self) -> float:
        return sum(e.length for e in self.valid_entities)

    @property
    def usable_area(self) -> float:
        return self.bounding_box.area

    @property
    def layers_with_vectors(self) -> List[Layer]:
        return [layer for layer in self.layers if layer.vector_count > 0]

    @property
    def total_layers(self) -> int:
        return len(self.layers_with_vectors)

    @classmethod
    def empty(cls,
              sheet_width: Optional[float] = None,
              sheet_height: Optional[float] = None,
              efficiency: float = DEFAULT_SHEET_EFFICIENCY) -> 'Metrics':
        """Zero-everything result (no geometry or internal fault)."""
        return cls(material_coverage=build_material_coverage(
            0.0, 0, sheet_width, sheet_height, efficiency))


def build_material_coverage(used_area: float,
                            total_vectors: int,
                            sheet_width: Optional[float],
                            sheet_height: Optional[float],
                            efficiency: float = DEFAULT_SHEET_EFFICIENCY,
                            ) -> Optional[MaterialCoverage]:
    """Coverage of the sheet, None unless both positive dimensions are given."""
    if sheet_width is None or sheet_height is None:
        return None
    if sheet_width <= 0 or sheet_height <= 0:
        logger.warning("Ignoring non-positive sheet size %sx%s", sheet_width, sheet_height)
        return None
    return MaterialCoverage(
        sheet_width=float(sheet_width),
        sheet_height=float(sheet_height),
        used_area=used_area,
        efficiency=efficiency if total_vectors > 0 else 0.0,
    )


def build_layers(all_entities: Sequence[ParsedEntity],
                 valid: Sequence[ParsedEntity],
                 thresholds: FilterThresholds = DEFAULT_THRESHOLDS) -> Tuple[Layer, ...]:
    """Partition surviving entities by layer.

    Layers are listed in first-seen order over all parsed entities, so
    layers whose entities were all filtered still appear.
    """
    by_layer: Dict[str, List[ParsedEntity]] = {}
    for entity in all_entities:
        by_layer.setdefault(entity.layer, [])
    for entity in valid:
        by_layer.setdefault(entity.layer, []).append(entity)

    return tuple(
        Layer(name=name,
              entities=tuple(members),
              is_hidden=thresholds.is_hidden_layer(name))
        for name, members in by_layer.items()
    )


def aggregate_metrics(all_entities: Sequence[ParsedEntity],
                      valid: Sequence[ParsedEntity],
                      rejected: Sequence[RejectedEntity],
                      filter_stats: FilterStatistics,
                      design_stats: DesignStatistics,
                      sheet_width: Optional[float] = None,
                      sheet_height: Optional[float] = None,
                      thresholds: FilterThresholds = DEFAULT_THRESHOLDS,
                      efficiency: float = DEFAULT_SHEET_EFFICIENCY) -> Metrics:
    """Build the final Metrics snapshot.

    Args:
        all_entities: Every entity produced by the parser
        valid: Survivors of the last filter stage
        rejected: Rejections of all stages
        filter_stats: Rejection counts
        design_stats: Statistics of the unfiltered design
        sheet_width: Optional material sheet width
        sheet_height: Optional material sheet height
        thresholds: Filter constants (layer patterns)
        efficiency: Reported efficiency when vectors survive

    Returns:
        Metrics instance
    """
    bbox = calculate_bounding_box(points_array(valid))
    counts = replace(filter_stats)

    return Metrics(
        total_parsed=len(all_entities),
        valid_entities=tuple(valid),
        rejected_entities=tuple(rejected),
        layers=build_layers(all_entities, valid, thresholds),
        bounding_box=bbox,
        filter_statistics=counts,
        design_statistics=design_stats,
        material_coverage=build_material_coverage(
            bbox.area, len(valid), sheet_width, sheet_height, efficiency),
        quality=QualityAssessment.from_filter_statistics(counts),
    )

"""
Rule-based entity filter and phantom heuristics.

Rules are evaluated per entity in a fixed order, first match wins:

1. Hidden layer (name pattern)          -> hidden_layers
2. Invisible flag                       -> hidden_layers
3. Suspicious line type                 -> suspicious_lines
4. Invalid geometry                     -> zero_length
5. Zero length                          -> zero_length
6. Phantom heuristics (any check fires) -> phantom_entities

All thresholds live in FilterThresholds so they can be tuned from the
project configuration without touching control flow.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Pattern, Sequence, Tuple

from dxf_intake.geometry.design_stats import DesignStatistics
from dxf_intake.geometry.entities import EntityKind, ParsedEntity

logger = logging.getLogger(__name__)

HIDDEN_LAYER_PATTERNS: Tuple[str, ...] = (
    r"defpoints",
    r"construction",
    r"hidden",
    r"auxiliary",
    r"temp",
    r"guide",
    r"reference",
    r"dimension",
    r"text",
    r"phantom",
    r"^_",
)

SUSPICIOUS_LINETYPE_PATTERNS: Tuple[str, ...] = (
    r"hidden",
    r"construction",
    r"center",
    r"phantom",
    r"dashed",
)


class RejectionBucket(Enum):
    """Filter statistics category an entity is counted under."""
    SUSPICIOUS_LINES = "suspicious_lines"
    HIDDEN_LAYERS = "hidden_layers"
    ZERO_LENGTH = "zero_length"
    PHANTOM_ENTITIES = "phantom_entities"
    GEOMETRIC_INCONSISTENT = "geometric_inconsistent"
    CLUSTER_OUTLIERS = "cluster_outliers"


def compile_patterns(patterns: Sequence[str]) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


@dataclass(frozen=True)
class FilterThresholds:
    """Tunable constants of the filter stages.

    The cluster ratio (0.3) and the phantom distance factor (3 x max
    dimension) are empirical values kept for behavioural compatibility.
    """
    origin_tolerance: float = 0.001
    coordinate_limit: float = 10000.0
    min_length: float = 0.001
    oversized_line_factor: float = 5.0
    distance_outlier_factor: float = 3.0
    axis_aligned_factor: float = 2.0
    axis_tolerance: float = 0.001
    consistency_sigma: float = 3.0
    cluster_enabled: bool = True
    cluster_radius: float = 50.0
    cluster_neighbor_ratio: float = 0.3
    cluster_min_candidates: int = 3
    hidden_layer_patterns: Tuple[str, ...] = HIDDEN_LAYER_PATTERNS
    suspicious_linetype_patterns: Tuple[str, ...] = SUSPICIOUS_LINETYPE_PATTERNS
    _hidden_re: Tuple[Pattern, ...] = field(init=False, repr=False, compare=False)
    _linetype_re: Tuple[Pattern, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, '_hidden_re', compile_patterns(self.hidden_layer_patterns))
        object.__setattr__(self, '_linetype_re', compile_patterns(self.suspicious_linetype_patterns))

    def is_hidden_layer(self, layer: str) -> bool:
        return any(p.search(layer) for p in self._hidden_re)

    def is_suspicious_linetype(self, line_type: Optional[str]) -> bool:
        if not line_type:
            return False
        return any(p.search(line_type) for p in self._linetype_re)


DEFAULT_THRESHOLDS = FilterThresholds()


@dataclass
class FilterStatistics:
    """Rejection counts by category. Only ever incremented."""
    suspicious_lines: int = 0
    hidden_layers: int = 0
    zero_length: int = 0
    phantom_entities: int = 0
    geometric_inconsistent: int = 0
    cluster_outliers: int = 0

    def record(self, bucket: RejectionBucket, count: int = 1) -> None:
        setattr(self, bucket.value, getattr(self, bucket.value) + count)

    @property
    def total(self) -> int:
        return (
            self.suspicious_lines
            + self.hidden_layers
            + self.zero_length
            + self.phantom_entities
            + self.geometric_inconsistent
            + self.cluster_outliers
        )

    def to_dict(self) -> dict:
        return {bucket.value: getattr(self, bucket.value) for bucket in RejectionBucket}


@dataclass(frozen=True)
class RejectedEntity:
    """An entity removed by one of the filter stages."""
    entity: ParsedEntity
    bucket: RejectionBucket
    reason: str

    def to_dict(self) -> dict:
        return {
            'entity_type': self.entity.kind.value,
            'layer': self.entity.layer,
            'length': self.entity.length,
            'category': self.bucket.value,
            'rejection_reason': self.reason,
        }


# ---------------------------------------------------------------------------
# Phantom heuristics
# ---------------------------------------------------------------------------

def _touches_origin(entity: ParsedEntity, t: FilterThresholds) -> bool:
    return any(
        abs(p.x) < t.origin_tolerance and abs(p.y) < t.origin_tolerance
        for p in entity.points_2d[:2]
    )


def _has_extreme_coordinates(entity: ParsedEntity, t: FilterThresholds) -> bool:
    return any(
        abs(p.x) > t.coordinate_limit or abs(p.y) > t.coordinate_limit
        for p in entity.points_2d
    )


def _is_axis_aligned(entity: ParsedEntity, t: FilterThresholds) -> bool:
    start, end = entity.points_2d[0], entity.points_2d[1]
    return abs(start.y - end.y) < t.axis_tolerance or abs(start.x - end.x) < t.axis_tolerance


def phantom_reason(entity: ParsedEntity,
                   stats: DesignStatistics,
                   thresholds: FilterThresholds = DEFAULT_THRESHOLDS) -> Optional[str]:
    """Run the phantom heuristics on an entity.

    Args:
        entity: Entity that passed rules 1-5
        stats: Design statistics computed before filtering
        thresholds: Filter constants

    Returns:
        Reason of the first check that fired, None if the entity looks real
    """
    is_line = entity.kind is EntityKind.LINE and len(entity.points_2d) >= 2
    max_dim = stats.max_dimension

    if is_line and _touches_origin(entity, thresholds):
        return "line endpoint at origin (0,0)"

    if _has_extreme_coordinates(entity, thresholds):
        return f"coordinates beyond +/-{thresholds.coordinate_limit:g}"

    if is_line and entity.length > thresholds.oversized_line_factor * max_dim:
        return (f"line length {entity.length:.3f} exceeds "
                f"{thresholds.oversized_line_factor:g} x design size")

    if entity.centroid is not None and stats.centroid is not None:
        distance = stats.distance_from_centroid(entity.centroid)
        if distance > thresholds.distance_outlier_factor * max_dim:
            return (f"centroid {distance:.3f} from design centre exceeds "
                    f"{thresholds.distance_outlier_factor:g} x design size")

    if (is_line
            and _is_axis_aligned(entity, thresholds)
            and entity.length > thresholds.axis_aligned_factor * max_dim):
        return "axis-aligned line longer than the design"

    return None


def rejection_for(entity: ParsedEntity,
                  stats: DesignStatistics,
                  thresholds: FilterThresholds = DEFAULT_THRESHOLDS,
                  ) -> Optional[Tuple[RejectionBucket, str]]:
    """Classify one entity against rules 1-6.

    Returns:
        (bucket, reason) of the first matching rule, None if it passes
    """
    if thresholds.is_hidden_layer(entity.layer):
        return RejectionBucket.HIDDEN_LAYERS, f"hidden layer {entity.layer!r}"

    if not entity.visible:
        return RejectionBucket.HIDDEN_LAYERS, "invisible entity"

    if thresholds.is_suspicious_linetype(entity.line_type):
        return RejectionBucket.SUSPICIOUS_LINES, f"suspicious line type {entity.line_type!r}"

    if not entity.has_valid_geometry():
        return RejectionBucket.ZERO_LENGTH, f"invalid {entity.kind.value} geometry"

    if entity.length < thresholds.min_length:
        return RejectionBucket.ZERO_LENGTH, "zero length"

    reason = phantom_reason(entity, stats, thresholds)
    if reason is not None:
        return RejectionBucket.PHANTOM_ENTITIES, reason

    return None


def apply_rule_filters(entities: Sequence[ParsedEntity],
                       stats: DesignStatistics,
                       filter_stats: FilterStatistics,
                       thresholds: FilterThresholds = DEFAULT_THRESHOLDS,
                       ) -> Tuple[List[ParsedEntity], List[RejectedEntity]]:
    """Apply rules 1-6 to every entity.

    Args:
        entities: Finalized entities with geometry
        stats: Design statistics of the unfiltered design
        filter_stats: Accumulator, incremented in place
        thresholds: Filter constants

    Returns:
        (surviving entities, rejected entities), both in input order
    """
    valid: List[ParsedEntity] = []
    rejected: List[RejectedEntity] = []

    for entity in entities:
        verdict = rejection_for(entity, stats, thresholds)
        if verdict is None:
            valid.append(entity)
            continue
        bucket, reason = verdict
        filter_stats.record(bucket)
        rejected.append(RejectedEntity(entity, bucket, reason))

    logger.debug(
        "Rule filter applied",
        extra={'input': len(entities), 'valid': len(valid), 'rejected': len(rejected)},
    )
    return valid, rejected

"""Statistical second pass: drop entities far outside the point-distance distribution."""

import logging
from typing import List, Sequence, Tuple

from dxf_intake.filtering.rules import (
    DEFAULT_THRESHOLDS,
    FilterStatistics,
    FilterThresholds,
    RejectedEntity,
    RejectionBucket,
)
from dxf_intake.geometry.design_stats import DesignStatistics
from dxf_intake.geometry.entities import ParsedEntity

logger = logging.getLogger(__name__)


def consistency_threshold(stats: DesignStatistics,
                          thresholds: FilterThresholds = DEFAULT_THRESHOLDS) -> float:
    """mean_distance + sigma * std_deviation of the unfiltered design."""
    return stats.mean_distance + thresholds.consistency_sigma * stats.std_deviation


def apply_consistency_filter(entities: Sequence[ParsedEntity],
                             stats: DesignStatistics,
                             filter_stats: FilterStatistics,
                             thresholds: FilterThresholds = DEFAULT_THRESHOLDS,
                             ) -> Tuple[List[ParsedEntity], List[RejectedEntity]]:
    """Reject entities whose centroid lies beyond the consistency threshold.

    The threshold comes from the unfiltered design statistics, not from the
    survivors of the rule filter. Entities without a centroid always pass.
    With fewer than 2 entities nothing is evaluated.

    Args:
        entities: Survivors of the rule filter
        stats: Design statistics of the unfiltered design
        filter_stats: Accumulator, incremented in place
        thresholds: Filter constants

    Returns:
        (surviving entities, rejected entities)
    """
    if len(entities) < 2 or stats.centroid is None:
        return list(entities), []

    limit = consistency_threshold(stats, thresholds)
    valid: List[ParsedEntity] = []
    rejected: List[RejectedEntity] = []

    for entity in entities:
        if entity.centroid is None:
            valid.append(entity)
            continue
        distance = stats.distance_from_centroid(entity.centroid)
        if distance > limit:
            filter_stats.record(RejectionBucket.GEOMETRIC_INCONSISTENT)
            rejected.append(RejectedEntity(
                entity,
                RejectionBucket.GEOMETRIC_INCONSISTENT,
                f"centroid {distance:.3f} from design centre beyond {limit:.3f}",
            ))
        else:
            valid.append(entity)

    logger.debug(
        "Consistency filter applied",
        extra={'threshold': limit, 'valid': len(valid), 'rejected': len(rejected)},
    )
    return valid, rejected

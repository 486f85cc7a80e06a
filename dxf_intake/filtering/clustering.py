"""
Density clustering filter.

An entity survives when at least `neighbor_ratio` of the candidate
population has a centroid within `radius` of its own centroid. Neighbour
lookups go through a scipy KD-tree built once per run.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np
from scipy.spatial import cKDTree as KDTree

from dxf_intake.filtering.rules import (
    DEFAULT_THRESHOLDS,
    FilterStatistics,
    FilterThresholds,
    RejectedEntity,
    RejectionBucket,
)
from dxf_intake.geometry.entities import ParsedEntity

logger = logging.getLogger(__name__)


def count_close_neighbors(entities: Sequence[ParsedEntity], radius: float) -> List[int]:
    """Count, for every entity, the other entities with a centroid within radius.

    Entities without a centroid get -1 (not evaluated).

    Args:
        entities: Candidate entities
        radius: Neighbour radius (inclusive)

    Returns:
        Neighbour counts aligned with `entities`
    """
    indexed = [i for i, e in enumerate(entities) if e.centroid is not None]
    counts = [-1] * len(entities)
    if not indexed:
        return counts

    centroids = np.array(
        [(entities[i].centroid.x, entities[i].centroid.y) for i in indexed],
        dtype=np.float64,
    )
    tree = KDTree(centroids)
    neighbours = tree.query_ball_point(centroids, radius)

    for slot, idx in enumerate(indexed):
        # query_ball_point includes the point itself
        counts[idx] = len(neighbours[slot]) - 1
    return counts


def apply_cluster_filter(entities: Sequence[ParsedEntity],
                         filter_stats: FilterStatistics,
                         thresholds: FilterThresholds = DEFAULT_THRESHOLDS,
                         ) -> Tuple[List[ParsedEntity], List[RejectedEntity]]:
    """Reject entities isolated from the main cluster.

    No-op below `cluster_min_candidates` entities. If every entity would
    be rejected the input set is returned unchanged and nothing is counted.

    Args:
        entities: Survivors of the consistency filter
        filter_stats: Accumulator, incremented in place
        thresholds: Filter constants

    Returns:
        (surviving entities, rejected entities)
    """
    total = len(entities)
    if not thresholds.cluster_enabled or total < thresholds.cluster_min_candidates:
        return list(entities), []

    required = total * thresholds.cluster_neighbor_ratio
    counts = count_close_neighbors(entities, thresholds.cluster_radius)

    valid: List[ParsedEntity] = []
    rejected: List[RejectedEntity] = []
    for entity, count in zip(entities, counts):
        if entity.centroid is None or count >= required:
            valid.append(entity)
        else:
            rejected.append(RejectedEntity(
                entity,
                RejectionBucket.CLUSTER_OUTLIERS,
                f"{count} neighbours within {thresholds.cluster_radius:g}, "
                f"{required:.1f} required",
            ))

    if not valid:
        logger.debug("Cluster filter would remove every entity, keeping all",
                     extra={'candidates': total})
        return list(entities), []

    filter_stats.record(RejectionBucket.CLUSTER_OUTLIERS, len(rejected))
    logger.debug(
        "Cluster filter applied",
        extra={'radius': thresholds.cluster_radius, 'valid': len(valid),
               'rejected': len(rejected)},
    )
    return valid, rejected

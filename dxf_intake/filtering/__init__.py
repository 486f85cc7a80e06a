"""Filter stages separating cut geometry from parsing artifacts."""

from dxf_intake.filtering.clustering import apply_cluster_filter, count_close_neighbors
from dxf_intake.filtering.consistency import apply_consistency_filter, consistency_threshold
from dxf_intake.filtering.rules import (
    DEFAULT_THRESHOLDS,
    FilterStatistics,
    FilterThresholds,
    RejectedEntity,
    RejectionBucket,
    apply_rule_filters,
)

__all__ = [
    "apply_cluster_filter",
    "count_close_neighbors",
    "apply_consistency_filter",
    "consistency_threshold",
    "DEFAULT_THRESHOLDS",
    "FilterStatistics",
    "FilterThresholds",
    "RejectedEntity",
    "RejectionBucket",
    "apply_rule_filters",
]

"""
DXF analysis pipeline: text -> Metrics.

Stages:
  1. Parse the ENTITIES section (finalized entities)
  2. Design statistics over every entity
  3. Rule filter and phantom heuristics
  4. Geometric consistency filter
  5. Density clustering filter
  6. Metrics aggregation

The run is a pure function of (content, sheet size, config): no I/O, no
shared state, so independent files can be analysed in parallel.
parse() never raises; an internal fault is logged and yields
Metrics.empty().
"""

import logging
from typing import Optional

from dxf_intake.filtering.clustering import apply_cluster_filter
from dxf_intake.filtering.consistency import apply_consistency_filter
from dxf_intake.filtering.rules import (
    FilterStatistics,
    RejectedEntity,
    RejectionBucket,
    apply_rule_filters,
)
from dxf_intake.geometry.design_stats import calculate_design_statistics
from dxf_intake.logging_config import log_timing
from dxf_intake.metrics import Metrics, aggregate_metrics
from dxf_intake.parsing.entity_parser import parse_entities
from dxf_intake.project_config import ProjectConfig

logger = logging.getLogger(__name__)


def run_pipeline(content: str,
                 sheet_width: Optional[float] = None,
                 sheet_height: Optional[float] = None,
                 config: Optional[ProjectConfig] = None) -> Metrics:
    """Run every stage on DXF text. May raise on internal faults.

    Args:
        content: Full DXF text
        sheet_width: Optional material sheet width
        sheet_height: Optional material sheet height
        config: Project configuration (defaults if None)

    Returns:
        Metrics instance
    """
    config = config or ProjectConfig()
    thresholds = config.thresholds()
    if sheet_width is None and sheet_height is None:
        sheet_width, sheet_height = config.sheet.width, config.sheet.height

    parsed = parse_entities(content)
    entities = parsed.entities
    filter_stats = FilterStatistics()

    # Entities without vertices never reach the filters; counted as invalid geometry
    with_geometry = [e for e in entities if e.has_geometry]
    rejected = [
        RejectedEntity(e, RejectionBucket.ZERO_LENGTH, "no vertices")
        for e in entities if not e.has_geometry
    ]
    filter_stats.record(RejectionBucket.ZERO_LENGTH, len(rejected))

    design_stats = calculate_design_statistics(with_geometry)

    valid, dropped = apply_rule_filters(with_geometry, design_stats, filter_stats, thresholds)
    rejected.extend(dropped)

    valid, dropped = apply_consistency_filter(valid, design_stats, filter_stats, thresholds)
    rejected.extend(dropped)

    valid, dropped = apply_cluster_filter(valid, filter_stats, thresholds)
    rejected.extend(dropped)

    return aggregate_metrics(
        entities,
        valid,
        rejected,
        filter_stats,
        design_stats,
        sheet_width=sheet_width,
        sheet_height=sheet_height,
        thresholds=thresholds,
        efficiency=config.sheet.efficiency,
    )


def parse(content: str,
          sheet_width: Optional[float] = None,
          sheet_height: Optional[float] = None,
          config: Optional[ProjectConfig] = None) -> Metrics:
    """Analyse DXF text and return cut metrics.

    Never raises: an empty or invalid file yields a zero Metrics, and an
    unexpected internal fault is logged and converted to Metrics.empty().

    Args:
        content: Full DXF text
        sheet_width: Optional material sheet width (same units as the design)
        sheet_height: Optional material sheet height
        config: Project configuration (defaults if None)

    Returns:
        Metrics instance

    Example:
        >>> metrics = parse(text, sheet_width=600, sheet_height=400)
        >>> print(f"{metrics.total_vectors} vectors, {metrics.total_length:.1f} mm")
    """
    config = config or ProjectConfig()
    try:
        with log_timing(logger, "DXF analysis", chars=len(content)):
            metrics = run_pipeline(content, sheet_width, sheet_height, config)
    except Exception:
        logger.exception("DXF analysis failed, returning empty metrics")
        if sheet_width is None and sheet_height is None:
            sheet_width, sheet_height = config.sheet.width, config.sheet.height
        return Metrics.empty(sheet_width, sheet_height, config.sheet.efficiency)

    logger.info(
        "DXF analysed: %d/%d entities valid, cut length %.1f",
        metrics.total_vectors, metrics.total_parsed, metrics.total_length,
        extra={'filtered': metrics.filter_statistics.total},
    )
    return metrics

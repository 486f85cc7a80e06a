"""
Analysis report built from Metrics.

The top-level keys (success, statistics, bounding_box, cut_length,
entities) keep the response shape consumed by the order form; the
remaining keys expose the full metrics. Values are rounded here only,
Metrics itself keeps full precision.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dxf_intake.metrics import Metrics


def _round(value: float, digits: int) -> float:
    return round(float(value), digits)


def metrics_to_dict(metrics: Metrics,
                    source: Optional[str] = None,
                    include_points: bool = True) -> Dict[str, Any]:
    """Convert Metrics to a JSON-serializable report.

    Args:
        metrics: Result of parse()
        source: Optional file name recorded in the report
        include_points: Include the point list of every valid entity

    Returns:
        Report dictionary
    """
    bbox = metrics.bounding_box
    total_length = metrics.total_length

    valid = []
    for entity in metrics.valid_entities:
        item = {
            'entity_type': entity.kind.value,
            'layer': entity.layer,
            'length': _round(entity.length, 2),
        }
        if include_points:
            item['points'] = [{'x': p.x, 'y': p.y} for p in entity.points_2d]
        valid.append(item)

    phantom = []
    for rejected in metrics.rejected_entities:
        item = rejected.to_dict()
        item['length'] = _round(item['length'], 2)
        phantom.append(item)

    report: Dict[str, Any] = {
        'success': True,
        'statistics': {
            'total_entities': metrics.total_parsed,
            'valid_entities': metrics.total_vectors,
            'phantom_entities': len(metrics.rejected_entities),
        },
        'bounding_box': {
            'width': _round(bbox.width, 1),
            'height': _round(bbox.height, 1),
            'area': _round(bbox.area, 0),
            'min_x': _round(bbox.min_x, 2),
            'min_y': _round(bbox.min_y, 2),
            'max_x': _round(bbox.max_x, 2),
            'max_y': _round(bbox.max_y, 2),
        },
        'cut_length': {
            'total_mm': _round(total_length, 1),
            'total_m': _round(total_length / 1000, 3),
        },
        'entities': {
            'valid': valid,
            'phantom': phantom,
        },
        'total_layers': metrics.total_layers,
        'layers': [layer.to_dict() for layer in metrics.layers],
        'filter_statistics': metrics.filter_statistics.to_dict(),
        'design_statistics': metrics.design_statistics.to_dict(),
        'material_coverage': (
            metrics.material_coverage.to_dict() if metrics.material_coverage else None
        ),
        'quality': metrics.quality.to_dict(),
    }
    if source is not None:
        report['source'] = source
    return report


def to_json(metrics: Metrics, source: Optional[str] = None, indent: int = 2) -> str:
    return json.dumps(metrics_to_dict(metrics, source), indent=indent, ensure_ascii=False)


def save_report(metrics: Metrics,
                path: Union[str, Path],
                source: Optional[str] = None) -> None:
    """Write the JSON report to a file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(to_json(metrics, source))


def summary(metrics: Metrics) -> str:
    """Generate human-readable summary."""
    bbox = metrics.bounding_box
    stats = metrics.filter_statistics
    lines = [
        "DXF Analysis Report",
        "=" * 40,
        f"Entities parsed: {metrics.total_parsed}",
        f"Valid vectors:   {metrics.total_vectors}",
        f"Filtered:        {stats.total}",
        f"Cut length:      {metrics.total_length:.1f} mm ({metrics.total_length / 1000:.3f} m)",
        f"Extent:          {bbox.width:.1f} x {bbox.height:.1f} (area {bbox.area:.0f})",
        f"Layers in use:   {metrics.total_layers}",
        f"Quality:         {metrics.quality.label} ({metrics.quality.score})",
    ]

    if stats.total:
        lines.append("")
        lines.append("Filtered by category:")
        for name, count in stats.to_dict().items():
            if count:
                lines.append(f"  {name}: {count}")

    if metrics.layers:
        lines.append("")
        lines.append("Layers:")
        for layer in metrics.layers:
            hidden = " (hidden)" if layer.is_hidden else ""
            lines.append(
                f"  {layer.name}{hidden}: {layer.vector_count} vectors, "
                f"{layer.total_length:.1f} mm"
            )

    coverage = metrics.material_coverage
    if coverage is not None:
        lines.append("")
        lines.append(
            f"Sheet {coverage.sheet_width:g} x {coverage.sheet_height:g}: "
            f"coverage {coverage.coverage_ratio:.1%}, efficiency {coverage.efficiency:.0%}"
        )

    return "\n".join(lines)

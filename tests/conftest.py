"""
Pytest configuration and fixtures for the DXF intake analyser.

Provides:
- DXF text builders (LINE, LWPOLYLINE, POLYLINE, CIRCLE, ARC, TEXT records)
- Entity and design-statistics fixtures for filter unit tests
- A realistic part drawing and its expected metrics
- Logger reset between tests
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import pytest

from dxf_intake.geometry.design_stats import BoundingBox, DesignStatistics
from dxf_intake.geometry.entities import (
    EntityBuilder,
    EntityKind,
    ParsedEntity,
    Point2D,
    Point3D,
    finalize_entity,
)
from dxf_intake.logging_config import PACKAGE_LOGGER

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

Point = Tuple[float, float]


# ============================================================================
# Pytest Configuration Hooks
# ============================================================================

@pytest.fixture(autouse=True)
def reset_package_logger():
    """setup_logging() detaches the package logger from the root; undo it."""
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        handler.close()
    package_logger.handlers.clear()
    package_logger.filters.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


# ============================================================================
# DXF Text Builders
# ============================================================================

def _num(value: float) -> str:
    return repr(float(value))


def _common(layer: str, line_type: Optional[str], visible: bool,
            color: Optional[int]) -> List[str]:
    tags = ["8", layer]
    if line_type is not None:
        tags += ["6", line_type]
    if not visible:
        tags += ["60", "1"]
    if color is not None:
        tags += ["62", str(color)]
    return tags


def line_record(start: Point, end: Point, layer: str = "0",
                line_type: Optional[str] = None, visible: bool = True,
                color: Optional[int] = None) -> List[str]:
    """LINE with start in 10/20/30 and end in 11/21/31."""
    return [
        "0", "LINE",
        *_common(layer, line_type, visible, color),
        "10", _num(start[0]), "20", _num(start[1]), "30", "0.0",
        "11", _num(end[0]), "21", _num(end[1]), "31", "0.0",
    ]


def lwpolyline_record(points: Sequence[Point], closed: bool = False,
                      layer: str = "0") -> List[str]:
    tags = [
        "0", "LWPOLYLINE",
        "8", layer,
        "90", str(len(points)),
        "70", "1" if closed else "0",
    ]
    for x, y in points:
        tags += ["10", _num(x), "20", _num(y)]
    return tags


def polyline_record(points: Sequence[Point], closed: bool = False,
                    layer: str = "0") -> List[str]:
    """Old-style POLYLINE: header, VERTEX sub-records, SEQEND."""
    tags = [
        "0", "POLYLINE",
        "8", layer,
        "66", "1",
        "10", "0.0", "20", "0.0", "30", "0.0",
        "70", "1" if closed else "0",
    ]
    for x, y in points:
        tags += ["0", "VERTEX", "8", layer, "10", _num(x), "20", _num(y), "30", "0.0"]
    tags += ["0", "SEQEND", "8", layer]
    return tags


def circle_record(center: Point, radius: float, layer: str = "0") -> List[str]:
    return [
        "0", "CIRCLE",
        "8", layer,
        "10", _num(center[0]), "20", _num(center[1]), "30", "0.0",
        "40", _num(radius),
    ]


def arc_record(center: Point, radius: float, start_deg: float, end_deg: float,
               layer: str = "0") -> List[str]:
    return [
        "0", "ARC",
        "8", layer,
        "10", _num(center[0]), "20", _num(center[1]), "30", "0.0",
        "40", _num(radius),
        "50", _num(start_deg),
        "51", _num(end_deg),
    ]


def text_record(insert: Point, text: str, layer: str = "0") -> List[str]:
    """Unsupported entity type, must be skipped by the parser."""
    return [
        "0", "TEXT",
        "8", layer,
        "10", _num(insert[0]), "20", _num(insert[1]), "30", "0.0",
        "40", "2.5",
        "1", text,
    ]


def dxf_document(records: Iterable[List[str]] = (), header: bool = True,
                 newline: str = "\n") -> str:
    """Wrap entity records into a minimal DXF file with an ENTITIES section."""
    lines: List[str] = []
    if header:
        lines += [
            "0", "SECTION", "2", "HEADER",
            "9", "$ACADVER", "1", "AC1015",
            "9", "$EXTMIN", "10", "0.0", "20", "0.0", "30", "0.0",
            "0", "ENDSEC",
        ]
    lines += ["0", "SECTION", "2", "ENTITIES"]
    for record in records:
        lines += record
    lines += ["0", "ENDSEC", "0", "EOF"]
    return newline.join(lines) + newline


# ============================================================================
# Entity Fixtures
# ============================================================================

def make_entity(kind: EntityKind, points: Sequence[Point] = (), layer: str = "0",
                **kwargs) -> ParsedEntity:
    """Build a finalized entity directly, bypassing the text parser."""
    builder = EntityBuilder(kind=kind, layer=layer, **kwargs)
    builder.vertices.extend(Point3D(x, y) for x, y in points)
    return finalize_entity(builder)


def make_line(start: Point, end: Point, layer: str = "0", **kwargs) -> ParsedEntity:
    return make_entity(EntityKind.LINE, [start, end], layer, **kwargs)


def make_circle(center: Point, radius: float = 5.0, layer: str = "0") -> ParsedEntity:
    return make_entity(EntityKind.CIRCLE, [center], layer, radius=radius)


@pytest.fixture
def reference_stats() -> DesignStatistics:
    """Design centred on (50, 50), 100 units wide, mean distance 30, std 10."""
    return DesignStatistics(
        centroid=Point2D(50.0, 50.0),
        bbox=BoundingBox(0.0, 0.0, 100.0, 100.0),
        max_dimension=100.0,
        mean_distance=30.0,
        std_deviation=10.0,
        entity_density=0.001,
        entity_count=10,
        point_count=20,
    )


# ============================================================================
# Part Drawing Fixtures
# ============================================================================

@pytest.fixture
def part_dxf_text() -> str:
    """Plate 100x50 with two holes, a DEFPOINTS artifact and a text label.

    Expected: 4 parsed entities (TEXT is skipped), 3 valid, 1 hidden layer.
    Valid cut length = 300 + 2 * (2 * pi * 5).
    """
    return dxf_document([
        lwpolyline_record([(10, 10), (110, 10), (110, 60), (10, 60)],
                          closed=True, layer="CUT"),
        circle_record((35, 35), 5, layer="CUT"),
        circle_record((85, 35), 5, layer="CUT"),
        line_record((20, 20), (30, 30), layer="DEFPOINTS"),
        text_record((15, 65), "PART-001", layer="CUT"),
    ])


@pytest.fixture
def part_dxf_path(tmp_path: Path, part_dxf_text: str) -> Path:
    path = tmp_path / "plate.dxf"
    path.write_text(part_dxf_text, encoding="utf-8")
    return path


@pytest.fixture
def empty_dxf_text() -> str:
    """Well-formed DXF with an empty ENTITIES section."""
    return dxf_document([])

"""
Clean DXF export of the entities that survived filtering.

The output keeps the source layer names and writes each entity with
its own type (old-style POLYLINE is written as LWPOLYLINE). Nothing
rejected by the filters is written, so the file can go straight to a
cutting toolpath generator.

Usage:
    from dxf_intake.io.dxf_export import export_clean_dxf

    metrics = parse(text)
    export_clean_dxf(metrics.valid_entities, 'part.clean.dxf')
"""

import logging
import math
import re
from pathlib import Path
from typing import Iterable, Optional, Union

import ezdxf
from ezdxf import units

from dxf_intake.geometry.entities import EntityKind, ParsedEntity
from dxf_intake.logging_config import timed

logger = logging.getLogger(__name__)

DEFAULT_DXF_VERSION = 'R2010'

# Characters AutoCAD does not accept in table names
_INVALID_LAYER_CHARS = re.compile(r'[<>/\\":;?*|=`]')


def safe_layer_name(name: str) -> str:
    """Layer name accepted by CAD tools; invalid characters become '_'."""
    cleaned = _INVALID_LAYER_CHARS.sub('_', name).strip()
    return cleaned or '0'


class CleanDxfWriter:
    """Writes surviving entities into a new ezdxf document."""

    def __init__(self, dxf_version: str = DEFAULT_DXF_VERSION):
        self.doc = ezdxf.new(dxf_version, units=units.MM)
        self.msp = self.doc.modelspace()
        self.written = 0
        self.skipped = 0

    def _ensure_layer(self, name: str) -> str:
        layer = safe_layer_name(name)
        if layer not in self.doc.layers:
            self.doc.layers.add(layer)
        return layer

    def add_entity(self, entity: ParsedEntity) -> bool:
        """Add one entity. Returns False when it lacks the geometry to write."""
        if not entity.has_valid_geometry():
            self.skipped += 1
            return False

        attribs = {'layer': self._ensure_layer(entity.layer)}
        if entity.color_index is not None:
            attribs['color'] = entity.color_index

        points = [p.as_tuple() for p in entity.points_2d]

        if entity.kind is EntityKind.LINE:
            self.msp.add_line(points[0], points[1], dxfattribs=attribs)
        elif entity.kind.is_polyline:
            self.msp.add_lwpolyline(points, close=entity.closed, dxfattribs=attribs)
        elif entity.kind is EntityKind.CIRCLE:
            self.msp.add_circle(points[0], entity.radius, dxfattribs=attribs)
        elif entity.kind is EntityKind.ARC:
            self.msp.add_arc(
                points[0],
                entity.radius,
                math.degrees(entity.start_angle),
                math.degrees(entity.end_angle),
                dxfattribs=attribs,
            )
        else:
            self.skipped += 1
            return False

        self.written += 1
        return True

    def add_entities(self, entities: Iterable[ParsedEntity]) -> int:
        return sum(1 for e in entities if self.add_entity(e))

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.doc.saveas(str(path))
        logger.info("Saved clean DXF: %s (%d entities)", path, self.written)


def build_clean_document(entities: Iterable[ParsedEntity],
                         dxf_version: str = DEFAULT_DXF_VERSION) -> 'ezdxf.document.Drawing':
    """Build an in-memory ezdxf document from the given entities."""
    writer = CleanDxfWriter(dxf_version)
    writer.add_entities(entities)
    if writer.skipped:
        logger.debug("Skipped %d entities without writable geometry", writer.skipped)
    return writer.doc


@timed(operation="clean DXF export")
def export_clean_dxf(entities: Iterable[ParsedEntity],
                     path: Union[str, Path],
                     dxf_version: Optional[str] = None) -> int:
    """Write the entities to a DXF file.

    Args:
        entities: Typically Metrics.valid_entities
        path: Output file path
        dxf_version: DXF version (default R2010)

    Returns:
        Number of entities written
    """
    writer = CleanDxfWriter(dxf_version or DEFAULT_DXF_VERSION)
    writer.add_entities(entities)
    writer.save(path)
    return writer.written

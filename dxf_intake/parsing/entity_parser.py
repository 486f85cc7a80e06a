"""
Streaming parser for the ENTITIES section of a DXF file.

Single forward scan: the section marker is located line by line, after
which the cursor moves in (code, value) pairs. Each `0 <TYPE>` record
closes the entity in progress and hands it to the finalizer.

Error policy:
- No ENTITIES section -> zero entities, not an error
- Unknown group codes -> skipped
- Unsupported entity types (TEXT, INSERT, ...) -> skipped entirely
- Malformed numeric value -> that entity is discarded, scanning resumes
  at the next `0` boundary
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from dxf_intake.geometry.entities import (
    EntityBuilder,
    EntityKind,
    ParsedEntity,
    Point3D,
    finalize_entity,
)
from dxf_intake.parsing.cursor import LineCursor, RawToken

logger = logging.getLogger(__name__)

SECTION_MARKER = ("SECTION", "2", "ENTITIES")
END_SECTION = "ENDSEC"

# Sub-records that belong to an old-style POLYLINE
VERTEX_RECORD = "VERTEX"
SEQEND_RECORD = "SEQEND"

# Group codes
CODE_ENTITY = 0
CODE_LINE_TYPE = 6
CODE_LAYER = 8
CODE_X = 10
CODE_Y = 20
CODE_Z = 30
SECONDARY_X_CODES = (11, 12, 13)
CODE_RADIUS = 40
CODE_START_ANGLE = 50
CODE_END_ANGLE = 51
CODE_INVISIBLE = 60
CODE_COLOR = 62
CODE_FLAGS = 70

INVISIBLE_VALUE = 1


class MalformedEntityError(ValueError):
    """A numeric field of the current entity could not be parsed."""


@dataclass
class ParseResult:
    """Outcome of scanning one DXF text.

    Attributes:
        entities: Finalized entities in file order (including ones
            without vertices, which are filtered downstream)
        discarded: Entities dropped because of malformed values
        section_found: Whether an ENTITIES section was present
        skipped_types: Count of unsupported entity records by type name
    """
    entities: List[ParsedEntity] = field(default_factory=list)
    discarded: int = 0
    section_found: bool = False
    skipped_types: dict = field(default_factory=dict)


def _to_float(value: str, code: int) -> float:
    try:
        number = float(value)
    except ValueError:
        raise MalformedEntityError(f"group {code}: not a number: {value!r}")
    if not math.isfinite(number):
        raise MalformedEntityError(f"group {code}: non-finite value: {value!r}")
    return number


def _to_int(value: str, code: int) -> int:
    try:
        return int(value)
    except ValueError:
        raise MalformedEntityError(f"group {code}: not an integer: {value!r}")


class _EntityScanner:
    """Per-run scanning state; the builder never leaves this class."""

    def __init__(self, cursor: LineCursor):
        self.cursor = cursor
        self.result = ParseResult(section_found=True)
        self.builder: Optional[EntityBuilder] = None
        # POLYLINE bookkeeping: header point vs VERTEX sub-record points
        self.sub_record: Optional[str] = None
        self.header_points: List[Point3D] = []

    # -- entity boundaries -------------------------------------------------

    def flush(self) -> None:
        """Finalize the entity in progress, if any."""
        builder = self.builder
        if builder is None:
            return
        if builder.kind is EntityKind.POLYLINE and not builder.vertices:
            # No VERTEX records: the points were written on the header
            builder.vertices.extend(self.header_points)
        self.result.entities.append(finalize_entity(builder))
        self._reset()

    def discard(self, reason: str) -> None:
        if self.builder is not None:
            logger.debug(
                "Discarding malformed %s entity: %s",
                self.builder.kind.value, reason,
                extra={"line": self.cursor.position},
            )
            self.result.discarded += 1
        self._reset()

    def _reset(self) -> None:
        self.builder = None
        self.sub_record = None
        self.header_points = []

    def start(self, type_name: str) -> None:
        """Handle a `0 <type_name>` record."""
        if (self.builder is not None
                and self.builder.kind is EntityKind.POLYLINE
                and type_name in (VERTEX_RECORD, SEQEND_RECORD)):
            self.sub_record = type_name
            return

        self.flush()
        kind = EntityKind.from_name(type_name)
        if kind is None:
            skipped = self.result.skipped_types
            skipped[type_name] = skipped.get(type_name, 0) + 1
            return
        self.builder = EntityBuilder(kind=kind)

    # -- group codes -------------------------------------------------------

    def _read_point(self, x_code: int, value: str) -> Point3D:
        """Read X from value and consume directly following Y/Z companions."""
        x = _to_float(value, x_code)
        y = 0.0
        z = 0.0
        if self.cursor.peek_code() == x_code + 10:
            token = self.cursor.next_token()
            y = _to_float(token.value, token.code)
        if self.cursor.peek_code() == x_code + 20:
            token = self.cursor.next_token()
            z = _to_float(token.value, token.code)
        return Point3D(x, y, z)

    def apply(self, token: RawToken) -> None:
        """Apply one group code to the current builder."""
        builder = self.builder
        code = token.code

        if self.sub_record == SEQEND_RECORD:
            return
        if self.sub_record == VERTEX_RECORD:
            if code == CODE_X:
                builder.vertices.append(self._read_point(code, token.value))
            return

        if code == CODE_LAYER:
            builder.layer = token.value
        elif code == CODE_COLOR:
            builder.color_index = _to_int(token.value, code)
        elif code == CODE_LINE_TYPE:
            builder.line_type = token.value
        elif code == CODE_INVISIBLE:
            builder.visible = _to_int(token.value, code) != INVISIBLE_VALUE
        elif code == CODE_X:
            point = self._read_point(code, token.value)
            if builder.kind is EntityKind.POLYLINE:
                self.header_points.append(point)
            else:
                builder.vertices.append(point)
        elif code in SECONDARY_X_CODES:
            builder.vertices.append(self._read_point(code, token.value))
        elif code == CODE_RADIUS:
            builder.radius = _to_float(token.value, code)
        elif code == CODE_START_ANGLE:
            builder.start_angle = math.radians(_to_float(token.value, code))
        elif code == CODE_END_ANGLE:
            builder.end_angle = math.radians(_to_float(token.value, code))
        elif code == CODE_FLAGS:
            builder.flags = _to_int(token.value, code)

    # -- main loop ---------------------------------------------------------

    def run(self) -> ParseResult:
        cursor = self.cursor
        while not cursor.at_end:
            token = cursor.next_token()
            if token is None:
                if cursor.peek(1) is None or cursor.peek(0) == END_SECTION:
                    break
                self.discard(f"unexpected line {cursor.peek(0)!r}")
                if not cursor.resync():
                    break
                continue

            if token.code == CODE_ENTITY:
                if token.value == END_SECTION:
                    break
                self.start(token.value)
                continue

            if self.builder is None:
                continue

            try:
                self.apply(token)
            except MalformedEntityError as exc:
                self.discard(str(exc))

        self.flush()
        return self.result


def parse_entities(content: str) -> ParseResult:
    """Parse the ENTITIES section of DXF text.

    Args:
        content: Full text of the DXF file

    Returns:
        ParseResult with finalized entities in file order
    """
    cursor = LineCursor.from_text(content)
    if not cursor.seek_marker(*SECTION_MARKER):
        logger.debug("No ENTITIES section found")
        return ParseResult()

    result = _EntityScanner(cursor).run()

    logger.debug(
        "Parsed ENTITIES section",
        extra={
            "entities": len(result.entities),
            "discarded": result.discarded,
            "skipped": sum(result.skipped_types.values()),
        },
    )
    return result

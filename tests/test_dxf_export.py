"""
Tests for dxf_intake.io.dxf_export and parsing of ezdxf-generated files.

Tests:
- Files written by ezdxf parse to the expected geometry
- Clean export keeps only surviving entities, per layer
- Clean export round-trips through the analyser
"""

import math
from pathlib import Path

import ezdxf
import pytest

from dxf_intake.io.dxf_export import (
    CleanDxfWriter,
    build_clean_document,
    export_clean_dxf,
    safe_layer_name,
)
from dxf_intake.geometry.entities import EntityKind
from dxf_intake.pipeline import parse

from tests.conftest import make_circle, make_entity


@pytest.fixture
def ezdxf_part_path(tmp_path: Path) -> Path:
    """R2010 drawing written by ezdxf: plate, hole, arc slot, scribe line, dimension layer."""
    doc = ezdxf.new("R2010")
    doc.layers.add("CUT")
    doc.layers.add("DIMENSIONS")
    msp = doc.modelspace()
    msp.add_lwpolyline([(100, 100), (200, 100), (200, 150), (100, 150)],
                       close=True, dxfattribs={'layer': 'CUT'})
    msp.add_circle((130, 125), 10, dxfattribs={'layer': 'CUT'})
    msp.add_arc((170, 125), 10, 0, 90, dxfattribs={'layer': 'CUT'})
    msp.add_line((110, 140), (190, 140), dxfattribs={'layer': 'CUT'})
    msp.add_line((100, 90), (200, 90), dxfattribs={'layer': 'DIMENSIONS'})
    msp.add_text("PLATE-01", dxfattribs={'layer': 'CUT'}).set_placement((105, 105))

    path = tmp_path / "ezdxf_part.dxf"
    doc.saveas(str(path))
    return path


class TestParseEzdxfOutput:
    """The analyser reads real CAD output."""

    def test_geometry(self, ezdxf_part_path: Path):
        metrics = parse(ezdxf_part_path.read_text(encoding="utf-8"))

        assert metrics.total_parsed == 5
        assert metrics.total_vectors == 4
        assert metrics.filter_statistics.hidden_layers == 1
        assert metrics.total_length == pytest.approx(300 + 20 * math.pi + 5 * math.pi + 80)

    def test_kinds(self, ezdxf_part_path: Path):
        metrics = parse(ezdxf_part_path.read_text(encoding="utf-8"))
        kinds = [e.kind for e in metrics.valid_entities]
        assert kinds == [EntityKind.LWPOLYLINE, EntityKind.CIRCLE, EntityKind.ARC, EntityKind.LINE]
        assert metrics.valid_entities[0].closed


class TestSafeLayerName:
    """Tests for safe_layer_name."""

    def test_valid_name_unchanged(self):
        assert safe_layer_name("CUT-OUTER 2") == "CUT-OUTER 2"

    def test_invalid_characters(self):
        assert safe_layer_name('a<b>c/d"e') == "a_b_c_d_e"

    def test_empty(self):
        assert safe_layer_name("   ") == "0"


class TestCleanExport:
    """Tests for export_clean_dxf."""

    def test_only_survivors_written(self, part_dxf_text: str, tmp_path: Path):
        metrics = parse(part_dxf_text)
        path = tmp_path / "out" / "plate.clean.dxf"

        written = export_clean_dxf(metrics.valid_entities, path)

        assert written == 3
        doc = ezdxf.readfile(str(path))
        msp = doc.modelspace()
        assert len(msp.query("LWPOLYLINE")) == 1
        assert len(msp.query("CIRCLE")) == 2
        assert len(msp.query("LINE")) == 0
        assert "CUT" in doc.layers

    def test_closed_flag_and_arc_degrees(self):
        entities = [
            make_entity(EntityKind.LWPOLYLINE, [(0, 0), (10, 0), (10, 10)], layer="A", flags=1),
            make_entity(EntityKind.ARC, [(5, 5)], layer="B", radius=2.0,
                        start_angle=0.0, end_angle=math.pi / 2),
        ]
        doc = build_clean_document(entities)
        msp = doc.modelspace()

        polyline = msp.query("LWPOLYLINE")[0]
        assert polyline.closed
        assert polyline.dxf.layer == "A"
        arc = msp.query("ARC")[0]
        assert arc.dxf.start_angle == pytest.approx(0.0)
        assert arc.dxf.end_angle == pytest.approx(90.0)
        assert arc.dxf.radius == pytest.approx(2.0)

    def test_old_polyline_written_as_lwpolyline(self):
        entity = make_entity(EntityKind.POLYLINE, [(0, 0), (5, 0)], layer="P")
        doc = build_clean_document([entity])
        assert len(doc.modelspace().query("LWPOLYLINE")) == 1

    def test_invalid_geometry_skipped(self):
        writer = CleanDxfWriter()
        assert not writer.add_entity(make_entity(EntityKind.CIRCLE, [(0, 0)]))
        assert writer.skipped == 1
        assert writer.written == 0

    def test_color_kept(self):
        entity = make_entity(EntityKind.LINE, [(0, 0), (1, 1)], color_index=3)
        line = build_clean_document([entity]).modelspace().query("LINE")[0]
        assert line.dxf.color == 3

    def test_round_trip(self, part_dxf_text: str, tmp_path: Path):
        """Analysing the clean export reproduces the cut metrics."""
        original = parse(part_dxf_text)
        path = tmp_path / "clean.dxf"
        export_clean_dxf(original.valid_entities, path)

        again = parse(path.read_text(encoding="utf-8"))

        assert again.total_vectors == original.total_vectors
        assert again.total_length == pytest.approx(original.total_length)
        assert again.filter_statistics.total == 0

    def test_layer_created_once(self):
        entities = [
            make_entity(EntityKind.LINE, [(0, 0), (10, 0)], layer="CUT"),
            make_circle((5, 5), 2, layer="CUT"),
            make_entity(EntityKind.LINE, [(0, 0), (0, 10)], layer="a<b"),
        ]
        doc = build_clean_document(entities)

        assert "CUT" in doc.layers
        assert "a_b" in doc.layers
        assert {e.dxf.layer for e in doc.modelspace()} == {"CUT", "a_b"}

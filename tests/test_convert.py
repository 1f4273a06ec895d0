from __future__ import annotations

from pathlib import Path

import pytest

import dxfcodec
import dxfcodec.convert as convert_module
from dxfcodec import Drawing, Entity
from tests._dxf_helpers import dxf_records_of_type, group_float


def _drawing() -> Drawing:
    drawing = Drawing.new("AC1018")
    drawing.entities = [
        Entity.new("LINE", handle="30", layer="WALLS", color=1, end=(10, 0, 0)),
        Entity.new("ARC", handle="31", radius=5.0, start_angle=30.0, end_angle=120.0),
        Entity.new("CIRCLE", handle="32", center=(1, 1, 0), radius=2.0),
        Entity.new("TEXT", handle="33", text="Label", height=2.5),
        Entity.new("SPLINE", handle="34", control_points=[(0, 0, 0), (1, 2, 0), (3, 2, 0), (4, 0, 0)]),
        Entity.new("ACAD_TABLE", handle="35"),
    ]
    return drawing


def test_export_writes_supported_entities(tmp_path: Path) -> None:
    pytest.importorskip("ezdxf")
    output = tmp_path / "out.dxf"

    result = dxfcodec.export_ezdxf(_drawing(), output)

    assert output.exists()
    assert result.total_entities == 6
    assert result.written_entities == 5
    assert result.skipped_by_type == {"ACAD_TABLE": 1}
    lines = dxf_records_of_type(output, "LINE")
    assert len(lines) == 1
    assert group_float(lines[0], "11") == 10.0
    arcs = dxf_records_of_type(output, "ARC")
    assert abs(group_float(arcs[0], "50") - 30.0) < 1.0e-6
    assert abs(group_float(arcs[0], "51") - 120.0) < 1.0e-6
    assert len(dxf_records_of_type(output, "SPLINE")) == 1


def test_export_reads_paths_and_filters_types(tmp_path: Path) -> None:
    pytest.importorskip("ezdxf")
    source = tmp_path / "in.dxf"
    _drawing().saveas(source)

    result = dxfcodec.export_ezdxf(source, tmp_path / "circles.dxf", types="CIRCLE")

    assert result.source_path == str(source)
    assert result.total_entities == 1
    assert len(dxf_records_of_type(tmp_path / "circles.dxf", "CIRCLE")) == 1


def test_export_strict_names_skipped_types(tmp_path: Path) -> None:
    pytest.importorskip("ezdxf")

    with pytest.raises(ValueError, match="ACAD_TABLE:1"):
        dxfcodec.export_ezdxf(_drawing(), tmp_path / "out.dxf", strict=True)


def test_missing_ezdxf_names_the_extra(monkeypatch, tmp_path: Path) -> None:
    def _missing():
        raise ImportError('Install it with `pip install "dxfcodec[ezdxf]"`.')

    monkeypatch.setattr(convert_module, "_require_ezdxf", _missing)

    with pytest.raises(ImportError, match="dxfcodec\\[ezdxf\\]"):
        dxfcodec.export_ezdxf(_drawing(), tmp_path / "out.dxf")


def test_export_polylines_faces_and_mtext(tmp_path: Path) -> None:
    pytest.importorskip("ezdxf")
    drawing = Drawing.new("AC1018")
    drawing.entities = [
        Entity.new(
            "LWPOLYLINE",
            handle="40",
            flags=1,
            vertices=[{"location": (0, 0)}, {"location": (4, 0), "bulge": 0.5}, {"location": (4, 3)}],
        ),
        Entity.new("SOLID", handle="41", vtx1=(1, 0, 0), vtx2=(0, 1, 0), vtx3=(1, 1, 0)),
        Entity.new("3DFACE", handle="42", vtx1=(1, 0, 0), vtx2=(0, 1, 0), vtx3=(0, 1, 0)),
        Entity.new("MTEXT", handle="43", text_chunks=["first "], text="second", char_height=3.0),
        Entity.new("INSERT", handle="44", name="DOOR"),
    ]
    output = tmp_path / "out.dxf"

    result = dxfcodec.export_ezdxf(drawing, output)

    assert result.written_entities == 4
    assert result.skipped_by_type == {"INSERT": 1}
    polylines = dxf_records_of_type(output, "LWPOLYLINE")
    assert len(polylines) == 1
    assert group_float(polylines[0], "90") == 3.0
    assert len(dxf_records_of_type(output, "SOLID")) == 1
    assert len(dxf_records_of_type(output, "3DFACE")) == 1
    mtexts = dxf_records_of_type(output, "MTEXT")
    assert group_float(mtexts[0], "40") == 3.0

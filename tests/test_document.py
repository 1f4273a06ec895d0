from __future__ import annotations

import io
from pathlib import Path

import pytest

import dxfcodec
from dxfcodec import BlockDefinition, Drawing, Entity, NullArgument, SymbolTable, new_thumbnail, thumbnail_bytes
from dxfcodec.document import encoding_for, guess_encoding
from tests._dxf_helpers import dxf_pairs, dxf_records_of_type, group_values, read_text, tags_text, write_text


def _sample_drawing(version: str = "AC1015") -> Drawing:
    drawing = Drawing.new(version)
    drawing.classes = [
        Entity.new("CLASS", record_name="ACDBDICTIONARYWDFLT", class_name="AcDbDictionaryWithDefault", app_name="ObjectDBX Classes"),
    ]
    layers = SymbolTable(
        Entity.new("TABLE", name="LAYER", handle="2"),
        [
            Entity.new("LAYER", handle="10", owner="2", name="0"),
            Entity.new("LAYER", handle="11", owner="2", name="WALLS", color=1),
        ],
    )
    drawing.tables = [layers]
    drawing.blocks = [
        BlockDefinition(
            Entity.new("BLOCK", handle="20", name="DOOR"),
            [Entity.new("LINE", handle="21", end=(1, 0, 0))],
            Entity.new("ENDBLK", handle="22"),
        )
    ]
    drawing.entities = [
        Entity.new("LINE", handle="30", layer="WALLS", start=(0, 0, 0), end=(10, 0, 0)),
        Entity.new("CIRCLE", handle="31", center=(5, 5, 0), radius=2.5),
        Entity.new("ARC", handle="32", center=(0, 0, 0), radius=5.0, start_angle=0.0, end_angle=180.0),
        Entity.new("TEXT", handle="33", text="Hello", halign=1, align_point=(1, 1, 0), valign=2),
    ]
    drawing.objects = [Entity.new("DICTIONARY", handle="C", entries=[{"name": "ACAD_GROUP", "handle": "D"}])]
    drawing.thumbnail = new_thumbnail(bytes(range(200)))
    return drawing


def test_write_then_read_preserves_every_section() -> None:
    drawing = _sample_drawing()

    result = drawing.write(io.StringIO())
    again = read_text(write_text(drawing))

    assert result.version == "AC1015"
    assert result.skipped_entities == 0
    assert again.version == "AC1015"
    assert again.classes == drawing.classes
    assert again.tables[0].entries == drawing.tables[0].entries
    assert again.table("layer").name == "LAYER"
    assert again.blocks == drawing.blocks
    assert again.entities == drawing.entities
    assert again.objects == drawing.objects
    assert thumbnail_bytes(again.thumbnail) == bytes(range(200))
    assert again.diagnostics == []


def test_table_entry_count_is_recomputed() -> None:
    drawing = _sample_drawing()
    drawing.tables[0].head.dxf["max_entries"] = 99

    tables = dxf_records_of_type(write_text(drawing), "TABLE", section="TABLES")

    assert group_values(tables[0], "70") == ["2"]


def test_sections_are_gated_by_version() -> None:
    text = write_text(_sample_drawing(), version="R12")
    names = [value for code, value in dxf_pairs(text) if code == "2"]

    assert "CLASSES" not in names
    assert "OBJECTS" not in names
    assert "THUMBNAILIMAGE" not in names
    assert ("1", "AC1009") in dxf_pairs(text)


def test_invalid_entities_are_skipped_and_counted() -> None:
    drawing = _sample_drawing()
    drawing.entities.append(Entity.new("ARC", handle="40", radius=1.0, start_angle=10.0, end_angle=10.0))
    drawing.entities.append(Entity.new("HELIX", handle="41"))

    stream = io.StringIO()
    result = drawing.write(stream, version="AC1015")

    assert result.skipped_by_type == {"ARC": 1, "HELIX": 1}
    assert result.written_entities == result.total_entities - 2
    assert len(dxf_records_of_type(stream.getvalue(), "ARC")) == 1
    assert stream.getvalue().endswith("  0\nEOF\n")


def test_strict_write_raises_after_the_output_is_complete() -> None:
    drawing = _sample_drawing()
    drawing.entities.append(Entity.new("CIRCLE", radius=0.0))
    stream = io.StringIO()

    with pytest.raises(ValueError, match="CIRCLE:1"):
        drawing.write(stream, strict=True)
    assert stream.getvalue().endswith("  0\nEOF\n")


def test_handseed_is_above_every_handle() -> None:
    drawing = _sample_drawing()
    drawing.entities.append(Entity.new("POINT", handle="2FFFF"))

    again = read_text(write_text(drawing))

    assert again.header.get("HANDSEED") == "30000"


def test_unknown_sections_and_types_are_skipped() -> None:
    text = tags_text(
        (999, "made by a test"),
        (0, "SECTION"), (2, "ACDSDATA"), (70, "2"), (0, "ACDSSCHEMA"), (90, "0"), (0, "ENDSEC"),
        (0, "SECTION"), (2, "TABLES"),
        (0, "TABLE"), (2, "VPORT"), (70, "2"),
        (0, "VPORT"), (2, "*ACTIVE"), (70, "0"),
        (0, "LAYER_FILTER"), (2, "ALL"),
        (0, "ENDTAB"),
        (0, "ENDSEC"),
        (0, "SECTION"), (2, "ENTITIES"),
        (0, "HATCH"), (8, "0"), (2, "SOLID"),
        (0, "LINE"), (8, "0"), (11, "1"), (21, "1"), (31, "0"),
        (0, "ENDSEC"),
        (0, "EOF"),
    )

    drawing = read_text(text)

    assert [entity.dxftype for entity in drawing.entities] == ["LINE"]
    assert [entry.dxf["name"] for entry in drawing.table("VPORT").entries] == ["*ACTIVE"]
    assert drawing.comments == [(2, "made by a test")]
    messages = [diagnostic.message for diagnostic in drawing.diagnostics]
    assert "unknown section ACDSDATA" in messages
    assert "skipping unsupported record LAYER_FILTER" in messages
    assert "skipping unsupported record HATCH" in messages


def test_missing_eof_is_a_diagnostic() -> None:
    drawing = read_text(tags_text((0, "SECTION"), (2, "ENTITIES"), (0, "ENDSEC")))

    assert drawing.entities == []
    assert drawing.diagnostics[-1].message == "missing 0/EOF marker"


def test_truncated_file_raises() -> None:
    with pytest.raises(dxfcodec.TruncatedStream):
        read_text("  0\nSECTION\n  2\nENTITIES\n  0\nLINE\n 10\n")


def test_malformed_group_code_raises() -> None:
    with pytest.raises(dxfcodec.MalformedGroupCode):
        read_text("  0\nSECTION\nxx\nENTITIES\n")


def test_query_filters_entities() -> None:
    drawing = _sample_drawing()

    assert [entity.dxftype for entity in drawing.query()] == ["LINE", "CIRCLE", "ARC", "TEXT"]
    assert [entity.dxftype for entity in drawing.query("circle, arc")] == ["CIRCLE", "ARC"]
    assert [entity.dxftype for entity in drawing.query(["*"])] == ["LINE", "CIRCLE", "ARC", "TEXT"]
    assert [entity.dxftype for entity in drawing.query("?IRCLE")] == ["CIRCLE"]
    assert list(drawing.query("SPLINE")) == []


def test_sections_reject_none_and_clear_releases_them() -> None:
    drawing = _sample_drawing()

    with pytest.raises(NullArgument):
        drawing.entities = None
    with pytest.raises(NullArgument):
        drawing.header = None
    drawing.thumbnail = None

    drawing.clear()

    assert drawing.entities == []
    assert drawing.tables == []
    assert drawing.blocks == []
    assert drawing.thumbnail is None
    assert drawing.version == "AC1015"


def test_saveas_and_read_round_trip(tmp_path: Path) -> None:
    drawing = _sample_drawing("AC1018")
    drawing.entities[3].set("text", "Größe")
    output = tmp_path / "nested" / "out.dxf"

    result = drawing.saveas(output)
    again = dxfcodec.read(output)

    assert result.output_path == str(output)
    assert guess_encoding(output) == "cp1252"
    assert again.path == str(output)
    assert again.entities == drawing.entities


def test_characters_outside_the_code_page_are_escaped(tmp_path: Path) -> None:
    drawing = _sample_drawing("AC1015")
    drawing.entities[3].set("text", "寸法")
    output = tmp_path / "escaped.dxf"

    drawing.saveas(output)

    assert "\\U+5BF8\\U+6CD5" in output.read_text(encoding="cp1252")


def test_utf8_from_r2007() -> None:
    drawing = _sample_drawing("AC1021")
    drawing.entities[3].set("text", "寸法")

    assert encoding_for("AC1021", "ANSI_1252") == "utf-8"
    assert encoding_for("AC1015", "ANSI_932") == "cp932"
    assert encoding_for(None, "ANSI_99999") == "cp1252"
    text = write_text(drawing)
    assert read_text(text).entities[3].get("text") == "寸法"


def test_records_without_a_handle_get_one_from_handseed() -> None:
    drawing = Drawing.new("AC1015")
    arc = Entity.new("ARC", radius=1.0, start_angle=0.0, end_angle=90.0)
    drawing.entities = [arc, Entity.new("LINE", handle="2A", end=(1, 0, 0))]

    text = write_text(drawing)
    again = read_text(text)

    assert group_values(dxf_records_of_type(text, "ARC")[0], "5") == ["20000"]
    assert again.entities[0].handle == "20000"
    assert again.header.get("HANDSEED") == "20001"
    assert arc.handle == ""


def test_assigned_handles_are_unique_across_sections() -> None:
    drawing = Drawing.new("AC1015")
    drawing.tables = [SymbolTable(Entity.new("TABLE", name="LAYER"), [Entity.new("LAYER", name="0")])]
    drawing.entities = [Entity.new("POINT"), Entity.new("POINT")]

    again = read_text(write_text(drawing))

    handles = [again.tables[0].head.handle, again.tables[0].entries[0].handle]
    handles += [entity.handle for entity in again.entities]
    assert handles == ["20000", "20001", "20002", "20003"]


def test_rejected_empty_table_head_is_counted() -> None:
    drawing = Drawing.new("AC1015")
    drawing.tables = [SymbolTable(Entity.new("TABLE"))]

    result = drawing.write(io.StringIO())

    assert result.total_entities == 1
    assert result.skipped_entities == 1
    assert result.skipped_by_type == {"TABLE": 1}
    with pytest.raises(ValueError, match="TABLE:1"):
        drawing.write(io.StringIO(), strict=True)


def test_rejected_table_head_takes_its_entries_with_it() -> None:
    drawing = _sample_drawing()
    drawing.tables[0].head.dxf["name"] = ""

    stream = io.StringIO()
    result = drawing.write(stream)

    assert result.skipped_by_type == {"TABLE": 3}
    assert result.written_entities == result.total_entities - 3
    assert dxf_records_of_type(stream.getvalue(), "LAYER", section="TABLES") == []
    assert read_text(stream.getvalue()).tables == []


def test_header_without_acadver_does_not_gate_fields() -> None:
    text = tags_text(
        (0, "SECTION"), (2, "HEADER"), (9, "$HANDSEED"), (5, "400"), (0, "ENDSEC"),
        (0, "SECTION"), (2, "ENTITIES"),
        (0, "LINE"), (8, "0"), (38, "2.5"), (370, "25"),
        (0, "ENDSEC"),
        (0, "EOF"),
    )

    drawing = read_text(text)

    assert drawing.entities[0].dxf["elevation"] == 2.5
    assert drawing.entities[0].dxf["lineweight"] == 25
    assert drawing.diagnostics == []


def test_polyline_sequence_round_trip() -> None:
    drawing = Drawing.new("AC1015")
    drawing.entities = [
        Entity.new("POLYLINE", handle="40", flags=8),
        Entity.new("VERTEX", handle="41", location=(0, 0, 0), flags=32),
        Entity.new("VERTEX", handle="42", location=(1, 1, 1), flags=32),
        Entity.new("SEQEND", handle="43"),
        Entity.new("INSERT", handle="44", name="DOOR", insert=(2, 0, 0)),
        Entity.new("LWPOLYLINE", handle="45", vertices=[{"location": (0, 0)}, {"location": (1, 0)}]),
        Entity.new("MTEXT", handle="46", text="note"),
    ]

    text = write_text(drawing)
    again = read_text(text)

    assert [entity.dxftype for entity in again.entities] == [
        "POLYLINE", "VERTEX", "VERTEX", "SEQEND", "INSERT", "LWPOLYLINE", "MTEXT",
    ]
    assert again.entities == drawing.entities
    assert again.diagnostics == []
    assert group_values(dxf_records_of_type(text, "POLYLINE")[0], "100") == ["AcDbEntity", "AcDb3dPolyline"]

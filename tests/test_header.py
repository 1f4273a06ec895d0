from __future__ import annotations

import io

import pytest

from dxfcodec import Header, NullArgument, Tag, TagReader
from dxfcodec.header import decode_header, encode_header
from tests._dxf_helpers import tags_text


def _reader(*pairs: tuple[int, object]) -> TagReader:
    return TagReader(io.StringIO(tags_text(*pairs, (0, "ENDSEC"))))


def test_plot_limits_are_assigned() -> None:
    diagnostics: list = []
    header = decode_header(
        _reader(
            (9, "$ACADVER"), (1, "AC1015"),
            (9, "$PLIMMIN"), (10, "1.5"), (20, "2.5"),
            (9, "$PLIMMAX"), (10, "420.0"), (20, "297.0"),
        ),
        diagnostics,
    )

    assert header.get("PLIMMIN") == (1.5, 2.5)
    assert header.get("$PLIMMAX") == (420.0, 297.0)
    assert header.version == "AC1015"
    assert diagnostics == []


def test_decode_stops_before_the_next_structure_tag() -> None:
    reader = _reader((9, "$LTSCALE"), (40, "2.0"))

    header = decode_header(reader)

    assert header.get("LTSCALE") == 2.0
    assert reader.next_tag() == Tag(0, "ENDSEC")


def test_unknown_variables_and_bad_values_are_reported() -> None:
    diagnostics: list = []
    header = decode_header(
        _reader(
            (9, "$NOTAVARIABLE"), (70, "1"),
            (9, "$LTSCALE"), (40, "big"),
            (9, "$CLAYER"), (62, "1"), (8, "WALLS"),
        ),
        diagnostics,
    )

    assert [d.kind for d in diagnostics] == ["UnknownTag", "TypeMismatch", "UnknownTag"]
    assert header.get("LTSCALE") == 1.0
    assert header.get("CLAYER") == "WALLS"


def test_encode_forces_acadver_and_gates_variables() -> None:
    header = Header()
    header.set("ACADVER", "AC1009")

    old = encode_header(header, "AC1009")
    new = encode_header(header, "AC1015")

    assert old[:2] == [Tag(9, "$ACADVER"), Tag(1, "AC1009")]
    assert new[:2] == [Tag(9, "$ACADVER"), Tag(1, "AC1015")]
    assert Tag(9, "$DWGCODEPAGE") not in old
    assert Tag(9, "$DWGCODEPAGE") in new


def test_encoded_header_decodes_to_the_same_values() -> None:
    header = Header()
    header.set("LTSCALE", 3.5)
    header.set("EXTMIN", [1, 2, 3])
    header.set("CLAYER", "WALLS")

    tags = encode_header(header, "AC1015")
    reader = TagReader(io.StringIO(tags_text(*tags, (0, "ENDSEC"))))
    decoded = decode_header(reader)

    assert decoded.get("LTSCALE") == 3.5
    assert decoded.get("EXTMIN") == (1.0, 2.0, 3.0)
    assert decoded.get("CLAYER") == "WALLS"


def test_header_accessors() -> None:
    header = Header()

    with pytest.raises(KeyError):
        header.get("NOPE")
    with pytest.raises(NullArgument):
        header.get(None)
    with pytest.raises(NullArgument):
        header.set("LTSCALE", None)

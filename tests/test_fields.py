from __future__ import annotations

import math

import pytest

from dxfcodec import Tag, TypeMismatch
from dxfcodec.fields import (
    OMITTED,
    FieldSpec,
    Kind,
    decode,
    decode_scalar,
    encode,
    encode_scalar,
    format_double,
)
from dxfcodec.versions import AC1012, AC1015


def test_integer_values_are_trimmed_and_range_checked() -> None:
    assert decode_scalar("    70", Kind.INT16) == 70
    assert decode_scalar("-1", Kind.INT32) == -1
    with pytest.raises(TypeMismatch):
        decode_scalar("40000", Kind.INT16)
    with pytest.raises(TypeMismatch):
        decode_scalar("1.5", Kind.INT16)


def test_table_decides_the_type_not_the_code() -> None:
    # code 1 is usually a string but the row declares a double
    assert decode(Tag(1, "2.5"), FieldSpec(1, "value", Kind.DOUBLE)) == 2.5
    assert decode(Tag(40, "2.5"), FieldSpec(40, "label", Kind.STRING)) == "2.5"


def test_non_numeric_double_is_a_type_mismatch() -> None:
    with pytest.raises(TypeMismatch):
        decode(Tag(40, "five"), FieldSpec(40, "radius", Kind.DOUBLE))


def test_handles_are_uppercased_hex() -> None:
    assert decode_scalar(" 2a ", Kind.HANDLE) == "2A"
    with pytest.raises(TypeMismatch):
        decode_scalar("XYZ", Kind.HANDLE)


@pytest.mark.parametrize(
    ("value", "text"),
    [(0.0, "0.000000"), (-0.0, "0.000000"), (1.0, "1.000000"), (0.5, "0.500000"), (180, "180.000000")],
)
def test_format_double_uses_six_decimals(value: float, text: str) -> None:
    assert format_double(value) == text


def test_format_double_keeps_precision_when_needed() -> None:
    assert float(format_double(1e-10)) == 1e-10
    assert float(format_double(math.tau)) == math.tau


def test_format_double_rejects_non_finite() -> None:
    with pytest.raises(TypeMismatch):
        format_double(float("nan"))


def test_strings_cannot_contain_line_breaks() -> None:
    with pytest.raises(TypeMismatch):
        encode_scalar("two\nlines", Kind.STRING)


def test_encode_omits_defaults_and_gated_fields() -> None:
    linetype = FieldSpec(6, "linetype", Kind.STRING, "BYLAYER")
    layer = FieldSpec(8, "layer", Kind.STRING, "0", omit_default=False)
    lineweight = FieldSpec(370, "lineweight", Kind.INT16, -1, min_version=AC1015)

    assert encode("BYLAYER", linetype, AC1015) == OMITTED
    assert encode("DASHED", linetype, AC1015) == (Tag(6, "DASHED"),)
    assert encode("0", layer, AC1015) == (Tag(8, "0"),)
    assert encode(25, lineweight, AC1012) == OMITTED
    assert encode(25, lineweight, AC1015) == (Tag(370, "25"),)


def test_points_are_split_across_axis_codes() -> None:
    center = FieldSpec(10, "center", Kind.POINT, omit_default=False)
    limits = FieldSpec(10, "limmin", Kind.POINT2D, omit_default=False)

    assert encode((1, 2.5, 0), center, None) == (
        Tag(10, "1.000000"),
        Tag(20, "2.500000"),
        Tag(30, "0.000000"),
    )
    assert encode((1.0, 2.0), limits, None) == (Tag(10, "1.000000"), Tag(20, "2.000000"))
    assert center.codes == (10, 20, 30)

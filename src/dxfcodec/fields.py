from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .errors import TypeMismatch
from .tags import Tag
from .versions import AC1015, MAX_VERSION, MIN_VERSION, in_range

Point3D = tuple[float, float, float]

OMITTED: tuple[Tag, ...] = ()


class Kind(Enum):
    INT16 = "int16"
    INT32 = "int32"
    DOUBLE = "double"
    STRING = "string"
    HANDLE = "handle"
    BINARY = "binary"
    POINT = "point"
    POINT2D = "point2d"

    @property
    def axes(self) -> int:
        if self is Kind.POINT:
            return 3
        if self is Kind.POINT2D:
            return 2
        return 1


_KIND_DEFAULTS: dict[Kind, Any] = {
    Kind.INT16: 0,
    Kind.INT32: 0,
    Kind.DOUBLE: 0.0,
    Kind.STRING: "",
    Kind.HANDLE: "",
    Kind.BINARY: "",
    Kind.POINT: (0.0, 0.0, 0.0),
    Kind.POINT2D: (0.0, 0.0),
}

_INT_LIMITS = {
    Kind.INT16: (-(2**15), 2**15 - 1),
    Kind.INT32: (-(2**31), 2**31 - 1),
}

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


@dataclass(frozen=True)
class FieldSpec:
    """One row of a field table.

    ``code`` is the group code (the X code for point kinds, whose Y and Z
    components follow at ``code + 10`` and ``code + 20``). ``omit_default``
    suppresses the tag on write when the value equals ``default``.
    ``app_group`` wraps the tag in a ``102/{NAME`` ... ``102/}`` bracket.
    ``when`` is an extra write-time predicate on the whole record.
    ``count_of`` names a list field whose length is written instead of the
    stored value. ``mirror`` rows repeat an earlier field under a second code.
    """

    code: int
    name: str
    kind: Kind
    default: Any = None
    min_version: int = MIN_VERSION
    max_version: int = MAX_VERSION
    repeatable: bool = False
    omit_default: bool = True
    app_group: str | None = None
    when: Callable[[Any], bool] | None = field(default=None, compare=False)
    count_of: str | None = None
    mirror: bool = False

    def __post_init__(self) -> None:
        if self.default is None:
            object.__setattr__(self, "default", _KIND_DEFAULTS[self.kind])

    @property
    def codes(self) -> tuple[int, ...]:
        return tuple(self.code + 10 * axis for axis in range(self.kind.axes))

    def initial(self) -> Any:
        if self.repeatable:
            return []
        return self.default

    def valid_for(self, version: int | None) -> bool:
        return in_range(version, self.min_version, self.max_version)


@dataclass(frozen=True)
class Subclass:
    """A ``100`` marker; ``when`` picks one of several markers by record content."""

    marker: str
    min_version: int = AC1015
    max_version: int = MAX_VERSION
    when: Callable[[Any], bool] | None = field(default=None, compare=False)

    def valid_for(self, version: int | None) -> bool:
        return in_range(version, self.min_version, self.max_version)

    def applies(self, record: Any, version: int | None) -> bool:
        return self.valid_for(version) and (self.when is None or self.when(record))


@dataclass(frozen=True)
class RepeatGroup:
    """A repeated nested structure: one dict per node.

    A node starts when the first field's code is read; the other member codes
    fill the newest node until a code outside the group shows up.
    """

    name: str
    fields: tuple[FieldSpec, ...]
    min_version: int = MIN_VERSION
    max_version: int = MAX_VERSION

    @property
    def start_code(self) -> int:
        return self.fields[0].code

    def new_node(self) -> dict[str, Any]:
        return {spec.name: spec.initial() for spec in self.fields}

    def initial(self) -> list[dict[str, Any]]:
        return []

    def valid_for(self, version: int | None) -> bool:
        return in_range(version, self.min_version, self.max_version)


Row = FieldSpec | Subclass | RepeatGroup


def decode_scalar(value: str, kind: Kind) -> Any:
    """Coerce one raw tag value to ``kind`` (a single axis for point kinds)."""
    if kind in _INT_LIMITS:
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            raise TypeMismatch(f"expected integer, got {value!r}") from None
        low, high = _INT_LIMITS[kind]
        if not low <= number <= high:
            raise TypeMismatch(f"integer {number} out of range for {kind.value}")
        return number
    if kind in (Kind.DOUBLE, Kind.POINT, Kind.POINT2D):
        try:
            return float(value.strip())
        except ValueError:
            raise TypeMismatch(f"expected number, got {value!r}") from None
    if kind in (Kind.HANDLE, Kind.BINARY):
        text = value.strip()
        if not set(text) <= _HEX_DIGITS:
            raise TypeMismatch(f"expected hexadecimal string, got {value!r}")
        return text.upper()
    return value


def decode(tag: Tag, spec: FieldSpec) -> Any:
    """Decode ``tag`` as declared by ``spec``; the table decides the type, not the code."""
    return decode_scalar(tag.value, spec.kind)


def format_double(value: float) -> str:
    number = float(value)
    if not math.isfinite(number):
        raise TypeMismatch(f"cannot write non-finite number {value!r}")
    if number == 0.0:
        number = 0.0
    text = f"{number:.6f}"
    if float(text) == number:
        return text
    return repr(number)


def encode_scalar(value: Any, kind: Kind) -> str:
    if kind in _INT_LIMITS:
        if isinstance(value, bool):
            value = int(value)
        if not isinstance(value, int):
            raise TypeMismatch(f"expected integer, got {value!r}")
        low, high = _INT_LIMITS[kind]
        if not low <= value <= high:
            raise TypeMismatch(f"integer {value} out of range for {kind.value}")
        return str(value)
    if kind in (Kind.DOUBLE, Kind.POINT, Kind.POINT2D):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeMismatch(f"expected number, got {value!r}")
        return format_double(value)
    if not isinstance(value, str):
        raise TypeMismatch(f"expected string, got {value!r}")
    if "\n" in value or "\r" in value:
        raise TypeMismatch(f"line break in string value {value!r}")
    if kind in (Kind.HANDLE, Kind.BINARY):
        if not set(value) <= _HEX_DIGITS:
            raise TypeMismatch(f"expected hexadecimal string, got {value!r}")
        return value.upper()
    return value


def encode_value(value: Any, spec: FieldSpec) -> tuple[Tag, ...]:
    """Encode one value (one list item for repeatable fields) without gating."""
    if spec.kind.axes == 1:
        return (Tag(spec.code, encode_scalar(value, spec.kind)),)
    if not isinstance(value, (tuple, list)) or len(value) not in (2, 3):
        raise TypeMismatch(f"{spec.name}: expected point, got {value!r}")
    components = tuple(value)[: spec.kind.axes]
    if len(components) < spec.kind.axes:
        components = components + (0.0,)
    return tuple(
        Tag(code, encode_scalar(component, spec.kind))
        for code, component in zip(spec.codes, components)
    )


def is_default(value: Any, spec: FieldSpec) -> bool:
    if spec.kind.axes > 1 and isinstance(value, (tuple, list)):
        return tuple(float(v) for v in value) == tuple(spec.default)
    return value == spec.default


def encode(value: Any, spec: FieldSpec, version: int | None) -> tuple[Tag, ...]:
    """Encode a scalar field, or return ``OMITTED`` when gated or defaulted."""
    if not spec.valid_for(version):
        return OMITTED
    if spec.omit_default and is_default(value, spec):
        return OMITTED
    return encode_value(value, spec)

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Iterator

from . import fields as fieldcodec
from .errors import Diagnostic, NullArgument, TypeMismatch
from .fields import FieldSpec, Kind
from .tags import STRUCTURE_CODE, Tag, TagReader
from .versions import AC1012, AC1014, AC1015, AC1018, DEFAULT_VERSION, MAX_VERSION, MIN_VERSION, version_number, version_string

logger = logging.getLogger(__name__)

VARIABLE_CODE = 9


@dataclass(frozen=True)
class HeaderVariable:
    name: str
    code: int
    kind: Kind
    default: Any = None
    min_version: int = MIN_VERSION
    max_version: int = MAX_VERSION

    @cached_property
    def spec(self) -> FieldSpec:
        return FieldSpec(
            self.code,
            self.name,
            self.kind,
            self.default,
            min_version=self.min_version,
            max_version=self.max_version,
            omit_default=False,
        )


def _var(name: str, code: int, kind: Kind, default: Any = None, low: int = MIN_VERSION, high: int = MAX_VERSION) -> HeaderVariable:
    return HeaderVariable(name, code, kind, FieldSpec(code, name, kind, default).default, low, high)


def _int(name: str, default: int = 0, low: int = MIN_VERSION, high: int = MAX_VERSION) -> HeaderVariable:
    return _var(name, 70, Kind.INT16, default, low, high)


def _real(name: str, default: float = 0.0, low: int = MIN_VERSION, high: int = MAX_VERSION) -> HeaderVariable:
    return _var(name, 40, Kind.DOUBLE, default, low, high)


def _point(name: str, default: tuple = (0.0, 0.0, 0.0), low: int = MIN_VERSION) -> HeaderVariable:
    return _var(name, 10, Kind.POINT, default, low)


def _ucs_points(prefix: str) -> tuple[HeaderVariable, ...]:
    return (
        _var(f"{prefix}ORTHOREF", 2, Kind.STRING, "", AC1015),
        _int(f"{prefix}ORTHOVIEW", 0, AC1015),
        *(_point(f"{prefix}ORG{side}", low=AC1015) for side in ("TOP", "BOTTOM", "LEFT", "RIGHT", "FRONT", "BACK")),
    )


HEADER_VARIABLES: tuple[HeaderVariable, ...] = (
    _var("ACADVER", 1, Kind.STRING, DEFAULT_VERSION),
    _int("ACADMAINTVER", 0, AC1014),
    _var("DWGCODEPAGE", 3, Kind.STRING, "ANSI_1252", AC1012),
    _var("LASTSAVEDBY", 1, Kind.STRING, "", AC1018),
    _point("INSBASE"),
    _point("EXTMIN"),
    _point("EXTMAX"),
    _var("LIMMIN", 10, Kind.POINT2D),
    _var("LIMMAX", 10, Kind.POINT2D, (12.0, 9.0)),
    _int("ORTHOMODE"),
    _int("REGENMODE", 1),
    _int("FILLMODE", 1),
    _int("QTEXTMODE"),
    _int("MIRRTEXT", 1),
    _int("DRAGMODE", 2, high=AC1015),
    _real("LTSCALE", 1.0),
    _int("OSMODE", 125, high=AC1014),
    _int("ATTMODE", 1),
    _real("TEXTSIZE", 0.2),
    _real("TRACEWID", 0.05),
    _var("TEXTSTYLE", 7, Kind.STRING, "STANDARD"),
    _var("CLAYER", 8, Kind.STRING, "0"),
    _var("CELTYPE", 6, Kind.STRING, "BYLAYER"),
    _var("CECOLOR", 62, Kind.INT16, 256),
    _real("CELTSCALE", 1.0, AC1012),
    _int("DELOBJ", 1, AC1012, AC1014),
    _int("DISPSILH", 0, high=AC1012),
    _real("DIMSCALE", 1.0),
    _real("DIMASZ", 0.18),
    _real("DIMEXO", 0.0625),
    _real("DIMDLI", 0.38),
    _real("DIMRND"),
    _real("DIMDLE"),
    _real("DIMEXE", 0.18),
    _real("DIMTP"),
    _real("DIMTM"),
    _real("DIMTXT", 0.18),
    _real("DIMCEN", 0.09),
    _real("DIMTSZ"),
    _int("DIMTOL"),
    _int("DIMLIM"),
    _int("DIMTIH", 1),
    _int("DIMTOH", 1),
    _int("DIMSE1"),
    _int("DIMSE2"),
    _int("DIMTAD"),
    _int("DIMZIN"),
    _var("DIMBLK", 1, Kind.STRING),
    _int("DIMASO", 1),
    _int("DIMSHO", 1),
    _var("DIMPOST", 1, Kind.STRING),
    _var("DIMAPOST", 1, Kind.STRING),
    _int("DIMALT"),
    _int("DIMALTD", 2),
    _real("DIMALTF", 25.4),
    _real("DIMLFAC", 1.0),
    _int("DIMTOFL"),
    _real("DIMTVP"),
    _int("DIMTIX"),
    _int("DIMSOXD"),
    _int("DIMSAH"),
    _var("DIMBLK1", 1, Kind.STRING),
    _var("DIMBLK2", 1, Kind.STRING),
    _var("DIMSTYLE", 2, Kind.STRING, "STANDARD"),
    _int("DIMCLRD"),
    _int("DIMCLRE"),
    _int("DIMCLRT"),
    _real("DIMTFAC", 1.0),
    _real("DIMGAP", 0.09),
    _int("DIMJUST", 0, AC1012),
    _int("DIMSD1", 0, AC1012),
    _int("DIMSD2", 0, AC1012),
    _int("DIMTOLJ", 1, AC1012),
    _int("DIMTZIN", 0, AC1012),
    _int("DIMALTZ", 0, AC1012),
    _int("DIMALTTZ", 0, AC1012),
    _int("DIMFIT", 3, AC1012, AC1014),
    _int("DIMUPT", 0, AC1012),
    _int("DIMUNIT", 2, AC1012, AC1014),
    _int("DIMDEC", 4, AC1012),
    _int("DIMTDEC", 4, AC1012),
    _int("DIMALTU", 2, AC1012),
    _int("DIMALTTD", 2, AC1012),
    _var("DIMTXSTY", 7, Kind.STRING, "STANDARD", AC1012),
    _int("DIMAUNIT", 0, AC1012),
    _int("DIMADEC", 0, AC1015),
    _real("DIMALTRND", 0.0, AC1015),
    _int("DIMAZIN", 0, AC1015),
    _int("DIMDSEP", 46, AC1015),
    _int("DIMATFIT", 3, AC1015),
    _int("DIMFRAC", 0, AC1015),
    _var("DIMLDRBLK", 1, Kind.STRING, "", AC1015),
    _int("DIMLUNIT", 2, AC1015),
    _int("DIMLWD", -2, AC1015),
    _int("DIMLWE", -2, AC1015),
    _int("DIMTMOVE", 0, AC1015),
    _int("LUNITS", 2),
    _int("LUPREC", 4),
    _real("SKETCHINC", 0.1),
    _real("FILLETRAD"),
    _int("AUNITS"),
    _int("AUPREC"),
    _var("MENU", 1, Kind.STRING, "."),
    _real("ELEVATION"),
    _real("PELEVATION"),
    _real("THICKNESS"),
    _int("LIMCHECK"),
    _int("BLIPMODE", 0, high=AC1014),
    _real("CHAMFERA"),
    _real("CHAMFERB"),
    _real("CHAMFERC", 10.0, AC1012),
    _real("CHAMFERD", 10.0, AC1012),
    _int("SKPOLY"),
    _real("TDCREATE"),
    _real("TDUCREATE", 0.0, AC1015),
    _real("TDUPDATE"),
    _real("TDUUPDATE", 0.0, AC1015),
    _real("TDINDWG"),
    _real("TDUSRTIMER"),
    _int("USRTIMER", 1),
    _var("ANGBASE", 50, Kind.DOUBLE),
    _int("ANGDIR"),
    _int("PDMODE"),
    _real("PDSIZE"),
    _real("PLINEWID"),
    _int("COORDS", 2, high=AC1014),
    _int("SPLFRAME"),
    _int("SPLINETYPE", 6),
    _int("ATTDIA", 0, high=AC1014),
    _int("ATTREQ", 1, high=AC1014),
    _int("HANDLING", 1, high=AC1014),
    _int("SPLINESEGS", 8),
    _var("HANDSEED", 5, Kind.HANDLE, "20000"),
    _int("SURFTAB1", 6),
    _int("SURFTAB2", 6),
    _int("SURFTYPE", 6),
    _int("SURFU", 6),
    _int("SURFV", 6),
    _var("UCSBASE", 2, Kind.STRING, "", AC1015),
    _var("UCSNAME", 2, Kind.STRING),
    _point("UCSORG"),
    _point("UCSXDIR", (1.0, 0.0, 0.0)),
    _point("UCSYDIR", (0.0, 1.0, 0.0)),
    *_ucs_points("UCS"),
    _var("PUCSBASE", 2, Kind.STRING, "", AC1015),
    _var("PUCSNAME", 2, Kind.STRING),
    _point("PUCSORG"),
    _point("PUCSXDIR", (1.0, 0.0, 0.0)),
    _point("PUCSYDIR", (0.0, 1.0, 0.0)),
    *_ucs_points("PUCS"),
    *(_int(f"USERI{index}") for index in range(1, 6)),
    *(_real(f"USERR{index}") for index in range(1, 6)),
    _int("WORLDVIEW", 1),
    _int("SHADEDGE", 3),
    _int("SHADEDIF", 70),
    _int("TILEMODE", 1),
    _int("MAXACTVP", 64),
    _point("PINSBASE"),
    _int("PLIMCHECK"),
    _point("PEXTMIN"),
    _point("PEXTMAX"),
    _var("PLIMMIN", 10, Kind.POINT2D),
    _var("PLIMMAX", 10, Kind.POINT2D, (12.0, 9.0)),
    _int("UNITMODE"),
    _int("VISRETAIN", 1),
    _int("PLINEGEN"),
    _int("PSLTSCALE", 1),
    _int("TREEDEPTH", 3020, AC1012),
    _int("PICKSTYLE", 1, AC1012, AC1014),
    _var("CMLSTYLE", 2, Kind.STRING, "STANDARD", AC1012),
    _int("CMLJUST", 0, AC1012),
    _real("CMLSCALE", 1.0, AC1012),
    _int("PROXYGRAPHICS", 1, AC1014),
    _int("MEASUREMENT", 0, AC1014),
    _int("SAVEIMAGES", 1, AC1012, AC1012),
    _var("CELWEIGHT", 370, Kind.INT16, -1, AC1015),
    _var("ENDCAPS", 280, Kind.INT16, 0, AC1015),
    _var("JOINSTYLE", 280, Kind.INT16, 0, AC1015),
    _var("LWDISPLAY", 290, Kind.INT16, 0, AC1015),
    _int("INSUNITS", 0, AC1015),
    _var("HYPERLINKBASE", 1, Kind.STRING, "", AC1015),
    _var("STYLESHEET", 1, Kind.STRING, "", AC1015),
    _var("XEDIT", 290, Kind.INT16, 1, AC1015),
    _var("CEPSNTYPE", 380, Kind.INT16, 0, AC1015),
    _var("PSTYLEMODE", 290, Kind.INT16, 1, AC1015),
    _var("FINGERPRINTGUID", 2, Kind.STRING, "", AC1015),
    _var("VERSIONGUID", 2, Kind.STRING, "", AC1015),
    _var("EXTNAMES", 290, Kind.INT16, 1, AC1015),
    _real("PSVPSCALE", 0.0, AC1015),
    _var("OLESTARTUP", 290, Kind.INT16, 0, AC1015),
    _var("SORTENTS", 280, Kind.INT16, 127, AC1018),
    _var("INDEXCTL", 280, Kind.INT16, 0, AC1018),
    _var("HIDETEXT", 280, Kind.INT16, 1, AC1018),
    _var("XCLIPFRAME", 290, Kind.INT16, 0, AC1018),
    _var("HALOGAP", 280, Kind.INT16, 0, AC1018),
    _int("OBSCOLOR", 257, AC1018),
    _var("OBSLTYPE", 280, Kind.INT16, 0, AC1018),
    _var("INTERSECTIONDISPLAY", 280, Kind.INT16, 0, AC1018),
    _int("INTERSECTIONCOLOR", 257, AC1018),
    _var("DIMASSOC", 280, Kind.INT16, 2, AC1018),
    _var("PROJECTNAME", 1, Kind.STRING, "", AC1018),
)

VARIABLES_BY_NAME: dict[str, HeaderVariable] = {variable.name: variable for variable in HEADER_VARIABLES}


def _key(name: str) -> str:
    if name is None:
        raise NullArgument("header variable name is None")
    key = name.strip().upper().lstrip("$")
    if key not in VARIABLES_BY_NAME:
        raise KeyError(f"unknown header variable: ${key}")
    return key


@dataclass
class Header:
    """Drawing-wide variables keyed by name without the leading ``$``."""

    values: dict[str, Any] = field(
        default_factory=lambda: {variable.name: variable.default for variable in HEADER_VARIABLES}
    )
    # Names actually present in the HEADER section this record was read from.
    loaded: set[str] = field(default_factory=set, compare=False, repr=False)

    def get(self, name: str) -> Any:
        return self.values[_key(name)]

    def set(self, name: str, value: Any) -> None:
        key = _key(name)
        if value is None:
            raise NullArgument(f"${key}: value is None")
        if isinstance(value, list):
            value = tuple(float(v) for v in value)
        self.values[key] = value

    @property
    def version(self) -> str:
        return self.values["ACADVER"]

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self.values.items())


def decode_header(reader: TagReader, diagnostics: list[Diagnostic] | None = None) -> Header:
    """Read ``9/$NAME`` groups up to the next ``0`` tag, which is pushed back.

    Every variable is accepted whatever ``$ACADVER`` says; the version
    window only applies when writing.
    """
    diagnostics = diagnostics if diagnostics is not None else []
    header = Header()
    current: HeaderVariable | None = None
    while True:
        tag = reader.next_tag()
        if tag is None:
            break
        if tag.code == STRUCTURE_CODE:
            reader.push_back(tag)
            break
        line = max(reader.line_number - 1, 0)
        if tag.code == VARIABLE_CODE:
            name = tag.value.strip().lstrip("$").upper()
            current = VARIABLES_BY_NAME.get(name)
            if current is None:
                _report(diagnostics, "UnknownTag", tag.code, line, f"unknown header variable ${name}")
            continue
        if current is None:
            continue
        spec = current.spec
        if tag.code not in spec.codes:
            _report(diagnostics, "UnknownTag", tag.code, line, f"${current.name}: unexpected group code {tag.code}")
            continue
        try:
            value = fieldcodec.decode(tag, spec)
        except TypeMismatch as exc:
            _report(diagnostics, "TypeMismatch", tag.code, line, f"${current.name}: {exc}")
            continue
        if spec.kind.axes > 1:
            point = list(header.values[current.name])
            point[(tag.code - spec.code) // 10] = value
            header.values[current.name] = tuple(point)
        else:
            header.values[current.name] = value
        header.loaded.add(current.name)
    return header


def encode_header(header: Header, version: str | int = DEFAULT_VERSION) -> list[Tag]:
    """Encode every variable valid for ``version``; ``$ACADVER`` always names ``version``."""
    number = version_number(version)
    tags: list[Tag] = []
    for variable in HEADER_VARIABLES:
        value = header.values.get(variable.name, variable.default)
        if variable.name == "ACADVER":
            value = version_string(number)
        value_tags = fieldcodec.encode(value, variable.spec, number)
        if value_tags:
            tags.append(Tag(VARIABLE_CODE, f"${variable.name}"))
            tags.extend(value_tags)
    return tags


def _report(diagnostics: list[Diagnostic], kind: str, code: int, line: int, message: str) -> None:
    diagnostic = Diagnostic(kind, "HEADER", code, line, message)
    diagnostics.append(diagnostic)
    if kind == "TypeMismatch":
        logger.warning("%s", diagnostic)
    else:
        logger.debug("%s", diagnostic)

from __future__ import annotations

from .entities import X_AXIS, owner_rows
from .entity import Entity, EntityType, register
from .errors import InvalidEntity
from .fields import FieldSpec, Kind, RepeatGroup, Row, Subclass
from .versions import AC1009, AC1012, AC1014, AC1015, AC1018, AC1021

# Bits of the BLOCK type flags that mark external references.
BLOCK_XREF = 4
BLOCK_XREF_OVERLAY = 32


def _validate_name(entity: Entity) -> None:
    if not entity.dxf["name"]:
        raise InvalidEntity(entity.dxftype, "name value is empty", entity.handle)


def _validate_class(entity: Entity) -> None:
    for name in ("record_name", "class_name", "app_name"):
        if not entity.dxf[name]:
            raise InvalidEntity(entity.dxftype, f"{name} value is empty", entity.handle)


def _is_xref(entity: Entity) -> bool:
    return bool(entity.dxf["flags"] & (BLOCK_XREF | BLOCK_XREF_OVERLAY))


def record_rows(subclass: str) -> tuple[Row, ...]:
    """Leading rows of a symbol table entry, up to and including its name."""
    return owner_rows() + (
        Subclass("AcDbSymbolTableRecord"),
        Subclass(subclass),
        FieldSpec(2, "name", Kind.STRING, omit_default=False),
        FieldSpec(70, "flags", Kind.INT16, omit_default=False),
    )


CLASS = register(
    EntityType(
        "CLASS",
        (
            FieldSpec(1, "record_name", Kind.STRING, omit_default=False),
            FieldSpec(2, "class_name", Kind.STRING, omit_default=False),
            FieldSpec(3, "app_name", Kind.STRING, omit_default=False),
            FieldSpec(90, "proxy_flags", Kind.INT32, omit_default=False),
            FieldSpec(91, "instance_count", Kind.INT32, min_version=AC1018, omit_default=False),
            FieldSpec(280, "was_a_proxy", Kind.INT16, omit_default=False),
            FieldSpec(281, "is_an_entity", Kind.INT16, omit_default=False),
        ),
        min_version=AC1012,
        validate=_validate_class,
    )
)

BLOCK = register(
    EntityType(
        "BLOCK",
        owner_rows()
        + (
            Subclass("AcDbEntity"),
            FieldSpec(67, "paperspace", Kind.INT16),
            FieldSpec(8, "layer", Kind.STRING, "0", omit_default=False),
            Subclass("AcDbBlockBegin"),
            FieldSpec(2, "name", Kind.STRING, omit_default=False),
            FieldSpec(70, "flags", Kind.INT16, omit_default=False),
            FieldSpec(10, "base_point", Kind.POINT, omit_default=False),
            FieldSpec(3, "name", Kind.STRING, omit_default=False, mirror=True),
            FieldSpec(1, "xref_path", Kind.STRING, omit_default=False, when=_is_xref),
            FieldSpec(4, "description", Kind.STRING, min_version=AC1015),
        ),
        validate=_validate_name,
    )
)

ENDBLK = register(
    EntityType(
        "ENDBLK",
        owner_rows()
        + (
            Subclass("AcDbEntity"),
            FieldSpec(67, "paperspace", Kind.INT16),
            FieldSpec(8, "layer", Kind.STRING, "0", omit_default=False),
            Subclass("AcDbBlockEnd"),
        ),
    )
)

TABLE = register(
    EntityType(
        "TABLE",
        (
            FieldSpec(2, "name", Kind.STRING, omit_default=False),
            FieldSpec(5, "handle", Kind.HANDLE),
            FieldSpec(360, "xdictionary", Kind.HANDLE, app_group="ACAD_XDICTIONARY", min_version=AC1014),
            FieldSpec(330, "owner", Kind.HANDLE, min_version=AC1015),
            Subclass("AcDbSymbolTable"),
            FieldSpec(70, "max_entries", Kind.INT16, omit_default=False),
        ),
        validate=_validate_name,
    )
)

ENDTAB = register(EntityType("ENDTAB", ()))

LAYER = register(
    EntityType(
        "LAYER",
        record_rows("AcDbLayerTableRecord")
        + (
            FieldSpec(62, "color", Kind.INT16, 7, omit_default=False),
            FieldSpec(6, "linetype", Kind.STRING, "CONTINUOUS", omit_default=False),
            FieldSpec(290, "plot", Kind.INT16, 1, min_version=AC1015),
            FieldSpec(370, "lineweight", Kind.INT16, -3, min_version=AC1015, omit_default=False),
            FieldSpec(390, "plotstyle_handle", Kind.HANDLE, min_version=AC1015),
            FieldSpec(347, "material_handle", Kind.HANDLE, min_version=AC1021),
        ),
        validate=_validate_name,
    )
)

LTYPE_DASH = RepeatGroup(
    "dashes",
    (
        FieldSpec(49, "length", Kind.DOUBLE),
        FieldSpec(74, "shape_flags", Kind.INT16, min_version=AC1012),
        FieldSpec(75, "shape_number", Kind.INT16, min_version=AC1012),
        FieldSpec(340, "style_handle", Kind.HANDLE, min_version=AC1012),
        FieldSpec(46, "scale", Kind.DOUBLE, 1.0, min_version=AC1012),
        FieldSpec(50, "rotation", Kind.DOUBLE, min_version=AC1012),
        FieldSpec(44, "x_offset", Kind.DOUBLE, min_version=AC1012),
        FieldSpec(45, "y_offset", Kind.DOUBLE, min_version=AC1012),
        FieldSpec(9, "text", Kind.STRING, min_version=AC1012),
    ),
)

LTYPE = register(
    EntityType(
        "LTYPE",
        record_rows("AcDbLinetypeTableRecord")
        + (
            FieldSpec(3, "description", Kind.STRING, omit_default=False),
            FieldSpec(72, "alignment", Kind.INT16, 65, omit_default=False),
            FieldSpec(73, "n_dashes", Kind.INT16, count_of="dashes", omit_default=False),
            FieldSpec(40, "pattern_length", Kind.DOUBLE, omit_default=False),
            LTYPE_DASH,
        ),
        validate=_validate_name,
    )
)

STYLE = register(
    EntityType(
        "STYLE",
        record_rows("AcDbTextStyleTableRecord")
        + (
            FieldSpec(40, "height", Kind.DOUBLE, omit_default=False),
            FieldSpec(41, "width", Kind.DOUBLE, 1.0, omit_default=False),
            FieldSpec(50, "oblique", Kind.DOUBLE, omit_default=False),
            FieldSpec(71, "generation_flags", Kind.INT16, omit_default=False),
            FieldSpec(42, "last_height", Kind.DOUBLE, 2.5, omit_default=False),
            FieldSpec(3, "font", Kind.STRING, "txt", omit_default=False),
            FieldSpec(4, "bigfont", Kind.STRING, omit_default=False),
        ),
        validate=_validate_name,
    )
)

APPID = register(
    EntityType("APPID", record_rows("AcDbRegAppTableRecord"), validate=_validate_name)
)

UCS = register(
    EntityType(
        "UCS",
        record_rows("AcDbUCSTableRecord")
        + (
            FieldSpec(10, "origin", Kind.POINT, omit_default=False),
            FieldSpec(11, "xaxis", Kind.POINT, X_AXIS, omit_default=False),
            FieldSpec(12, "yaxis", Kind.POINT, (0.0, 1.0, 0.0), omit_default=False),
            FieldSpec(79, "ortho_flag", Kind.INT16, min_version=AC1015, omit_default=False),
            FieldSpec(146, "elevation", Kind.DOUBLE, min_version=AC1015, omit_default=False),
            FieldSpec(346, "base_ucs_handle", Kind.HANDLE, min_version=AC1015),
        ),
        validate=_validate_name,
    )
)

BLOCK_RECORD = register(
    EntityType(
        "BLOCK_RECORD",
        record_rows("AcDbBlockTableRecord")[:-1]
        + (
            FieldSpec(340, "layout", Kind.HANDLE, min_version=AC1015),
            FieldSpec(70, "insert_units", Kind.INT16, min_version=AC1018, omit_default=False),
            FieldSpec(280, "explode", Kind.INT16, 1, min_version=AC1018, omit_default=False),
            FieldSpec(281, "scale", Kind.INT16, min_version=AC1018, omit_default=False),
        ),
        min_version=AC1012,
        validate=_validate_name,
    )
)


def _always(code: int, name: str, kind: Kind, default=None, **kwargs) -> FieldSpec:
    return FieldSpec(code, name, kind, default, omit_default=False, **kwargs)


_DIMSTYLE_VARIABLES = (
    _always(3, "dimpost", Kind.STRING),
    _always(4, "dimapost", Kind.STRING),
    _always(5, "dimblk", Kind.STRING, max_version=AC1014),
    _always(6, "dimblk1", Kind.STRING, max_version=AC1014),
    _always(7, "dimblk2", Kind.STRING, max_version=AC1014),
    _always(40, "dimscale", Kind.DOUBLE, 1.0),
    _always(41, "dimasz", Kind.DOUBLE, 0.18),
    _always(42, "dimexo", Kind.DOUBLE, 0.0625),
    _always(43, "dimdli", Kind.DOUBLE, 0.38),
    _always(44, "dimexe", Kind.DOUBLE, 0.18),
    _always(45, "dimrnd", Kind.DOUBLE),
    _always(46, "dimdle", Kind.DOUBLE),
    _always(47, "dimtp", Kind.DOUBLE),
    _always(48, "dimtm", Kind.DOUBLE),
    _always(140, "dimtxt", Kind.DOUBLE, 0.18),
    _always(141, "dimcen", Kind.DOUBLE, 0.09),
    _always(142, "dimtsz", Kind.DOUBLE),
    _always(143, "dimaltf", Kind.DOUBLE, 25.4),
    _always(144, "dimlfac", Kind.DOUBLE, 1.0),
    _always(145, "dimtvp", Kind.DOUBLE),
    _always(146, "dimtfac", Kind.DOUBLE, 1.0),
    _always(147, "dimgap", Kind.DOUBLE, 0.09),
    _always(148, "dimaltrnd", Kind.DOUBLE, min_version=AC1015),
    _always(71, "dimtol", Kind.INT16),
    _always(72, "dimlim", Kind.INT16),
    _always(73, "dimtih", Kind.INT16, 1),
    _always(74, "dimtoh", Kind.INT16, 1),
    _always(75, "dimse1", Kind.INT16),
    _always(76, "dimse2", Kind.INT16),
    _always(77, "dimtad", Kind.INT16),
    _always(78, "dimzin", Kind.INT16),
    _always(79, "dimazin", Kind.INT16, min_version=AC1015),
    _always(170, "dimalt", Kind.INT16),
    _always(171, "dimaltd", Kind.INT16, 2),
    _always(172, "dimtofl", Kind.INT16),
    _always(173, "dimsah", Kind.INT16),
    _always(174, "dimtix", Kind.INT16),
    _always(175, "dimsoxd", Kind.INT16),
    _always(176, "dimclrd", Kind.INT16),
    _always(177, "dimclre", Kind.INT16),
    _always(178, "dimclrt", Kind.INT16),
    _always(179, "dimadec", Kind.INT16, min_version=AC1015),
    _always(270, "dimunit", Kind.INT16, 2, min_version=AC1012, max_version=AC1014),
    _always(271, "dimdec", Kind.INT16, 4, min_version=AC1012),
    _always(272, "dimtdec", Kind.INT16, 4, min_version=AC1012),
    _always(273, "dimaltu", Kind.INT16, 2, min_version=AC1012),
    _always(274, "dimalttd", Kind.INT16, 2, min_version=AC1012),
    _always(275, "dimaunit", Kind.INT16, min_version=AC1012),
    _always(276, "dimfrac", Kind.INT16, min_version=AC1015),
    _always(277, "dimlunit", Kind.INT16, 2, min_version=AC1015),
    _always(278, "dimdsep", Kind.INT16, 46, min_version=AC1015),
    _always(279, "dimtmove", Kind.INT16, min_version=AC1015),
    _always(280, "dimjust", Kind.INT16, min_version=AC1012),
    _always(281, "dimsd1", Kind.INT16, min_version=AC1012),
    _always(282, "dimsd2", Kind.INT16, min_version=AC1012),
    _always(283, "dimtolj", Kind.INT16, 1, min_version=AC1012),
    _always(284, "dimtzin", Kind.INT16, min_version=AC1012),
    _always(285, "dimaltz", Kind.INT16, min_version=AC1012),
    _always(286, "dimalttz", Kind.INT16, min_version=AC1012),
    _always(287, "dimfit", Kind.INT16, 3, min_version=AC1012, max_version=AC1014),
    _always(288, "dimupt", Kind.INT16, min_version=AC1012),
    _always(289, "dimatfit", Kind.INT16, 3, min_version=AC1015),
    FieldSpec(340, "dimtxsty_handle", Kind.HANDLE, min_version=AC1012),
    FieldSpec(341, "dimldrblk_handle", Kind.HANDLE, min_version=AC1015),
    FieldSpec(342, "dimblk_handle", Kind.HANDLE, min_version=AC1015),
    FieldSpec(343, "dimblk1_handle", Kind.HANDLE, min_version=AC1015),
    FieldSpec(344, "dimblk2_handle", Kind.HANDLE, min_version=AC1015),
    _always(371, "dimlwd", Kind.INT16, -2, min_version=AC1015),
    _always(372, "dimlwe", Kind.INT16, -2, min_version=AC1015),
)

DIMSTYLE = register(
    EntityType(
        "DIMSTYLE",
        (
            FieldSpec(105, "handle", Kind.HANDLE),
            FieldSpec(330, "reactors", Kind.HANDLE, repeatable=True, app_group="ACAD_REACTORS", min_version=AC1014),
            FieldSpec(330, "owner", Kind.HANDLE, min_version=AC1015),
            Subclass("AcDbSymbolTableRecord"),
            Subclass("AcDbDimStyleTableRecord"),
            FieldSpec(2, "name", Kind.STRING, omit_default=False),
            FieldSpec(70, "flags", Kind.INT16, omit_default=False),
        )
        + _DIMSTYLE_VARIABLES,
        validate=_validate_name,
    )
)

VPORT = register(
    EntityType(
        "VPORT",
        record_rows("AcDbViewportTableRecord")
        + (
            _always(10, "lower_left", Kind.POINT2D),
            _always(11, "upper_right", Kind.POINT2D, (1.0, 1.0)),
            _always(12, "center", Kind.POINT2D),
            _always(13, "snap_base", Kind.POINT2D),
            _always(14, "snap_spacing", Kind.POINT2D, (0.5, 0.5)),
            _always(15, "grid_spacing", Kind.POINT2D, (0.5, 0.5)),
            _always(16, "direction", Kind.POINT, (0.0, 0.0, 1.0)),
            _always(17, "target", Kind.POINT),
            _always(40, "height", Kind.DOUBLE, 1.0),
            _always(41, "aspect_ratio", Kind.DOUBLE, 1.0),
            _always(42, "lens_length", Kind.DOUBLE, 50.0),
            _always(43, "front_clipping", Kind.DOUBLE),
            _always(44, "back_clipping", Kind.DOUBLE),
            _always(50, "snap_rotation", Kind.DOUBLE),
            _always(51, "view_twist", Kind.DOUBLE),
            FieldSpec(68, "status", Kind.INT16, max_version=AC1009),
            FieldSpec(69, "viewport_id", Kind.INT16, max_version=AC1009),
            _always(71, "view_mode", Kind.INT16),
            _always(72, "circle_zoom", Kind.INT16, 1000),
            _always(73, "fast_zoom", Kind.INT16, 1),
            _always(74, "ucs_icon", Kind.INT16, 3),
            _always(75, "snap_on", Kind.INT16),
            _always(76, "grid_on", Kind.INT16),
            _always(77, "snap_style", Kind.INT16),
            _always(78, "snap_isopair", Kind.INT16),
            _always(281, "render_mode", Kind.INT16, min_version=AC1015),
            _always(65, "ucs_vp", Kind.INT16, 1, min_version=AC1015),
            _always(110, "ucs_origin", Kind.POINT, min_version=AC1015),
            _always(111, "ucs_xaxis", Kind.POINT, X_AXIS, min_version=AC1015),
            _always(112, "ucs_yaxis", Kind.POINT, (0.0, 1.0, 0.0), min_version=AC1015),
            _always(79, "ucs_ortho_type", Kind.INT16, min_version=AC1015),
            _always(146, "elevation", Kind.DOUBLE, min_version=AC1015),
        ),
        validate=_validate_name,
    )
)


def _view_has_ucs(entity: Entity) -> bool:
    return bool(entity.dxf["ucs"])


VIEW = register(
    EntityType(
        "VIEW",
        record_rows("AcDbViewTableRecord")
        + (
            _always(40, "height", Kind.DOUBLE, 1.0),
            _always(10, "center", Kind.POINT2D),
            _always(41, "width", Kind.DOUBLE, 1.0),
            _always(11, "direction", Kind.POINT, (0.0, 0.0, 1.0)),
            _always(12, "target", Kind.POINT),
            _always(42, "lens_length", Kind.DOUBLE, 50.0),
            _always(43, "front_clipping", Kind.DOUBLE),
            _always(44, "back_clipping", Kind.DOUBLE),
            _always(50, "view_twist", Kind.DOUBLE),
            _always(71, "view_mode", Kind.INT16),
            _always(281, "render_mode", Kind.INT16, min_version=AC1015),
            _always(72, "ucs", Kind.INT16, min_version=AC1015),
            _always(110, "ucs_origin", Kind.POINT, min_version=AC1015, when=_view_has_ucs),
            _always(111, "ucs_xaxis", Kind.POINT, X_AXIS, min_version=AC1015, when=_view_has_ucs),
            _always(112, "ucs_yaxis", Kind.POINT, (0.0, 1.0, 0.0), min_version=AC1015, when=_view_has_ucs),
            _always(79, "ucs_ortho_type", Kind.INT16, min_version=AC1015, when=_view_has_ucs),
            _always(146, "elevation", Kind.DOUBLE, min_version=AC1015, when=_view_has_ucs),
        ),
        validate=_validate_name,
    )
)

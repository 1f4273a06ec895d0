from __future__ import annotations

import math

from .entity import Entity, EntityType, register
from .errors import InvalidEntity
from .fields import FieldSpec, Kind, RepeatGroup, Row, Subclass
from .versions import AC1009, AC1012, AC1014, AC1015, AC1018, AC1021, AC1024

Z_AXIS = (0.0, 0.0, 1.0)
X_AXIS = (1.0, 0.0, 0.0)


def owner_rows() -> tuple[Row, ...]:
    """Handle, persistent reactors, extension dictionary and owner."""
    return (
        FieldSpec(5, "handle", Kind.HANDLE),
        FieldSpec(330, "reactors", Kind.HANDLE, repeatable=True, app_group="ACAD_REACTORS", min_version=AC1014),
        FieldSpec(360, "xdictionary", Kind.HANDLE, app_group="ACAD_XDICTIONARY", min_version=AC1014),
        FieldSpec(330, "owner", Kind.HANDLE, min_version=AC1015),
    )


def entity_rows() -> tuple[Row, ...]:
    return owner_rows() + (
        Subclass("AcDbEntity"),
        FieldSpec(67, "paperspace", Kind.INT16),
        FieldSpec(8, "layer", Kind.STRING, "0", omit_default=False),
        FieldSpec(6, "linetype", Kind.STRING, "BYLAYER"),
        FieldSpec(38, "elevation", Kind.DOUBLE, max_version=AC1009),
        FieldSpec(347, "material", Kind.HANDLE, min_version=AC1021),
        FieldSpec(62, "color", Kind.INT16, 256),
        FieldSpec(370, "lineweight", Kind.INT16, -1, min_version=AC1015),
        FieldSpec(48, "linetype_scale", Kind.DOUBLE, 1.0, min_version=AC1012),
        FieldSpec(60, "invisible", Kind.INT16, min_version=AC1012),
        FieldSpec(92, "proxy_graphics_size", Kind.INT32, min_version=AC1015),
        FieldSpec(310, "proxy_graphics", Kind.BINARY, repeatable=True, min_version=AC1015),
        FieldSpec(420, "true_color", Kind.INT32, -1, min_version=AC1018),
        FieldSpec(430, "color_name", Kind.STRING, min_version=AC1018),
        FieldSpec(440, "transparency", Kind.INT32, min_version=AC1018),
        FieldSpec(390, "plotstyle_handle", Kind.HANDLE, min_version=AC1015),
        FieldSpec(284, "shadow_mode", Kind.INT16, min_version=AC1021),
    )


def extrusion(name: str = "extrusion") -> FieldSpec:
    return FieldSpec(210, name, Kind.POINT, Z_AXIS, min_version=AC1012)


def _require(entity: Entity, condition: bool, reason: str) -> None:
    if not condition:
        raise InvalidEntity(entity.dxftype, reason, entity.handle)


def _validate_arc(entity: Entity) -> None:
    start = entity.dxf["start_angle"]
    end = entity.dxf["end_angle"]
    _require(entity, entity.dxf["radius"] != 0.0, "radius value equals 0.0")
    _require(entity, start != end, "start angle and end angle are identical")
    _require(entity, 0.0 <= start < 360.0, f"start angle {start} is outside [0, 360)")
    _require(entity, 0.0 <= end < 360.0, f"end angle {end} is outside [0, 360)")


def _validate_radius(entity: Entity) -> None:
    _require(entity, entity.dxf["radius"] != 0.0, "radius value equals 0.0")


def _validate_text(entity: Entity) -> None:
    _require(entity, entity.dxf["text"] != "", "text value is empty")


def _validate_ellipse(entity: Entity) -> None:
    ratio = entity.dxf["ratio"]
    _require(entity, 0.0 < ratio <= 1.0, f"ratio {ratio} is outside (0, 1]")


def _text_aligned(entity: Entity) -> bool:
    return bool(entity.dxf["halign"] or entity.dxf["valign"])


def spline_rows(*, with_normal: bool = True) -> tuple[Row, ...]:
    rows: tuple[Row, ...] = (Subclass("AcDbSpline"),)
    if with_normal:
        rows += (FieldSpec(210, "normal_vector", Kind.POINT, Z_AXIS),)
    return rows + (
        FieldSpec(70, "flags", Kind.INT16, omit_default=False),
        FieldSpec(71, "degree", Kind.INT16, 3, omit_default=False),
        FieldSpec(72, "n_knots", Kind.INT16, count_of="knots", omit_default=False),
        FieldSpec(73, "n_control_points", Kind.INT16, count_of="control_points", omit_default=False),
        FieldSpec(74, "n_fit_points", Kind.INT16, count_of="fit_points", omit_default=False),
        FieldSpec(42, "knot_tolerance", Kind.DOUBLE, 1e-10),
        FieldSpec(43, "control_point_tolerance", Kind.DOUBLE, 1e-10),
        FieldSpec(44, "fit_tolerance", Kind.DOUBLE, 1e-10),
        FieldSpec(12, "start_tangent", Kind.POINT),
        FieldSpec(13, "end_tangent", Kind.POINT),
        FieldSpec(40, "knots", Kind.DOUBLE, repeatable=True),
        FieldSpec(41, "weights", Kind.DOUBLE, repeatable=True),
        FieldSpec(10, "control_points", Kind.POINT, repeatable=True),
        FieldSpec(11, "fit_points", Kind.POINT, repeatable=True),
    )


ARC = register(
    EntityType(
        "ARC",
        entity_rows()
        + (
            Subclass("AcDbCircle"),
            FieldSpec(39, "thickness", Kind.DOUBLE),
            FieldSpec(10, "center", Kind.POINT, omit_default=False),
            FieldSpec(40, "radius", Kind.DOUBLE, omit_default=False),
            Subclass("AcDbArc"),
            FieldSpec(50, "start_angle", Kind.DOUBLE, omit_default=False),
            FieldSpec(51, "end_angle", Kind.DOUBLE, omit_default=False),
            extrusion(),
        ),
        validate=_validate_arc,
    )
)

CIRCLE = register(
    EntityType(
        "CIRCLE",
        entity_rows()
        + (
            Subclass("AcDbCircle"),
            FieldSpec(39, "thickness", Kind.DOUBLE),
            FieldSpec(10, "center", Kind.POINT, omit_default=False),
            FieldSpec(40, "radius", Kind.DOUBLE, 1.0, omit_default=False),
            extrusion(),
        ),
        validate=_validate_radius,
    )
)

LINE = register(
    EntityType(
        "LINE",
        entity_rows()
        + (
            Subclass("AcDbLine"),
            FieldSpec(39, "thickness", Kind.DOUBLE),
            FieldSpec(10, "start", Kind.POINT, omit_default=False),
            FieldSpec(11, "end", Kind.POINT, omit_default=False),
            extrusion(),
        ),
    )
)

POINT = register(
    EntityType(
        "POINT",
        entity_rows()
        + (
            Subclass("AcDbPoint"),
            FieldSpec(10, "location", Kind.POINT, omit_default=False),
            FieldSpec(39, "thickness", Kind.DOUBLE),
            extrusion(),
            FieldSpec(50, "angle", Kind.DOUBLE, min_version=AC1012),
        ),
    )
)

TEXT = register(
    EntityType(
        "TEXT",
        entity_rows()
        + (
            Subclass("AcDbText"),
            FieldSpec(39, "thickness", Kind.DOUBLE),
            FieldSpec(10, "insert", Kind.POINT, omit_default=False),
            FieldSpec(40, "height", Kind.DOUBLE, 1.0, omit_default=False),
            FieldSpec(1, "text", Kind.STRING, omit_default=False),
            FieldSpec(50, "rotation", Kind.DOUBLE),
            FieldSpec(41, "width", Kind.DOUBLE, 1.0),
            FieldSpec(51, "oblique", Kind.DOUBLE),
            FieldSpec(7, "style", Kind.STRING, "STANDARD"),
            FieldSpec(71, "text_generation_flag", Kind.INT16),
            FieldSpec(72, "halign", Kind.INT16),
            FieldSpec(11, "align_point", Kind.POINT, omit_default=False, when=_text_aligned),
            extrusion(),
            Subclass("AcDbText"),
            FieldSpec(73, "valign", Kind.INT16),
        ),
        validate=_validate_text,
    )
)

ELLIPSE = register(
    EntityType(
        "ELLIPSE",
        entity_rows()
        + (
            Subclass("AcDbEllipse"),
            FieldSpec(10, "center", Kind.POINT, omit_default=False),
            FieldSpec(11, "major_axis", Kind.POINT, X_AXIS, omit_default=False),
            extrusion(),
            FieldSpec(40, "ratio", Kind.DOUBLE, 1.0, omit_default=False),
            FieldSpec(41, "start_param", Kind.DOUBLE, omit_default=False),
            FieldSpec(42, "end_param", Kind.DOUBLE, math.tau, omit_default=False),
        ),
        min_version=AC1012,
        validate=_validate_ellipse,
    )
)

SPLINE = register(
    EntityType("SPLINE", entity_rows() + spline_rows(), min_version=AC1012)
)

HELIX = register(
    EntityType(
        "HELIX",
        entity_rows()
        + spline_rows(with_normal=False)
        + (
            Subclass("AcDbHelix"),
            FieldSpec(90, "major_release", Kind.INT32, 29, omit_default=False),
            FieldSpec(91, "maintenance_release", Kind.INT32, 63, omit_default=False),
            FieldSpec(10, "axis_base_point", Kind.POINT, omit_default=False),
            FieldSpec(11, "start_point", Kind.POINT, X_AXIS, omit_default=False),
            FieldSpec(12, "axis_vector", Kind.POINT, Z_AXIS, omit_default=False),
            FieldSpec(40, "radius", Kind.DOUBLE, 1.0, omit_default=False),
            FieldSpec(41, "turns", Kind.DOUBLE, 1.0, omit_default=False),
            FieldSpec(42, "turn_height", Kind.DOUBLE, 1.0, omit_default=False),
            FieldSpec(290, "handedness", Kind.INT16, 1, omit_default=False),
            FieldSpec(280, "constrain", Kind.INT16, 1, omit_default=False),
        ),
        min_version=AC1021,
        validate=_validate_radius,
    )
)

TABLE_CELL = RepeatGroup(
    "cells",
    (
        FieldSpec(171, "cell_type", Kind.INT16, 1),
        FieldSpec(172, "flags", Kind.INT16),
        FieldSpec(173, "merged", Kind.INT16),
        FieldSpec(174, "autofit", Kind.INT16),
        FieldSpec(175, "border_width", Kind.INT32),
        FieldSpec(176, "border_height", Kind.INT32),
        FieldSpec(91, "override_flags", Kind.INT32),
        FieldSpec(178, "virtual_edge", Kind.INT16),
        FieldSpec(145, "rotation", Kind.DOUBLE),
        FieldSpec(344, "field_handle", Kind.HANDLE),
        FieldSpec(1, "text", Kind.STRING),
        FieldSpec(340, "block_record", Kind.HANDLE),
        FieldSpec(144, "block_scale", Kind.DOUBLE, 1.0),
        FieldSpec(331, "attdefs", Kind.HANDLE, repeatable=True),
        FieldSpec(300, "attdef_values", Kind.STRING, repeatable=True),
    ),
)

ACAD_TABLE = register(
    EntityType(
        "ACAD_TABLE",
        entity_rows()
        + (
            Subclass("AcDbBlockReference"),
            FieldSpec(2, "block_name", Kind.STRING),
            FieldSpec(10, "insert", Kind.POINT, omit_default=False),
            Subclass("AcDbTable"),
            FieldSpec(280, "table_version", Kind.INT16),
            FieldSpec(342, "table_style", Kind.HANDLE),
            FieldSpec(343, "block_record", Kind.HANDLE),
            FieldSpec(11, "horizontal_direction", Kind.POINT, X_AXIS, omit_default=False),
            FieldSpec(90, "table_value_flags", Kind.INT32, omit_default=False),
            FieldSpec(91, "n_rows", Kind.INT32, count_of="row_heights", omit_default=False),
            FieldSpec(92, "n_columns", Kind.INT32, count_of="column_widths", omit_default=False),
            FieldSpec(93, "override_flags", Kind.INT32),
            FieldSpec(94, "border_color_overrides", Kind.INT32),
            FieldSpec(95, "border_lineweight_overrides", Kind.INT32),
            FieldSpec(96, "border_visibility_overrides", Kind.INT32),
            FieldSpec(141, "row_heights", Kind.DOUBLE, repeatable=True),
            FieldSpec(142, "column_widths", Kind.DOUBLE, repeatable=True),
            TABLE_CELL,
        ),
        min_version=AC1018,
    )
)


LWPOLYLINE_VERTEX = RepeatGroup(
    "vertices",
    (
        FieldSpec(10, "location", Kind.POINT2D, omit_default=False),
        FieldSpec(91, "vertex_id", Kind.INT32, min_version=AC1024),
        FieldSpec(40, "start_width", Kind.DOUBLE),
        FieldSpec(41, "end_width", Kind.DOUBLE),
        FieldSpec(42, "bulge", Kind.DOUBLE),
    ),
)

LWPOLYLINE = register(
    EntityType(
        "LWPOLYLINE",
        entity_rows()
        + (
            Subclass("AcDbPolyline"),
            FieldSpec(90, "n_vertices", Kind.INT32, count_of="vertices", omit_default=False),
            FieldSpec(70, "flags", Kind.INT16, omit_default=False),
            FieldSpec(43, "constant_width", Kind.DOUBLE),
            FieldSpec(38, "elevation", Kind.DOUBLE),
            FieldSpec(39, "thickness", Kind.DOUBLE),
            LWPOLYLINE_VERTEX,
            extrusion(),
        ),
        min_version=AC1014,
    )
)


def _validate_insert(entity: Entity) -> None:
    _require(entity, entity.dxf["name"] != "", "block name is empty")


INSERT = register(
    EntityType(
        "INSERT",
        entity_rows()
        + (
            Subclass("AcDbBlockReference"),
            FieldSpec(66, "attribs_follow", Kind.INT16),
            FieldSpec(2, "name", Kind.STRING, omit_default=False),
            FieldSpec(10, "insert", Kind.POINT, omit_default=False),
            FieldSpec(41, "xscale", Kind.DOUBLE, 1.0),
            FieldSpec(42, "yscale", Kind.DOUBLE, 1.0),
            FieldSpec(43, "zscale", Kind.DOUBLE, 1.0),
            FieldSpec(50, "rotation", Kind.DOUBLE),
            FieldSpec(70, "column_count", Kind.INT16, 1),
            FieldSpec(71, "row_count", Kind.INT16, 1),
            FieldSpec(44, "column_spacing", Kind.DOUBLE),
            FieldSpec(45, "row_spacing", Kind.DOUBLE),
            extrusion(),
        ),
        validate=_validate_insert,
    )
)


def _validate_attrib(entity: Entity) -> None:
    _require(entity, entity.dxf["tag"] != "", "tag value is empty")


ATTRIB = register(
    EntityType(
        "ATTRIB",
        entity_rows()
        + (
            Subclass("AcDbText"),
            FieldSpec(39, "thickness", Kind.DOUBLE),
            FieldSpec(10, "insert", Kind.POINT, omit_default=False),
            FieldSpec(40, "height", Kind.DOUBLE, 1.0, omit_default=False),
            FieldSpec(1, "text", Kind.STRING, omit_default=False),
            FieldSpec(50, "rotation", Kind.DOUBLE),
            FieldSpec(41, "width", Kind.DOUBLE, 1.0),
            FieldSpec(51, "oblique", Kind.DOUBLE),
            FieldSpec(7, "style", Kind.STRING, "STANDARD"),
            FieldSpec(71, "text_generation_flag", Kind.INT16),
            FieldSpec(72, "halign", Kind.INT16),
            FieldSpec(11, "align_point", Kind.POINT, omit_default=False, when=_text_aligned),
            extrusion(),
            Subclass("AcDbAttribute"),
            FieldSpec(2, "tag", Kind.STRING, omit_default=False),
            FieldSpec(70, "flags", Kind.INT16, omit_default=False),
            FieldSpec(73, "field_length", Kind.INT16),
            FieldSpec(74, "valign", Kind.INT16),
        ),
        validate=_validate_attrib,
    )
)

# POLYLINE flag bits that select the subclass of the polyline and its vertices.
POLYLINE_3D = 8
POLYLINE_MESH = 16
POLYLINE_POLYFACE = 64


def _polyline_kind(entity: Entity) -> int:
    return entity.dxf["flags"] & (POLYLINE_3D | POLYLINE_MESH | POLYLINE_POLYFACE)


POLYLINE = register(
    EntityType(
        "POLYLINE",
        entity_rows()
        + (
            Subclass("AcDb2dPolyline", when=lambda e: _polyline_kind(e) == 0),
            Subclass("AcDb3dPolyline", when=lambda e: bool(_polyline_kind(e) & POLYLINE_3D)),
            Subclass("AcDbPolygonMesh", when=lambda e: bool(_polyline_kind(e) & POLYLINE_MESH)),
            Subclass("AcDbPolyFaceMesh", when=lambda e: bool(_polyline_kind(e) & POLYLINE_POLYFACE)),
            FieldSpec(66, "vertices_follow", Kind.INT16, 1, omit_default=False),
            FieldSpec(10, "elevation_point", Kind.POINT, omit_default=False),
            FieldSpec(39, "thickness", Kind.DOUBLE),
            FieldSpec(70, "flags", Kind.INT16, omit_default=False),
            FieldSpec(40, "default_start_width", Kind.DOUBLE),
            FieldSpec(41, "default_end_width", Kind.DOUBLE),
            FieldSpec(71, "m_count", Kind.INT16),
            FieldSpec(72, "n_count", Kind.INT16),
            FieldSpec(73, "m_smooth_density", Kind.INT16),
            FieldSpec(74, "n_smooth_density", Kind.INT16),
            FieldSpec(75, "smooth_type", Kind.INT16),
            extrusion(),
        ),
    )
)

# VERTEX flag bits.
VERTEX_3D_POLYLINE = 32
VERTEX_MESH = 64
VERTEX_POLYFACE = 128


def _vertex_kind(entity: Entity) -> int:
    return entity.dxf["flags"] & (VERTEX_3D_POLYLINE | VERTEX_MESH | VERTEX_POLYFACE)


def _is_face_record(entity: Entity) -> bool:
    return _vertex_kind(entity) == VERTEX_POLYFACE


VERTEX = register(
    EntityType(
        "VERTEX",
        entity_rows()
        + (
            Subclass("AcDbVertex", when=lambda e: not _is_face_record(e)),
            Subclass("AcDb2dVertex", when=lambda e: _vertex_kind(e) == 0),
            Subclass("AcDb3dPolylineVertex", when=lambda e: _vertex_kind(e) == VERTEX_3D_POLYLINE),
            Subclass("AcDbPolygonMeshVertex", when=lambda e: _vertex_kind(e) == VERTEX_MESH),
            Subclass("AcDbPolyFaceMeshVertex", when=lambda e: _vertex_kind(e) == VERTEX_MESH | VERTEX_POLYFACE),
            Subclass("AcDbFaceRecord", when=_is_face_record),
            FieldSpec(10, "location", Kind.POINT, omit_default=False),
            FieldSpec(40, "start_width", Kind.DOUBLE),
            FieldSpec(41, "end_width", Kind.DOUBLE),
            FieldSpec(42, "bulge", Kind.DOUBLE),
            FieldSpec(70, "flags", Kind.INT16, omit_default=False),
            FieldSpec(50, "tangent", Kind.DOUBLE),
            FieldSpec(71, "vtx0", Kind.INT16),
            FieldSpec(72, "vtx1", Kind.INT16),
            FieldSpec(73, "vtx2", Kind.INT16),
            FieldSpec(74, "vtx3", Kind.INT16),
        ),
    )
)

SEQEND = register(EntityType("SEQEND", entity_rows()))

MTEXT = register(
    EntityType(
        "MTEXT",
        entity_rows()
        + (
            Subclass("AcDbMText"),
            FieldSpec(10, "insert", Kind.POINT, omit_default=False),
            FieldSpec(40, "char_height", Kind.DOUBLE, 1.0, omit_default=False),
            FieldSpec(41, "width", Kind.DOUBLE, omit_default=False),
            FieldSpec(46, "defined_height", Kind.DOUBLE, min_version=AC1021),
            FieldSpec(71, "attachment_point", Kind.INT16, 1, omit_default=False),
            FieldSpec(72, "flow_direction", Kind.INT16, 1, omit_default=False),
            # Text longer than 250 characters is split: leading chunks on 3, the rest on 1.
            FieldSpec(3, "text_chunks", Kind.STRING, repeatable=True),
            FieldSpec(1, "text", Kind.STRING, omit_default=False),
            FieldSpec(7, "style", Kind.STRING, "STANDARD"),
            extrusion(),
            FieldSpec(11, "text_direction", Kind.POINT, X_AXIS),
            FieldSpec(42, "rect_width", Kind.DOUBLE),
            FieldSpec(43, "rect_height", Kind.DOUBLE),
            FieldSpec(50, "rotation", Kind.DOUBLE),
            FieldSpec(73, "line_spacing_style", Kind.INT16, 1),
            FieldSpec(44, "line_spacing_factor", Kind.DOUBLE, 1.0),
            FieldSpec(90, "bg_fill", Kind.INT32, min_version=AC1018),
            FieldSpec(63, "bg_fill_color", Kind.INT16, min_version=AC1018),
            FieldSpec(45, "box_fill_scale", Kind.DOUBLE, min_version=AC1018),
            FieldSpec(441, "bg_fill_transparency", Kind.INT32, min_version=AC1018),
        ),
        min_version=AC1012,
    )
)


def corner_rows() -> tuple[Row, ...]:
    return (
        FieldSpec(10, "vtx0", Kind.POINT, omit_default=False),
        FieldSpec(11, "vtx1", Kind.POINT, omit_default=False),
        FieldSpec(12, "vtx2", Kind.POINT, omit_default=False),
        FieldSpec(13, "vtx3", Kind.POINT, omit_default=False),
    )


SOLID = register(
    EntityType(
        "SOLID",
        entity_rows()
        + (Subclass("AcDbTrace"),)
        + corner_rows()
        + (FieldSpec(39, "thickness", Kind.DOUBLE), extrusion()),
    )
)

FACE3D = register(
    EntityType(
        "3DFACE",
        entity_rows()
        + (Subclass("AcDbFace"),)
        + corner_rows()
        + (FieldSpec(70, "invisible_edges", Kind.INT16),),
    )
)

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from .document import Drawing, read
from .entity import Entity

logger = logging.getLogger(__name__)

SPLINE_CLOSED = 1
SPLINE_PERIODIC = 2
SPLINE_RATIONAL = 4
LWPOLYLINE_CLOSED = 1


@dataclass(frozen=True)
class ConvertResult:
    source_path: str
    output_path: str
    total_entities: int
    written_entities: int
    skipped_entities: int
    skipped_by_type: dict[str, int]


def export_ezdxf(
    source: str | Path | Drawing,
    output_path: str | Path,
    *,
    types: str | Iterable[str] | None = None,
    dxf_version: str = "R2010",
    strict: bool = False,
) -> ConvertResult:
    """Rebuild the ENTITIES section of ``source`` in a fresh ezdxf document.

    Only geometric records with an ezdxf counterpart are transferred; the
    rest are counted in ``skipped_by_type``.
    """
    ezdxf = _require_ezdxf()
    source_path, drawing = _resolve_drawing(source)

    dxf_doc = ezdxf.new(dxfversion=dxf_version)
    modelspace = dxf_doc.modelspace()

    total = 0
    written = 0
    skipped_by_type: dict[str, int] = {}

    for entity in drawing.query(types):
        total += 1
        if _write_entity_to_modelspace(modelspace, entity):
            written += 1
            continue
        skipped_by_type[entity.dxftype] = skipped_by_type.get(entity.dxftype, 0) + 1

    skipped = total - written
    if strict and skipped > 0:
        summary = ", ".join(
            f"{dxftype}:{count}" for dxftype, count in sorted(skipped_by_type.items())
        )
        raise ValueError(f"failed to convert {skipped} entities ({summary})")

    out_path = Path(output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    dxf_doc.saveas(str(out_path))

    return ConvertResult(
        source_path=source_path,
        output_path=str(out_path),
        total_entities=total,
        written_entities=written,
        skipped_entities=skipped,
        skipped_by_type=dict(sorted(skipped_by_type.items())),
    )


def _require_ezdxf():
    try:
        import ezdxf
    except Exception as exc:
        raise ImportError(
            "ezdxf is required for conversion. "
            'Install it with `pip install "dxfcodec[ezdxf]"`.'
        ) from exc
    return ezdxf


def _resolve_drawing(source: str | Path | Drawing) -> tuple[str, Drawing]:
    if isinstance(source, Drawing):
        return source.path or "<drawing>", source
    return str(source), read(source)


def _write_entity_to_modelspace(modelspace: Any, entity: Entity) -> bool:
    try:
        return _write_entity_to_modelspace_unsafe(modelspace, entity)
    except Exception as exc:
        logger.warning("could not convert %s %s: %s", entity.dxftype, entity.handle, exc)
        return False


def _write_entity_to_modelspace_unsafe(modelspace: Any, entity: Entity) -> bool:
    dxftype = entity.dxftype
    dxf = entity.dxf
    dxfattribs = _entity_dxfattribs(dxf)

    if dxftype == "LINE":
        modelspace.add_line(_point3(dxf.get("start")), _point3(dxf.get("end")), dxfattribs=dxfattribs)
        return True

    if dxftype == "POINT":
        modelspace.add_point(_point3(dxf.get("location")), dxfattribs=dxfattribs)
        return True

    if dxftype == "ARC":
        modelspace.add_arc(
            _point3(dxf.get("center")),
            float(dxf.get("radius", 0.0)),
            float(dxf.get("start_angle", 0.0)),
            float(dxf.get("end_angle", 0.0)),
            dxfattribs=dxfattribs,
        )
        return True

    if dxftype == "CIRCLE":
        modelspace.add_circle(
            _point3(dxf.get("center")),
            float(dxf.get("radius", 0.0)),
            dxfattribs=dxfattribs,
        )
        return True

    if dxftype == "ELLIPSE":
        modelspace.add_ellipse(
            _point3(dxf.get("center")),
            major_axis=_point3(dxf.get("major_axis")),
            ratio=float(dxf.get("ratio", 1.0)),
            start_param=float(dxf.get("start_param", 0.0)),
            end_param=float(dxf.get("end_param", 0.0)),
            dxfattribs=dxfattribs,
        )
        return True

    if dxftype in {"SPLINE", "HELIX"}:
        return _write_spline(modelspace, dxf, dxfattribs)

    if dxftype == "TEXT":
        return _write_text(modelspace, dxf, dxfattribs)

    if dxftype == "MTEXT":
        return _write_mtext(modelspace, dxf, dxfattribs)

    if dxftype == "LWPOLYLINE":
        vertices = []
        for vertex in dxf.get("vertices", []):
            x, y, _ = _point3(vertex.get("location"))
            vertices.append(
                (
                    x,
                    y,
                    float(vertex.get("start_width", 0.0)),
                    float(vertex.get("end_width", 0.0)),
                    float(vertex.get("bulge", 0.0)),
                )
            )
        if len(vertices) < 2:
            return False
        lw = modelspace.add_lwpolyline(
            vertices,
            format="xyseb",
            close=bool(int(dxf.get("flags", 0)) & LWPOLYLINE_CLOSED),
            dxfattribs=dxfattribs,
        )
        if dxf.get("constant_width"):
            lw.dxf.const_width = float(dxf["constant_width"])
        return True

    if dxftype in {"SOLID", "3DFACE"}:
        points = [_point3(dxf.get(name)) for name in ("vtx0", "vtx1", "vtx2", "vtx3")]
        if dxftype == "SOLID":
            modelspace.add_solid(points, dxfattribs=dxfattribs)
        else:
            modelspace.add_3dface(points, dxfattribs=dxfattribs)
        return True

    return False


def _write_spline(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> bool:
    flags = int(dxf.get("flags", 0))
    closed = bool(flags & SPLINE_CLOSED)
    degree = max(1, int(dxf.get("degree", 3)))

    control_points = [_point3(point) for point in dxf.get("control_points", [])]
    if len(control_points) < 2:
        fit_points = [_point3(point) for point in dxf.get("fit_points", [])]
        if len(fit_points) < 2:
            return False
        spline = modelspace.add_spline(fit_points=fit_points, degree=degree, dxfattribs=dxfattribs)
        if closed:
            spline.set_flag_state(spline.CLOSED, True)
        return True

    knots = [float(v) for v in dxf.get("knots", [])]
    weights = [float(v) for v in dxf.get("weights", [])]
    rational = bool(flags & SPLINE_RATIONAL) and len(weights) == len(control_points)

    if closed and len(control_points) >= 3 and not knots:
        spline = modelspace.add_spline(dxfattribs=dxfattribs)
        if rational:
            spline.set_closed_rational(control_points, weights, degree=degree)
        else:
            spline.set_closed(control_points, degree=degree)
        return True

    if rational:
        spline = modelspace.add_rational_spline(
            control_points=control_points,
            weights=weights,
            degree=degree,
            knots=knots if knots else None,
            dxfattribs=dxfattribs,
        )
    else:
        spline = modelspace.add_open_spline(
            control_points=control_points,
            degree=degree,
            knots=knots if knots else None,
            dxfattribs=dxfattribs,
        )
    if closed:
        spline.set_flag_state(spline.CLOSED, True)
    return True


def _write_text(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> bool:
    text = str(dxf.get("text", "") or "")
    if text == "":
        return False
    text_entity = modelspace.add_text(
        text,
        height=float(dxf.get("height", 1.0)),
        rotation=float(dxf.get("rotation", 0.0)),
        dxfattribs=dxfattribs,
    )
    text_entity.dxf.insert = _point3(dxf.get("insert"))
    return True


def _write_mtext(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> bool:
    text = "".join(dxf.get("text_chunks", [])) + str(dxf.get("text", "") or "")
    if text == "":
        return False
    mtext = modelspace.add_mtext(text, dxfattribs=dxfattribs)
    mtext.set_location(_point3(dxf.get("insert")))
    mtext.dxf.char_height = float(dxf.get("char_height", 1.0))
    return True


def _entity_dxfattribs(dxf: dict[str, Any]) -> dict[str, Any]:
    attribs: dict[str, Any] = {}
    layer = str(dxf.get("layer") or "0")
    attribs["layer"] = layer
    color = _to_valid_aci(dxf.get("color"))
    if color is not None:
        attribs["color"] = color
    true_color = _to_valid_true_color(dxf.get("true_color"))
    if true_color is not None:
        attribs["true_color"] = true_color
    return attribs


def _to_valid_aci(value: Any) -> int | None:
    try:
        aci = int(value)
    except Exception:
        return None
    if 1 <= aci <= 255:
        return aci
    return None


def _to_valid_true_color(value: Any) -> int | None:
    try:
        color = int(value)
    except Exception:
        return None
    if color < 0:
        return None
    return color & 0xFFFFFF


def _point3(value: Any) -> tuple[float, float, float]:
    if value is None:
        return (0.0, 0.0, 0.0)
    if isinstance(value, (list, tuple)):
        if len(value) >= 3:
            return (float(value[0]), float(value[1]), float(value[2]))
        if len(value) >= 2:
            return (float(value[0]), float(value[1]), 0.0)
    raise ValueError(f"invalid point value: {value!r}")

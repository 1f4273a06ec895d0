from __future__ import annotations

import copy
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable, Iterator

from .errors import NullArgument
from .fields import FieldSpec, RepeatGroup, Row, Subclass
from .versions import MIN_VERSION

Point3D = tuple[float, float, float]


@dataclass
class Entity:
    """One decoded DXF record: a type name plus its field values.

    Repeatable fields and repeat groups are plain lists owned by the record.
    """

    dxftype: str
    dxf: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, dxftype: str, **attribs: Any) -> "Entity":
        entity_type = get_type(dxftype)
        entity = cls(entity_type.name, entity_type.defaults())
        for name, value in attribs.items():
            entity.set(name, value)
        return entity

    @property
    def handle(self) -> str:
        return self.dxf.get("handle", "")

    def get(self, name: str) -> Any:
        if name is None:
            raise NullArgument(f"{self.dxftype}: field name is None")
        try:
            return self.dxf[name]
        except KeyError:
            raise KeyError(f"{self.dxftype} has no field {name!r}") from None

    def set(self, name: str, value: Any) -> None:
        if name is None or value is None:
            raise NullArgument(f"{self.dxftype}.{name}: value is None")
        if name not in self.dxf:
            raise KeyError(f"{self.dxftype} has no field {name!r}")
        entity_type = _REGISTRY.get(self.dxftype)
        group = entity_type.group(name) if entity_type is not None else None
        if group is not None:
            value = [_as_node(group, item) for item in value]
        elif isinstance(self.dxf[name], tuple) and isinstance(value, (list, tuple)):
            value = _as_point(value)
        elif isinstance(value, list):
            value = [_as_point(item) if isinstance(item, (list, tuple)) else item for item in value]
        self.dxf[name] = value

    def copy(self) -> "Entity":
        return Entity(self.dxftype, copy.deepcopy(self.dxf))

    def to_points(self) -> list[Point3D]:
        if self.dxftype == "LINE":
            return [self.dxf["start"], self.dxf["end"]]
        if self.dxftype == "POINT":
            return [self.dxf["location"]]
        if self.dxftype in {"ARC", "CIRCLE", "ELLIPSE"}:
            return [self.dxf["center"]]
        if self.dxftype in {"TEXT", "MTEXT", "ATTRIB", "INSERT"}:
            return [self.dxf["insert"]]
        if self.dxftype == "VERTEX":
            return [self.dxf["location"]]
        if self.dxftype in {"SOLID", "3DFACE"}:
            return [self.dxf[name] for name in ("vtx0", "vtx1", "vtx2", "vtx3")]
        if self.dxftype == "LWPOLYLINE":
            z = float(self.dxf["elevation"])
            return [(x, y, z) for x, y in (vertex["location"] for vertex in self.dxf["vertices"])]
        if self.dxftype in {"SPLINE", "HELIX"}:
            return list(self.dxf["control_points"]) or list(self.dxf["fit_points"])
        raise NotImplementedError(f"to_points is not supported for {self.dxftype}")


@dataclass(frozen=True)
class EntityType:
    """Registry entry: the ordered field table for one DXF type."""

    name: str
    rows: tuple[Row, ...]
    min_version: int = MIN_VERSION
    validate: Callable[[Entity], None] | None = field(default=None, compare=False)
    intro: bool = True

    @cached_property
    def sections(self) -> tuple[tuple[Subclass | None, tuple[FieldSpec | RepeatGroup, ...]], ...]:
        """Rows split at each subclass marker; the first section has no marker."""
        sections: list[tuple[Subclass | None, list[FieldSpec | RepeatGroup]]] = [(None, [])]
        for row in self.rows:
            if isinstance(row, Subclass):
                sections.append((row, []))
            else:
                sections[-1][1].append(row)
        return tuple((marker, tuple(entries)) for marker, entries in sections)

    def iter_fields(self) -> Iterator[FieldSpec | RepeatGroup]:
        for row in self.rows:
            if not isinstance(row, Subclass):
                yield row

    def stored_fields(self) -> Iterator[FieldSpec | RepeatGroup]:
        """Fields that hold a value on the record (no mirrors, no counts)."""
        seen = set()
        for row in self.iter_fields():
            if isinstance(row, FieldSpec) and (row.mirror or row.count_of):
                continue
            if row.name in seen:
                continue
            seen.add(row.name)
            yield row

    def defaults(self) -> dict[str, Any]:
        return {row.name: row.initial() for row in self.stored_fields()}

    def group(self, name: str) -> RepeatGroup | None:
        for row in self.rows:
            if isinstance(row, RepeatGroup) and row.name == name:
                return row
        return None


def _as_point(value: list | tuple) -> tuple[float, ...]:
    return tuple(float(v) for v in value)


def _as_node(group: RepeatGroup, item: dict[str, Any]) -> dict[str, Any]:
    """Complete one repeat-group node with the member defaults."""
    node = group.new_node()
    for key, value in item.items():
        if key not in node:
            raise KeyError(f"{group.name} has no member {key!r}")
        if isinstance(node[key], tuple) and isinstance(value, (list, tuple)):
            value = _as_point(value)
        node[key] = value
    return node


_REGISTRY: dict[str, EntityType] = {}


def register(entity_type: EntityType) -> EntityType:
    _REGISTRY[entity_type.name] = entity_type
    return entity_type


def get_type(dxftype: str) -> EntityType:
    if dxftype is None:
        raise NullArgument("entity type is None")
    try:
        return _REGISTRY[dxftype.strip().upper()]
    except KeyError:
        raise KeyError(f"unregistered DXF type: {dxftype}") from None


def is_registered(dxftype: str) -> bool:
    return dxftype.strip().upper() in _REGISTRY


def registered_types() -> tuple[str, ...]:
    return tuple(_REGISTRY)

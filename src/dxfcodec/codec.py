from __future__ import annotations

import logging
from typing import Any

from . import fields as fieldcodec
from .entity import Entity, EntityType, get_type
from .errors import Diagnostic, InvalidEntity, NullArgument, TypeMismatch
from .fields import FieldSpec, Kind, RepeatGroup
from .tags import APP_GROUP_CODE, STRUCTURE_CODE, SUBCLASS_CODE, Tag, TagReader, TagWriter
from .versions import DEFAULT_VERSION, version_number, version_string

logger = logging.getLogger(__name__)

UNKNOWN_TAG = "UnknownTag"
TYPE_MISMATCH = "TypeMismatch"
DEFAULT_APPLIED = "DefaultApplied"


class EntityDecoder:
    """Table-driven decoder for one entity at a time.

    ``decode`` expects the reader to be positioned just after the entity's
    ``0/NAME`` tag and stops at the next ``0`` tag, which is pushed back.
    Field-level problems are appended to ``diagnostics`` and never raised.
    """

    def __init__(
        self,
        version: str | int | None = None,
        diagnostics: list[Diagnostic] | None = None,
    ) -> None:
        self.version = None if version is None else version_number(version)
        self.diagnostics = diagnostics if diagnostics is not None else []

    def decode(self, reader: TagReader, dxftype: str) -> Entity:
        if reader is None:
            raise NullArgument("reader is None")
        state = _DecodeState(get_type(dxftype), self.version, self.diagnostics)
        while True:
            tag = reader.next_tag()
            if tag is None:
                break
            if tag.code == STRUCTURE_CODE:
                reader.push_back(tag)
                break
            state.feed(tag, max(reader.line_number - 1, 0))
        state.finish()
        return state.entity


class _DecodeState:
    def __init__(self, entity_type: EntityType, version: int | None, diagnostics: list[Diagnostic]) -> None:
        self.entity_type = entity_type
        self.entity = Entity(entity_type.name, entity_type.defaults())
        self.sections = entity_type.sections
        self.version = version
        self.diagnostics = diagnostics
        self.cursor = 0
        self.app_group: str | None = None
        self.group: RepeatGroup | None = None
        self.filled: set[tuple[int, int]] = set()
        self.last_point: tuple[int, int] | None = None
        # Y/Z codes still expected from a point whose X failed to parse.
        self.orphans: set[int] = set()

    def report(self, kind: str, code: int | None, line: int, message: str) -> None:
        diagnostic = Diagnostic(kind, self.entity_type.name, code, line, message)
        self.diagnostics.append(diagnostic)
        if kind == TYPE_MISMATCH:
            logger.warning("%s", diagnostic)
        else:
            logger.debug("%s", diagnostic)

    def feed(self, tag: Tag, line: int) -> None:
        if tag.code in self.orphans:
            self.orphans.discard(tag.code)
            self.report(UNKNOWN_TAG, tag.code, line, f"dropping group code {tag.code}: X value of the point was unreadable")
            return
        self.orphans.clear()
        if tag.code == SUBCLASS_CODE:
            self._enter_subclass(tag, line)
            return
        if tag.code == APP_GROUP_CODE:
            self._app_group(tag, line)
            return
        if self.group is not None:
            if self._continue_group(tag, line):
                return
            self.group = None

        gated = False
        for section_index in self._search_order():
            candidates = []
            for index, row in enumerate(self.sections[section_index][1]):
                if isinstance(row, RepeatGroup):
                    matches = tag.code == row.start_code and self.app_group is None
                else:
                    matches = tag.code in row.codes and row.app_group == self.app_group
                if not matches:
                    continue
                if not row.valid_for(self.version):
                    gated = True
                    continue
                candidates.append((index, row))
            if candidates:
                self.cursor = section_index
                index, row = self._choose(section_index, candidates, tag.code)
                if isinstance(row, RepeatGroup):
                    self._start_group(row, tag, line)
                else:
                    self._store(self.entity.dxf, (section_index, index), row, tag, line)
                return

        if gated:
            self.report(
                UNKNOWN_TAG,
                tag.code,
                line,
                f"group code {tag.code} is not valid for {version_string(self.version)}",
            )
        else:
            self.report(UNKNOWN_TAG, tag.code, line, f"unknown group code {tag.code}: {tag.value!r}")

    def finish(self) -> None:
        _apply_string_defaults(self.entity_type, self.entity.dxf)

    def _search_order(self) -> list[int]:
        count = len(self.sections)
        return [self.cursor, *range(self.cursor + 1, count), *range(0, self.cursor)]

    def _choose(self, section_index: int, candidates: list, code: int):
        for index, row in candidates:
            if isinstance(row, RepeatGroup):
                return index, row
            axis = (code - row.code) // 10
            if axis > 0:
                if self.last_point == (section_index, index):
                    return index, row
                continue
            if row.repeatable or (section_index, index) not in self.filled:
                return index, row
        return candidates[0]

    def _enter_subclass(self, tag: Tag, line: int) -> None:
        marker = tag.value.strip()
        count = len(self.sections)
        for section_index in [*range(self.cursor + 1, count), *range(0, self.cursor + 1)]:
            subclass = self.sections[section_index][0]
            if subclass is not None and subclass.marker == marker:
                self.cursor = section_index
                self.group = None
                return
        self.report(UNKNOWN_TAG, tag.code, line, f"unknown subclass marker {marker!r}")

    def _app_group(self, tag: Tag, line: int) -> None:
        value = tag.value.strip()
        if value.startswith("{"):
            self.app_group = value[1:]
        elif value == "}":
            self.app_group = None
        else:
            self.report(UNKNOWN_TAG, tag.code, line, f"unexpected application group tag {value!r}")

    def _start_group(self, group: RepeatGroup, tag: Tag, line: int) -> None:
        node = group.new_node()
        self.entity.dxf[group.name].append(node)
        self.group = group
        self._store(node, None, group.fields[0], tag, line)

    def _continue_group(self, tag: Tag, line: int) -> bool:
        group = self.group
        if tag.code == group.start_code:
            self._start_group(group, tag, line)
            return True
        first = group.fields[0]
        if tag.code in first.codes[1:]:
            self._store(self.entity.dxf[group.name][-1], None, first, tag, line)
            return True
        for spec in group.fields[1:]:
            if tag.code in spec.codes:
                if not spec.valid_for(self.version):
                    return False
                self._store(self.entity.dxf[group.name][-1], None, spec, tag, line)
                return True
        return False

    def _store(
        self,
        target: dict[str, Any],
        key: tuple[int, int] | None,
        spec: FieldSpec,
        tag: Tag,
        line: int,
    ) -> None:
        try:
            value = fieldcodec.decode(tag, spec)
        except TypeMismatch as exc:
            self.report(TYPE_MISMATCH, tag.code, line, f"{spec.name}: {exc}")
            if spec.kind.axes > 1 and tag.code == spec.code:
                self._drop_point(target, key, spec)
            return
        if key is not None:
            self.filled.add(key)
        if spec.count_of:
            return
        if spec.mirror:
            if target.get(spec.name) in ("", spec.default):
                target[spec.name] = value
            return

        axis = (tag.code - spec.code) // 10
        if spec.kind.axes > 1:
            self.last_point = key
            if spec.repeatable:
                items = target[spec.name]
                if axis == 0 or not items:
                    items.append(spec.default)
                items[-1] = _with_axis(items[-1], axis, value)
            else:
                target[spec.name] = _with_axis(target[spec.name], axis, value)
        elif spec.repeatable:
            target[spec.name].append(value)
        else:
            target[spec.name] = value

    def _drop_point(self, target: dict[str, Any], key: tuple[int, int] | None, spec: FieldSpec) -> None:
        """Keep the point at its default and discard its remaining axes."""
        self.orphans = set(spec.codes[1:])
        self.last_point = None
        if key is not None:
            self.filled.add(key)
        if spec.repeatable:
            target[spec.name].append(spec.default)


def _with_axis(point: tuple[float, ...], axis: int, value: float) -> tuple[float, ...]:
    components = list(point)
    components[axis] = value
    return tuple(components)


def _has_string_default(spec: FieldSpec) -> bool:
    return spec.kind is Kind.STRING and bool(spec.default) and not spec.repeatable and not spec.mirror


def _apply_string_defaults(entity_type: EntityType, dxf: dict[str, Any]) -> None:
    for row in entity_type.stored_fields():
        if isinstance(row, RepeatGroup):
            for node in dxf.get(row.name, []):
                for spec in row.fields:
                    if _has_string_default(spec) and node.get(spec.name) == "":
                        node[spec.name] = spec.default
        elif _has_string_default(row) and dxf.get(row.name) == "":
            dxf[row.name] = row.default


class EntityEncoder:
    """Table-driven encoder: walks the field table in declared order.

    ``encode`` returns the complete tag list or raises ``InvalidEntity``;
    ``write`` only touches the writer once encoding succeeded, so a rejected
    entity leaves no partial output behind.
    """

    def __init__(
        self,
        version: str | int = DEFAULT_VERSION,
        diagnostics: list[Diagnostic] | None = None,
    ) -> None:
        self.version = version_number(version)
        self.diagnostics = diagnostics if diagnostics is not None else []

    def encode(self, entity: Entity) -> list[Tag]:
        if entity is None:
            raise NullArgument("entity is None")
        try:
            entity_type = get_type(entity.dxftype)
        except KeyError:
            raise InvalidEntity(entity.dxftype, "unregistered entity type", entity.handle) from None
        if self.version < entity_type.min_version:
            raise InvalidEntity(
                entity.dxftype,
                f"not supported before {version_string(entity_type.min_version)}",
                entity.handle,
            )
        if entity_type.validate is not None:
            entity_type.validate(entity)
        try:
            return self._encode(entity_type, entity)
        except TypeMismatch as exc:
            raise InvalidEntity(entity.dxftype, str(exc), entity.handle) from exc

    def write(self, entity: Entity, writer: TagWriter) -> int:
        tags = self.encode(entity)
        writer.write_tags(tags)
        return len(tags)

    def _encode(self, entity_type: EntityType, entity: Entity) -> list[Tag]:
        tags: list[Tag] = []
        if entity_type.intro:
            tags.append(Tag(STRUCTURE_CODE, entity_type.name))
        for subclass, entries in entity_type.sections:
            if subclass is not None and subclass.applies(entity, self.version):
                tags.append(Tag(SUBCLASS_CODE, subclass.marker))
            open_group = None
            for row in entries:
                row_tags = self._encode_row(entity, row)
                if not row_tags:
                    continue
                app_group = row.app_group if isinstance(row, FieldSpec) else None
                if app_group != open_group:
                    if open_group is not None:
                        tags.append(Tag(APP_GROUP_CODE, "}"))
                    if app_group is not None:
                        tags.append(Tag(APP_GROUP_CODE, "{" + app_group))
                    open_group = app_group
                tags.extend(row_tags)
            if open_group is not None:
                tags.append(Tag(APP_GROUP_CODE, "}"))
        return tags

    def _encode_row(self, entity: Entity, row: FieldSpec | RepeatGroup) -> list[Tag]:
        if not row.valid_for(self.version):
            return []
        if isinstance(row, RepeatGroup):
            tags: list[Tag] = []
            for node in entity.dxf.get(row.name, []):
                first, *rest = row.fields
                tags.extend(fieldcodec.encode_value(node.get(first.name, first.initial()), first))
                for spec in rest:
                    if spec.valid_for(self.version):
                        tags.extend(self._encode_field(entity, spec, node.get(spec.name, spec.initial())))
            return tags
        if row.when is not None and not row.when(entity):
            return []
        if row.count_of:
            value = len(entity.dxf.get(row.count_of, []))
        else:
            value = entity.dxf.get(row.name, row.initial())
        return list(self._encode_field(entity, row, value))

    def _encode_field(self, entity: Entity, spec: FieldSpec, value: Any) -> tuple[Tag, ...]:
        if spec.repeatable:
            return tuple(tag for item in value for tag in fieldcodec.encode_value(item, spec))
        if spec.kind is Kind.STRING and value == "" and spec.default:
            self.diagnostics.append(
                Diagnostic(
                    DEFAULT_APPLIED,
                    entity.dxftype,
                    spec.code,
                    0,
                    f"empty {spec.name} written as {spec.default!r}",
                )
            )
            value = spec.default
        return fieldcodec.encode(value, spec, self.version)


def decode_entity(
    reader: TagReader,
    dxftype: str,
    *,
    version: str | int | None = None,
    diagnostics: list[Diagnostic] | None = None,
) -> Entity:
    return EntityDecoder(version, diagnostics).decode(reader, dxftype)


def encode_entity(entity: Entity, version: str | int = DEFAULT_VERSION) -> list[Tag]:
    return EntityEncoder(version).encode(entity)

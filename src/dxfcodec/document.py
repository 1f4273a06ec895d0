from __future__ import annotations

import codecs
import fnmatch
import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Iterator, TextIO

from . import entities as _entities  # noqa: F401  registers the entity catalogs
from . import objects as _objects  # noqa: F401
from . import tables as _tables  # noqa: F401
from .codec import UNKNOWN_TAG, EntityDecoder, EntityEncoder
from .entity import Entity, is_registered, registered_types
from .errors import Diagnostic, DXFError, InvalidEntity, NullArgument, TruncatedStream
from .header import Header, decode_header, encode_header
from .tags import STRUCTURE_CODE, Tag, TagReader, TagWriter
from .versions import AC1012, AC1015, AC1021, normalize_version, version_number

logger = logging.getLogger(__name__)

SECTION_NAME_CODE = 2
FALLBACK_ENCODING = "cp1252"
_ENCODING_PROBE_SIZE = 64 * 1024
_ACADVER_RE = re.compile(rb"\$ACADVER\s*\r?\n\s*1\s*\r?\n\s*(AC\d{4})")
_CODEPAGE_RE = re.compile(rb"\$DWGCODEPAGE\s*\r?\n\s*3\s*\r?\n\s*(\S+)")


def _escape_unicode(error: UnicodeError) -> tuple[str, int]:
    if not isinstance(error, UnicodeEncodeError):
        raise error
    chars = error.object[error.start:error.end]
    return "".join(f"\\U+{ord(char):04X}" for char in chars), error.end


# Pre-R2007 files store characters outside the code page as \U+XXXX.
codecs.register_error("dxf-unicode", _escape_unicode)


@dataclass
class SymbolTable:
    head: Entity
    entries: list[Entity] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.head.dxf["name"]


@dataclass
class BlockDefinition:
    block: Entity
    entities: list[Entity] = field(default_factory=list)
    endblk: Entity = field(default_factory=lambda: Entity.new("ENDBLK"))

    @property
    def name(self) -> str:
        return self.block.dxf["name"]


@dataclass(frozen=True)
class WriteResult:
    version: str
    total_entities: int
    written_entities: int
    skipped_entities: int
    skipped_by_type: dict[str, int]
    diagnostics: tuple[Diagnostic, ...] = ()
    output_path: str | None = None


def read(path: str | Path, *, encoding: str | None = None) -> "Drawing":
    """Read an ASCII DXF file; the encoding is guessed from the header when not given."""
    source = Path(path)
    errors = "strict"
    if encoding is None:
        encoding = guess_encoding(source)
        errors = "replace"
    with source.open("r", encoding=encoding, errors=errors) as stream:
        drawing = readstream(stream, name=str(source))
    drawing.path = str(source)
    return drawing


def readstream(stream: TextIO, *, name: str = "<stream>") -> "Drawing":
    if stream is None:
        raise NullArgument("stream is None")
    reader = TagReader(stream, name=name)
    drawing = Drawing()
    _Loader(reader, drawing).run()
    drawing.comments = list(reader.comments)
    return drawing


def guess_encoding(path: str | Path) -> str:
    with Path(path).open("rb") as fp:
        head = fp.read(_ENCODING_PROBE_SIZE)
    if head.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    version = _ACADVER_RE.search(head)
    codepage = _CODEPAGE_RE.search(head)
    return encoding_for(
        version.group(1).decode("ascii") if version else None,
        codepage.group(1).decode("ascii", "replace") if codepage else None,
    )


def encoding_for(version: str | None, codepage: str | None) -> str:
    """Map ``$ACADVER`` / ``$DWGCODEPAGE`` to a Python codec name."""
    if version is not None:
        try:
            if version_number(version) >= AC1021:
                return "utf-8"
        except ValueError:
            pass
    if codepage:
        token = codepage.strip().upper()
        if token.startswith("ANSI_") and token[5:].isdigit():
            candidate = f"cp{token[5:]}"
            try:
                codecs.lookup(candidate)
            except LookupError:
                return FALLBACK_ENCODING
            return candidate
    return FALLBACK_ENCODING


class Drawing:
    """A decoded DXF file: one header plus the records of every section.

    Each section is an owned list; ``clear`` drops them all at once.
    """

    def __init__(self, header: Header | None = None) -> None:
        self._header = header if header is not None else Header()
        self._classes: list[Entity] = []
        self._tables: list[SymbolTable] = []
        self._blocks: list[BlockDefinition] = []
        self._entities: list[Entity] = []
        self._objects: list[Entity] = []
        self._thumbnail: Entity | None = None
        self.diagnostics: list[Diagnostic] = []
        self.comments: list[tuple[int, str]] = []
        self.path: str | None = None

    @classmethod
    def new(cls, version: str = "AC1015") -> "Drawing":
        drawing = cls()
        drawing.header.set("ACADVER", normalize_version(version))
        return drawing

    @property
    def version(self) -> str:
        return self._header.version

    @property
    def header(self) -> Header:
        return self._header

    @header.setter
    def header(self, value: Header) -> None:
        self._header = _required(value, "header")

    @property
    def classes(self) -> list[Entity]:
        return self._classes

    @classes.setter
    def classes(self, value: Iterable[Entity]) -> None:
        self._classes = list(_required(value, "classes"))

    @property
    def tables(self) -> list[SymbolTable]:
        return self._tables

    @tables.setter
    def tables(self, value: Iterable[SymbolTable]) -> None:
        self._tables = list(_required(value, "tables"))

    @property
    def blocks(self) -> list[BlockDefinition]:
        return self._blocks

    @blocks.setter
    def blocks(self, value: Iterable[BlockDefinition]) -> None:
        self._blocks = list(_required(value, "blocks"))

    @property
    def entities(self) -> list[Entity]:
        return self._entities

    @entities.setter
    def entities(self, value: Iterable[Entity]) -> None:
        self._entities = list(_required(value, "entities"))

    @property
    def objects(self) -> list[Entity]:
        return self._objects

    @objects.setter
    def objects(self, value: Iterable[Entity]) -> None:
        self._objects = list(_required(value, "objects"))

    @property
    def thumbnail(self) -> Entity | None:
        return self._thumbnail

    @thumbnail.setter
    def thumbnail(self, value: Entity | None) -> None:
        self._thumbnail = value

    def table(self, name: str) -> SymbolTable | None:
        for table in self._tables:
            if table.name == name.upper():
                return table
        return None

    def query(self, types: str | Iterable[str] | None = None) -> Iterator[Entity]:
        present = []
        for entity in self._entities:
            if entity.dxftype not in present:
                present.append(entity.dxftype)
        type_set = set(_normalize_types(types, present))
        for entity in self._entities:
            if entity.dxftype in type_set:
                yield entity

    def clear(self) -> None:
        self._header = Header()
        self._classes = []
        self._tables = []
        self._blocks = []
        self._entities = []
        self._objects = []
        self._thumbnail = None
        self.diagnostics = []
        self.comments = []

    def write(self, stream: TextIO, *, version: str | None = None, strict: bool = False) -> WriteResult:
        if stream is None:
            raise NullArgument("stream is None")
        target = normalize_version(version or self.version)
        writer = _SectionWriter(TagWriter(stream), EntityEncoder(target))
        writer.write_drawing(self)
        result = writer.result(target)
        if strict and result.skipped_entities > 0:
            summary = ", ".join(f"{dxftype}:{count}" for dxftype, count in result.skipped_by_type.items())
            raise ValueError(f"failed to write {result.skipped_entities} entities ({summary})")
        return result

    def saveas(
        self,
        path: str | Path,
        *,
        version: str | None = None,
        strict: bool = False,
        encoding: str | None = None,
    ) -> WriteResult:
        target = normalize_version(version or self.version)
        if encoding is None:
            encoding = encoding_for(target, self._header.values.get("DWGCODEPAGE"))
        out_path = Path(path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding=encoding, errors="dxf-unicode") as stream:
            result = self.write(stream, version=target, strict=strict)
        return replace(result, output_path=str(out_path))


def _required(value, name: str):
    if value is None:
        raise NullArgument(f"{name} is None")
    return value


def _normalize_types(types: str | Iterable[str] | None, present: list[str]) -> list[str]:
    if types is None:
        return list(present)
    if isinstance(types, str):
        tokens = re.split(r"[,\s]+", types.strip())
    else:
        tokens = list(types)

    normalized = [token.strip().upper() for token in tokens if token and token.strip()]
    if not normalized or any(token in {"*", "ALL"} for token in normalized):
        return list(present)

    known = registered_types()
    selected: list[str] = []
    for token in normalized:
        if any(ch in token for ch in "*?[]"):
            matches = [name for name in present if fnmatch.fnmatchcase(name, token)]
        else:
            matches = [token] if token in known else []
        for name in matches:
            if name not in selected:
                selected.append(name)
    return selected


class _Loader:
    """Walks SECTION/ENDSEC markers and hands each record to the decoder."""

    def __init__(self, reader: TagReader, drawing: Drawing) -> None:
        self.reader = reader
        self.drawing = drawing
        self.diagnostics = drawing.diagnostics
        self.decoder = EntityDecoder(None, self.diagnostics)
        self.handlers = {
            "HEADER": self._header,
            "CLASSES": self._classes,
            "TABLES": self._tables,
            "BLOCKS": self._blocks,
            "ENTITIES": self._entities,
            "OBJECTS": self._objects,
            "THUMBNAILIMAGE": self._thumbnail,
        }

    def report(self, dxftype: str, code: int | None, message: str) -> None:
        diagnostic = Diagnostic(UNKNOWN_TAG, dxftype, code, self.reader.line_number, message)
        self.diagnostics.append(diagnostic)
        logger.debug("%s", diagnostic)

    def run(self) -> None:
        while True:
            tag = self.reader.next_tag()
            if tag is None:
                self.report("EOF", None, "missing 0/EOF marker")
                return
            if tag.is_structure("EOF"):
                return
            if tag.is_structure("SECTION"):
                name_tag = self.reader.next_tag()
                if name_tag is None:
                    raise TruncatedStream(self.reader.line_number, "missing section name")
                if name_tag.code != SECTION_NAME_CODE:
                    self.report("SECTION", name_tag.code, "section without a name")
                    self.reader.push_back(name_tag)
                    continue
                self._section(name_tag.value.strip().upper())
                continue
            self.report("", tag.code, f"tag outside of a section: {tag.value!r}")

    def _section(self, name: str) -> None:
        handler = self.handlers.get(name)
        if handler is None:
            self.report(name, None, f"unknown section {name}")
        else:
            handler()
        self._finish_section(name)

    def _finish_section(self, name: str) -> None:
        while True:
            tag = self.reader.next_tag()
            if tag is None:
                self.report(name, None, f"section {name} is not terminated")
                return
            if tag.is_structure("ENDSEC"):
                return
            if tag.code == STRUCTURE_CODE:
                self._skip(tag.value.strip())
            else:
                self.report(name, tag.code, f"unexpected tag in section {name}")

    def _next_structure(self) -> Tag | None:
        """Return the next ``0`` tag unless it ends the section."""
        while True:
            tag = self.reader.next_tag()
            if tag is None:
                return None
            if tag.is_structure("ENDSEC"):
                self.reader.push_back(tag)
                return None
            if tag.code == STRUCTURE_CODE:
                return tag
            self.report("", tag.code, f"unexpected tag: {tag.value!r}")

    def _decode(self, dxftype: str) -> Entity | None:
        if is_registered(dxftype):
            return self.decoder.decode(self.reader, dxftype)
        self._skip(dxftype)
        return None

    def _skip(self, dxftype: str) -> None:
        self.report(dxftype, STRUCTURE_CODE, f"skipping unsupported record {dxftype}")
        while True:
            tag = self.reader.next_tag()
            if tag is None:
                return
            if tag.code == STRUCTURE_CODE:
                self.reader.push_back(tag)
                return

    def _collect(self, target: list[Entity]) -> None:
        while (tag := self._next_structure()) is not None:
            entity = self._decode(tag.value.strip())
            if entity is not None:
                target.append(entity)

    def _header(self) -> None:
        header = decode_header(self.reader, self.diagnostics)
        self.drawing.header = header
        if "ACADVER" not in header.loaded:
            return
        try:
            self.decoder = EntityDecoder(header.version, self.diagnostics)
        except ValueError:
            self.report("HEADER", 1, f"unknown $ACADVER {header.version!r}")

    def _classes(self) -> None:
        self._collect(self.drawing.classes)

    def _entities(self) -> None:
        self._collect(self.drawing.entities)

    def _objects(self) -> None:
        self._collect(self.drawing.objects)

    def _tables(self) -> None:
        while (tag := self._next_structure()) is not None:
            if not tag.is_structure("TABLE"):
                self._skip(tag.value.strip())
                continue
            table = SymbolTable(self.decoder.decode(self.reader, "TABLE"))
            while (entry := self._next_structure()) is not None:
                if entry.is_structure("ENDTAB"):
                    self.decoder.decode(self.reader, "ENDTAB")
                    break
                entity = self._decode(entry.value.strip())
                if entity is not None:
                    table.entries.append(entity)
            else:
                self.report("TABLE", None, f"table {table.name} is not terminated")
            self.drawing.tables.append(table)

    def _blocks(self) -> None:
        while (tag := self._next_structure()) is not None:
            if not tag.is_structure("BLOCK"):
                self._skip(tag.value.strip())
                continue
            definition = BlockDefinition(self.decoder.decode(self.reader, "BLOCK"))
            while (member := self._next_structure()) is not None:
                if member.is_structure("ENDBLK"):
                    definition.endblk = self.decoder.decode(self.reader, "ENDBLK")
                    break
                entity = self._decode(member.value.strip())
                if entity is not None:
                    definition.entities.append(entity)
            else:
                self.report("BLOCK", None, f"block {definition.name} is not terminated")
            self.drawing.blocks.append(definition)

    def _thumbnail(self) -> None:
        self.drawing.thumbnail = self.decoder.decode(self.reader, "THUMBNAILIMAGE")


class _SectionWriter:
    """Writes a Drawing section by section, skipping records the encoder rejects."""

    def __init__(self, writer: TagWriter, encoder: EntityEncoder) -> None:
        self.writer = writer
        self.encoder = encoder
        self.version = encoder.version
        self.total = 0
        self.written = 0
        self.skipped_by_type: dict[str, int] = {}
        self.handles: dict[int, str] = {}

    def result(self, version: str) -> WriteResult:
        return WriteResult(
            version=version,
            total_entities=self.total,
            written_entities=self.written,
            skipped_entities=self.total - self.written,
            skipped_by_type=dict(sorted(self.skipped_by_type.items())),
            diagnostics=tuple(self.encoder.diagnostics),
        )

    def write_drawing(self, drawing: Drawing) -> None:
        header = _seeded(drawing)
        self.handles = _assign_handles(drawing, header)
        self._section("HEADER", lambda: self.writer.write_tags(encode_header(header, self.version)))
        if self.version >= AC1012:
            self._section("CLASSES", lambda: self._records(drawing.classes))
        self._section("TABLES", lambda: self._symbol_tables(drawing.tables))
        self._section("BLOCKS", lambda: self._block_definitions(drawing.blocks))
        self._section("ENTITIES", lambda: self._records(drawing.entities))
        if self.version >= AC1012:
            self._section("OBJECTS", lambda: self._records(drawing.objects))
        if drawing.thumbnail is not None and self.version >= AC1015:
            self._section("THUMBNAILIMAGE", lambda: self._records([drawing.thumbnail]))
        self.writer.write(STRUCTURE_CODE, "EOF")

    def _section(self, name: str, body) -> None:
        self.writer.write(STRUCTURE_CODE, "SECTION")
        self.writer.write(SECTION_NAME_CODE, name)
        body()
        self.writer.write(STRUCTURE_CODE, "ENDSEC")

    def _handled(self, entity: Entity) -> Entity:
        handle = self.handles.get(id(entity))
        if handle is None:
            return entity
        return Entity(entity.dxftype, {**entity.dxf, "handle": handle})

    def _encode(self, entity: Entity) -> list[Tag] | None:
        self.total += 1
        try:
            tags = self.encoder.encode(self._handled(entity))
        except InvalidEntity as exc:
            self._skip(entity.dxftype, exc)
            return None
        self.written += 1
        return tags

    def _skip(self, dxftype: str, exc: DXFError, count: int = 1) -> None:
        self.skipped_by_type[dxftype] = self.skipped_by_type.get(dxftype, 0) + count
        self.encoder.diagnostics.append(Diagnostic("InvalidEntity", dxftype, None, 0, str(exc)))
        logger.warning("skipping %s", exc)

    def _records(self, records: Iterable[Entity]) -> None:
        for entity in records:
            tags = self._encode(entity)
            if tags is not None:
                self.writer.write_tags(tags)

    def _structural(self, entity: Entity) -> list[Tag] | None:
        try:
            return self.encoder.encode(self._handled(entity))
        except InvalidEntity as exc:
            self._skip(entity.dxftype, exc)
            return None

    def _symbol_tables(self, tables: Iterable[SymbolTable]) -> None:
        for table in tables:
            head = self._handled(table.head).copy()
            head.dxf["max_entries"] = len(table.entries)
            head_tags = self._encode(head)
            if head_tags is None:
                self.total += len(table.entries)
                if table.entries:
                    self.skipped_by_type["TABLE"] = self.skipped_by_type.get("TABLE", 0) + len(table.entries)
                continue
            self.writer.write_tags(head_tags)
            self._records(table.entries)
            self.writer.write_tags(self.encoder.encode(Entity.new("ENDTAB")))

    def _block_definitions(self, blocks: Iterable[BlockDefinition]) -> None:
        for definition in blocks:
            block_tags = self._encode(definition.block)
            if block_tags is None:
                self.total += len(definition.entities)
                if definition.entities:
                    self.skipped_by_type["BLOCK"] = self.skipped_by_type.get("BLOCK", 0) + len(definition.entities)
                continue
            endblk_tags = self._structural(definition.endblk)
            if endblk_tags is None:
                endblk_tags = self.encoder.encode(Entity.new("ENDBLK"))
            self.writer.write_tags(block_tags)
            self._records(definition.entities)
            self.writer.write_tags(endblk_tags)


def _seeded(drawing: Drawing) -> Header:
    """Copy of the header whose $HANDSEED is above every handle in use."""
    header = Header(dict(drawing.header.values))
    highest = 0
    for entity in _iter_records(drawing):
        try:
            highest = max(highest, int(entity.handle or "0", 16))
        except ValueError:
            continue
    try:
        seed = int(header.values.get("HANDSEED") or "0", 16)
    except ValueError:
        seed = 0
    if highest >= seed:
        header.values["HANDSEED"] = f"{highest + 1:X}"
    return header


def _assign_handles(drawing: Drawing, header: Header) -> dict[int, str]:
    """Hand out $HANDSEED values to records written without a handle.

    Keyed by ``id()`` of the record; the records themselves are not touched.
    ``header`` is advanced past the last handle given out.
    """
    seed = int(header.values["HANDSEED"], 16)
    assigned: dict[int, str] = {}
    for entity in _iter_records(drawing):
        if "handle" not in entity.dxf or entity.handle or id(entity) in assigned:
            continue
        assigned[id(entity)] = f"{seed:X}"
        seed += 1
    header.values["HANDSEED"] = f"{seed:X}"
    return assigned


def _iter_records(drawing: Drawing) -> Iterator[Entity]:
    yield from drawing.classes
    for table in drawing.tables:
        yield table.head
        yield from table.entries
    for definition in drawing.blocks:
        yield definition.block
        yield from definition.entities
        yield definition.endblk
    yield from drawing.entities
    yield from drawing.objects

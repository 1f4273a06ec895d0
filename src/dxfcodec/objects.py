from __future__ import annotations

from .entities import owner_rows
from .entity import Entity, EntityType, register
from .errors import InvalidEntity
from .fields import FieldSpec, Kind, RepeatGroup, Subclass
from .versions import AC1012, AC1015

# Bytes per 310 chunk; 254 hex digits keeps every line under 256 characters.
THUMBNAIL_CHUNK_SIZE = 127

DICTIONARY_ENTRY = RepeatGroup(
    "entries",
    (
        FieldSpec(3, "name", Kind.STRING),
        FieldSpec(350, "handle", Kind.HANDLE),
    ),
)

DICTIONARY = register(
    EntityType(
        "DICTIONARY",
        owner_rows()
        + (
            Subclass("AcDbDictionary"),
            FieldSpec(280, "hard_owned", Kind.INT16, min_version=AC1015),
            FieldSpec(281, "cloning", Kind.INT16, 1, min_version=AC1015),
            DICTIONARY_ENTRY,
        ),
        min_version=AC1012,
    )
)


def _validate_thumbnail(entity: Entity) -> None:
    chunk_bytes = sum(len(chunk) // 2 for chunk in entity.dxf["chunks"])
    if chunk_bytes != entity.dxf["number_of_bytes"]:
        raise InvalidEntity(
            entity.dxftype,
            f"byte count {entity.dxf['number_of_bytes']} does not match {chunk_bytes} bytes of data",
        )


THUMBNAILIMAGE = register(
    EntityType(
        "THUMBNAILIMAGE",
        (
            FieldSpec(90, "number_of_bytes", Kind.INT32, omit_default=False),
            FieldSpec(310, "chunks", Kind.BINARY, repeatable=True),
        ),
        min_version=AC1015,
        validate=_validate_thumbnail,
        intro=False,
    )
)


def new_thumbnail(data: bytes) -> Entity:
    """Build a THUMBNAILIMAGE record holding ``data`` (a BMP image as stored by AutoCAD)."""
    hexdata = bytes(data).hex().upper()
    step = THUMBNAIL_CHUNK_SIZE * 2
    chunks = [hexdata[start:start + step] for start in range(0, len(hexdata), step)]
    return Entity.new("THUMBNAILIMAGE", number_of_bytes=len(data), chunks=chunks)


def thumbnail_bytes(entity: Entity) -> bytes:
    return bytes.fromhex("".join(entity.dxf["chunks"]))

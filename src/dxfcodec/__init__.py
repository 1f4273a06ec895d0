from typing import Sequence

from .codec import EntityDecoder, EntityEncoder
from .convert import ConvertResult, export_ezdxf
from .document import BlockDefinition, Drawing, SymbolTable, WriteResult, read, readstream
from .entity import Entity
from .errors import (
    Diagnostic,
    DXFError,
    InvalidEntity,
    MalformedGroupCode,
    NullArgument,
    TruncatedStream,
    TypeMismatch,
    UnknownTag,
)
from .header import Header
from .objects import new_thumbnail, thumbnail_bytes
from .tags import Tag, TagReader, TagWriter

__all__ = [
    "read",
    "readstream",
    "Drawing",
    "SymbolTable",
    "BlockDefinition",
    "Entity",
    "Header",
    "Tag",
    "TagReader",
    "TagWriter",
    "EntityDecoder",
    "EntityEncoder",
    "WriteResult",
    "ConvertResult",
    "export_ezdxf",
    "new_thumbnail",
    "thumbnail_bytes",
    "Diagnostic",
    "DXFError",
    "InvalidEntity",
    "MalformedGroupCode",
    "NullArgument",
    "TruncatedStream",
    "TypeMismatch",
    "UnknownTag",
]


def main(argv: Sequence[str] | None = None) -> int:
    from dxfcodec.cli import main as cli_main

    return cli_main(argv)

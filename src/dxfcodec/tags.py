from __future__ import annotations

import logging
from typing import Iterable, Iterator, NamedTuple, TextIO

from .errors import MalformedGroupCode, TruncatedStream

logger = logging.getLogger(__name__)

COMMENT_CODE = 999
STRUCTURE_CODE = 0
SUBCLASS_CODE = 100
APP_GROUP_CODE = 102


class Tag(NamedTuple):
    code: int
    value: str

    def is_structure(self, name: str | None = None) -> bool:
        if self.code != STRUCTURE_CODE:
            return False
        return name is None or self.value.strip() == name


class TagReader:
    """Tokenizes a DXF text stream into ``Tag`` pairs.

    Each tag occupies two lines: the group code and the verbatim value. One
    tag can be pushed back so a decoder can leave the terminating ``0`` tag
    for whoever reads next. Comments (group code 999) are collected on
    ``comments`` and never returned.
    """

    def __init__(self, stream: TextIO, *, name: str = "<stream>") -> None:
        self._stream = stream
        self.name = name
        self.comments: list[tuple[int, str]] = []
        self._pending: Tag | None = None
        self._line = 0
        self._closed = False

    @property
    def line_number(self) -> int:
        return self._line

    @property
    def closed(self) -> bool:
        return self._closed

    def next_tag(self) -> Tag | None:
        if self._pending is not None:
            tag = self._pending
            self._pending = None
            return tag
        while True:
            if self._closed:
                raise TruncatedStream(self._line, "reader is closed")
            code_line = self._readline()
            if code_line == "":
                return None
            self._line += 1
            text = code_line.strip()
            if self._line == 1:
                text = text.lstrip("\ufeff")
            try:
                code = int(text)
            except ValueError:
                raise MalformedGroupCode(self._line, text) from None
            value_line = self._readline()
            if value_line == "":
                self._closed = True
                raise TruncatedStream(self._line, f"missing value for group code {code}")
            self._line += 1
            value = value_line.rstrip("\r\n")
            if code == COMMENT_CODE:
                self.comments.append((self._line, value))
                logger.info("%s:%d: DXF comment: %s", self.name, self._line, value)
                continue
            return Tag(code, value)

    def push_back(self, tag: Tag) -> None:
        if self._pending is not None:
            raise ValueError("a tag is already pushed back")
        self._pending = tag

    def peek(self) -> Tag | None:
        tag = self.next_tag()
        if tag is not None:
            self.push_back(tag)
        return tag

    def __iter__(self) -> Iterator[Tag]:
        while True:
            tag = self.next_tag()
            if tag is None:
                return
            yield tag

    def _readline(self) -> str:
        try:
            return self._stream.readline()
        except (OSError, UnicodeDecodeError) as exc:
            self._closed = True
            raise TruncatedStream(self._line, f"read error: {exc}") from exc


class TagWriter:
    """Writes tags in the two-line ASCII DXF layout."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self.tags_written = 0

    def write(self, code: int, value: str) -> None:
        self._stream.write(f"{code:>3}\n{value}\n")
        self.tags_written += 1

    def write_tag(self, tag: Tag) -> None:
        self.write(tag.code, tag.value)

    def write_tags(self, tags: Iterable[Tag]) -> None:
        for tag in tags:
            self.write(tag.code, tag.value)

    def write_comment(self, text: str) -> None:
        for line in str(text).splitlines() or [""]:
            self.write(COMMENT_CODE, line)

from __future__ import annotations

import io

import pytest

from dxfcodec import MalformedGroupCode, Tag, TagReader, TagWriter, TruncatedStream


def _reader(text: str) -> TagReader:
    return TagReader(io.StringIO(text), name="test.dxf")


def test_reader_trims_code_and_keeps_value_verbatim() -> None:
    reader = _reader("  8\nLayer 1  \n 62\n1\n")

    assert reader.next_tag() == Tag(8, "Layer 1  ")
    assert reader.next_tag() == Tag(62, "1")
    assert reader.next_tag() is None
    assert reader.line_number == 4


def test_reader_handles_crlf_and_bom() -> None:
    reader = _reader("\ufeff  0\r\nSECTION\r\n  2\r\nHEADER\r\n")

    assert reader.next_tag() == Tag(0, "SECTION")
    assert reader.next_tag() == Tag(2, "HEADER")


def test_push_back_returns_the_same_tag_again() -> None:
    reader = _reader("  0\nLINE\n  8\n0\n")
    tag = reader.next_tag()

    reader.push_back(tag)

    assert reader.peek() == Tag(0, "LINE")
    assert reader.next_tag() == Tag(0, "LINE")
    assert reader.next_tag() == Tag(8, "0")


def test_push_back_holds_one_tag_only() -> None:
    reader = _reader("")
    reader.push_back(Tag(0, "EOF"))

    with pytest.raises(ValueError):
        reader.push_back(Tag(0, "EOF"))


def test_comments_are_collected_not_returned() -> None:
    reader = _reader("999\nwritten by hand\n  0\nEOF\n")

    assert list(reader) == [Tag(0, "EOF")]
    assert reader.comments == [(2, "written by hand")]


def test_malformed_group_code() -> None:
    reader = _reader("abc\nvalue\n")

    with pytest.raises(MalformedGroupCode) as excinfo:
        reader.next_tag()
    assert excinfo.value.line == 1


def test_truncated_value_closes_reader() -> None:
    reader = _reader("  0\nLINE\n 10\n")
    reader.next_tag()

    with pytest.raises(TruncatedStream):
        reader.next_tag()
    assert reader.closed
    with pytest.raises(TruncatedStream):
        reader.next_tag()


def test_writer_right_aligns_codes() -> None:
    stream = io.StringIO()
    writer = TagWriter(stream)

    writer.write(0, "LINE")
    writer.write_tags([Tag(8, "0"), Tag(370, "25")])
    writer.write_comment("a\nb")

    assert stream.getvalue() == "  0\nLINE\n  8\n0\n370\n25\n999\na\n999\nb\n"
    assert writer.tags_written == 5

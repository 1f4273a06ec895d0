from __future__ import annotations

import io
from pathlib import Path
from typing import Iterator

from dxfcodec import Drawing, readstream


def dxf_pairs(text: str) -> list[tuple[str, str]]:
    lines = text.splitlines()
    return [(lines[i].strip(), lines[i + 1]) for i in range(0, len(lines) - 1, 2)]


def iter_dxf_records(source: Path | str, section: str = "ENTITIES") -> Iterator[dict[str, object]]:
    text = source.read_text(encoding="utf-8", errors="replace") if isinstance(source, Path) else source
    section_name: str | None = None
    expect_section_name = False
    current: dict[str, object] | None = None

    for code, raw_value in dxf_pairs(text):
        value = raw_value.strip()
        if code == "0":
            if current is not None and section_name == section:
                yield current
                current = None

            if value == "SECTION":
                expect_section_name = True
                continue

            if value == "ENDSEC":
                section_name = None
                continue

            if section_name == section:
                current = {"type": value, "groups": []}
            continue

        if expect_section_name and code == "2":
            section_name = value
            expect_section_name = False
            continue

        if section_name == section and current is not None:
            groups = current["groups"]
            assert isinstance(groups, list)
            groups.append((code, value))

    if current is not None and section_name == section:
        yield current


def dxf_records_of_type(source: Path | str, record_type: str, section: str = "ENTITIES") -> list[dict[str, object]]:
    return [record for record in iter_dxf_records(source, section) if record["type"] == record_type]


def group_values(record: dict[str, object], code: str) -> list[str]:
    groups = record["groups"]
    assert isinstance(groups, list)
    return [raw_value for group_code, raw_value in groups if group_code == code]


def group_float(record: dict[str, object], code: str, default: float = 0.0) -> float:
    values = group_values(record, code)
    return float(values[0]) if values else default


def write_text(drawing: Drawing, **kwargs) -> str:
    stream = io.StringIO()
    drawing.write(stream, **kwargs)
    return stream.getvalue()


def read_text(text: str) -> Drawing:
    return readstream(io.StringIO(text))


def tags_text(*pairs: tuple[int, object]) -> str:
    return "".join(f"{code:>3}\n{value}\n" for code, value in pairs)


def triplet_close(
    actual: tuple[float, float, float],
    expected: tuple[float, float, float],
    eps: float = 1e-9,
) -> bool:
    return (
        abs(actual[0] - expected[0]) < eps
        and abs(actual[1] - expected[1]) < eps
        and abs(actual[2] - expected[2]) < eps
    )

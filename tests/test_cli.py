from __future__ import annotations

from pathlib import Path

import pytest

import dxfcodec.cli as cli_module
from dxfcodec import ConvertResult, Drawing, Entity
from tests._dxf_helpers import dxf_records_of_type, tags_text


def _write_sample(path: Path, version: str = "AC1015") -> Path:
    drawing = Drawing.new(version)
    drawing.entities = [
        Entity.new("LINE", handle="30", end=(1, 0, 0)),
        Entity.new("LINE", handle="31", end=(0, 1, 0)),
        Entity.new("CIRCLE", handle="32", radius=2.0),
    ]
    drawing.saveas(path)
    return path


def test_cli_version(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["--version"])

    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("dxfcodec ")


def test_cli_inspect_reports_counts(tmp_path: Path, capsys) -> None:
    path = _write_sample(tmp_path / "sample.dxf")

    code = cli_module.main(["inspect", str(path)])

    out = capsys.readouterr().out
    assert code == 0
    assert "version: AC1015" in out
    assert "total_entities: 3" in out
    assert "LINE: 2" in out
    assert "CIRCLE: 1" in out


def test_cli_inspect_reports_unknown_codes(tmp_path: Path, capsys) -> None:
    path = tmp_path / "noisy.dxf"
    path.write_text(
        tags_text(
            (0, "SECTION"), (2, "ENTITIES"),
            (0, "LINE"), (1001, "APP"), (1000, "x"), (1000, "y"), (1071, "1"),
            (0, "ENDSEC"), (0, "EOF"),
        ),
        encoding="cp1252",
    )

    code = cli_module.main(["inspect", str(path)])

    out = capsys.readouterr().out
    assert code == 0
    assert "diagnostics[UnknownTag]: 4" in out
    assert "unknown_codes: LINE:1000(2), LINE:1001(1), LINE:1071(1)" in out


def test_cli_inspect_missing_file(tmp_path: Path, capsys) -> None:
    code = cli_module.main(["inspect", str(tmp_path / "missing.dxf")])

    assert code == 2
    assert "error: file not found" in capsys.readouterr().err


def test_cli_rewrite_downgrades_version(tmp_path: Path, capsys) -> None:
    source = _write_sample(tmp_path / "in.dxf", "AC1018")
    output = tmp_path / "out.dxf"

    code = cli_module.main(["rewrite", str(source), str(output), "--dxf-version", "R12"])

    out = capsys.readouterr().out
    assert code == 0
    assert "target_version: AC1009" in out
    assert "written_entities: 3" in out
    assert len(dxf_records_of_type(output, "LINE")) == 2


def test_cli_rewrite_strict_failure(tmp_path: Path, capsys) -> None:
    source = tmp_path / "in.dxf"
    drawing = Drawing.new("AC1024")
    drawing.entities = [Entity.new("HELIX", handle="40")]
    drawing.saveas(source)

    code = cli_module.main(["rewrite", str(source), str(tmp_path / "out.dxf"), "--dxf-version", "AC1015", "--strict"])

    assert code == 2
    assert "HELIX:1" in capsys.readouterr().err


def test_cli_convert_calls_export(monkeypatch, tmp_path: Path, capsys) -> None:
    source = _write_sample(tmp_path / "in.dxf")
    calls = {}

    def _fake_export(input_path, output_path, **kwargs):  # noqa: ANN001
        calls.update(kwargs)
        return ConvertResult(
            source_path=input_path,
            output_path=output_path,
            total_entities=3,
            written_entities=2,
            skipped_entities=1,
            skipped_by_type={"CIRCLE": 1},
        )

    monkeypatch.setattr(cli_module, "export_ezdxf", _fake_export)

    code = cli_module.main(["convert", str(source), str(tmp_path / "out.dxf"), "--types", "LINE"])

    out = capsys.readouterr().out
    assert code == 0
    assert calls == {"types": "LINE", "dxf_version": "R2010", "strict": False}
    assert "skipped[CIRCLE]: 1" in out

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Sequence

from .convert import export_ezdxf
from .document import Drawing, read


def _package_version() -> str:
    try:
        return version("dxfcodec")
    except PackageNotFoundError:
        return "0.0.0"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dxfcodec", description="Inspect, rewrite, and convert ASCII DXF files.")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_package_version()}",
    )
    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser("inspect", help="Show section and entity counts of a DXF file.")
    inspect_parser.add_argument("path", help="Path to DXF file.")
    inspect_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show expanded diagnostics (more unknown group codes, INFO logging).",
    )

    rewrite_parser = subparsers.add_parser(
        "rewrite",
        help="Decode a DXF file and encode it again, optionally for another version.",
    )
    rewrite_parser.add_argument("input_path", help="Path to input DXF file.")
    rewrite_parser.add_argument("output_path", help="Path to output DXF file.")
    rewrite_parser.add_argument(
        "--dxf-version",
        default=None,
        help="Output version, e.g. AC1015 or R2010 (default: the input's $ACADVER).",
    )
    rewrite_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any record cannot be written.",
    )

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert entities to a new DXF document using ezdxf as the writing backend.",
    )
    convert_parser.add_argument("input_path", help="Path to input DXF file.")
    convert_parser.add_argument("output_path", help="Path to output DXF file.")
    convert_parser.add_argument(
        "--types",
        default=None,
        help='Entity filter passed to query(), e.g. "LINE ARC SPLINE".',
    )
    convert_parser.add_argument(
        "--dxf-version",
        default="R2010",
        help="DXF version for ezdxf.new(), e.g. R2000/R2010/R2018.",
    )
    convert_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any entity cannot be converted.",
    )
    return parser


def _read_input(path: str) -> tuple[Path, Drawing | None]:
    file_path = Path(path)
    if not file_path.exists():
        print(f"error: file not found: {file_path}", file=sys.stderr)
        return file_path, None
    try:
        return file_path, read(file_path)
    except Exception as exc:
        print(f"error: failed to read DXF: {exc}", file=sys.stderr)
        return file_path, None


def _run_inspect(path: str, *, verbose: bool = False) -> int:
    file_path, drawing = _read_input(path)
    if drawing is None:
        return 2

    counts = Counter(entity.dxftype for entity in drawing.entities)
    print(f"file: {file_path}")
    print(f"version: {drawing.version}")
    print(f"classes: {len(drawing.classes)}")
    print(f"tables: {len(drawing.tables)}")
    for table in drawing.tables:
        print(f"table[{table.name}]: {len(table.entries)}")
    print(f"blocks: {len(drawing.blocks)}")
    print(f"objects: {len(drawing.objects)}")
    print(f"thumbnail: {'yes' if drawing.thumbnail is not None else 'no'}")
    print(f"total_entities: {sum(counts.values())}")
    for dxftype, count in sorted(counts.items()):
        print(f"{dxftype}: {count}")

    kinds = Counter(diagnostic.kind for diagnostic in drawing.diagnostics)
    for kind, count in sorted(kinds.items()):
        print(f"diagnostics[{kind}]: {count}")

    unknown_codes = Counter(
        f"{diagnostic.dxftype}:{diagnostic.code}"
        for diagnostic in drawing.diagnostics
        if diagnostic.kind == "UnknownTag" and diagnostic.code is not None
    )
    if unknown_codes:
        top_n = 10 if verbose else 3
        top_codes = ", ".join(f"{label}({count})" for label, count in unknown_codes.most_common(top_n))
        print(f"unknown_codes: {top_codes}")
    return 0


def _run_rewrite(
    input_path: str,
    output_path: str,
    *,
    dxf_version: str | None = None,
    strict: bool = False,
) -> int:
    file_path, drawing = _read_input(input_path)
    if drawing is None:
        return 2

    try:
        result = drawing.saveas(output_path, version=dxf_version, strict=strict)
    except Exception as exc:
        print(f"error: failed to write DXF: {exc}", file=sys.stderr)
        return 2

    print(f"input: {file_path}")
    print(f"output: {result.output_path}")
    print(f"target_version: {result.version}")
    print(f"total_entities: {result.total_entities}")
    print(f"written_entities: {result.written_entities}")
    print(f"skipped_entities: {result.skipped_entities}")
    for dxftype, count in result.skipped_by_type.items():
        print(f"skipped[{dxftype}]: {count}")
    return 0


def _run_convert(
    input_path: str,
    output_path: str,
    *,
    types: str | None = None,
    dxf_version: str = "R2010",
    strict: bool = False,
) -> int:
    dxf_path = Path(input_path)
    if not dxf_path.exists():
        print(f"error: file not found: {dxf_path}", file=sys.stderr)
        return 2

    try:
        result = export_ezdxf(
            str(dxf_path),
            output_path,
            types=types,
            dxf_version=dxf_version,
            strict=strict,
        )
    except Exception as exc:
        print(f"error: failed to convert DXF: {exc}", file=sys.stderr)
        return 2

    print(f"input: {result.source_path}")
    print(f"output: {result.output_path}")
    print(f"total_entities: {result.total_entities}")
    print(f"written_entities: {result.written_entities}")
    print(f"skipped_entities: {result.skipped_entities}")
    for dxftype, count in result.skipped_by_type.items():
        print(f"skipped[{dxftype}]: {count}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    verbose = bool(getattr(args, "verbose", False))
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "inspect":
        return _run_inspect(args.path, verbose=verbose)
    if args.command == "rewrite":
        return _run_rewrite(
            args.input_path,
            args.output_path,
            dxf_version=args.dxf_version,
            strict=bool(args.strict),
        )
    if args.command == "convert":
        return _run_convert(
            args.input_path,
            args.output_path,
            types=args.types,
            dxf_version=args.dxf_version,
            strict=bool(args.strict),
        )

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Sequence

from .convert import to_dxf
from .dispatch import EntityKind
from .document import read
from .errors import IgesError

_DEFAULT_DIAGNOSTIC_LIMIT = 5


def _package_version() -> str:
    try:
        return version("eziges")
    except PackageNotFoundError:
        return "0.0.0"


def _type_label(type_code: str) -> str:
    kind = EntityKind.from_code(type_code)
    if kind is None:
        return f"UNKNOWN({type_code})"
    return f"{kind.name}({int(kind)})"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eziges", description="Inspect and convert IGES files.")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_package_version()}",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level for decoder messages written to stderr.",
    )
    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser("inspect", help="Show basic IGES information.")
    inspect_parser.add_argument("path", help="Path to IGES file.")
    inspect_parser.add_argument(
        "--verbose",
        action="store_true",
        help="List every diagnostic instead of the first few.",
    )
    inspect_parser.add_argument(
        "--join",
        choices=("position", "pointer"),
        default="position",
        help="How parameter groups are matched to directory entries.",
    )

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert IGES to DXF using ezdxf as the writing backend.",
    )
    convert_parser.add_argument("input_path", help="Path to IGES file.")
    convert_parser.add_argument("output_path", help="Path to output DXF file.")
    convert_parser.add_argument(
        "--types",
        default=None,
        help='Entity filter passed to query(), e.g. "LINE ARC POINT".',
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
    convert_parser.add_argument(
        "--join",
        choices=("position", "pointer"),
        default="position",
        help="How parameter groups are matched to directory entries.",
    )
    return parser


def _run_inspect(path: str, *, verbose: bool = False, join: str = "position") -> int:
    file_path = Path(path)
    if not file_path.exists():
        print(f"error: file not found: {file_path}", file=sys.stderr)
        return 2

    try:
        doc = read(str(file_path), join=join)
    except IgesError as exc:
        print(f"error: failed to read IGES: {exc}", file=sys.stderr)
        return 2

    header = doc.header
    print(f"file: {file_path}")
    print(f"file_name: {header.file_name}")
    print(f"system: {header.native_system_id}")
    print(f"iges_version: {header.iges_version}")
    print(f"unit: {header.unit}")
    terminate = doc.terminate
    print(
        f"sections: S={terminate.start_lines} G={terminate.global_lines} "
        f"D={terminate.directory_lines} P={terminate.parameter_lines}"
    )
    print(f"total_entities: {len(doc.entities)}")

    counts: Counter[str] = Counter(entity.type for entity in doc.entities)
    for type_code, count in sorted(counts.items(), key=lambda item: _sort_key(item[0])):
        print(f"{_type_label(type_code)}: {count}")

    constructed = sum(1 for outcome in doc.outcomes if outcome.constructed)
    print(f"constructed_entities: {constructed}")
    unhandled: Counter[str] = Counter(entity.type for entity in doc.unhandled)
    for type_code, count in sorted(unhandled.items(), key=lambda item: _sort_key(item[0])):
        print(f"unhandled[{type_code}]: {count}")

    print(f"diagnostics: {len(doc.diagnostics)}")
    limit = len(doc.diagnostics) if verbose else _DEFAULT_DIAGNOSTIC_LIMIT
    for diagnostic in doc.diagnostics[:limit]:
        print(f"  {diagnostic}")
    hidden = len(doc.diagnostics) - limit
    if hidden > 0:
        print(f"  ... {hidden} more (use --verbose)")
    return 0


def _sort_key(type_code: str) -> tuple[int, str]:
    try:
        return (int(type_code), type_code)
    except ValueError:
        return (sys.maxsize, type_code)


def _run_convert(
    input_path: str,
    output_path: str,
    *,
    types: str | None = None,
    dxf_version: str = "R2010",
    strict: bool = False,
    join: str = "position",
) -> int:
    iges_path = Path(input_path)
    if not iges_path.exists():
        print(f"error: file not found: {iges_path}", file=sys.stderr)
        return 2

    try:
        doc = read(str(iges_path), join=join)
        result = to_dxf(
            doc,
            output_path,
            types=types,
            dxf_version=dxf_version,
            strict=strict,
        )
    except (IgesError, ValueError, ImportError) as exc:
        print(f"error: failed to convert IGES to DXF: {exc}", file=sys.stderr)
        return 2

    print(f"input: {result.source_path}")
    print(f"output: {result.output_path}")
    print(f"units: {result.units}")
    print(f"total_entities: {result.total_entities}")
    print(f"written_entities: {result.written_entities}")
    print(f"skipped_entities: {result.skipped_entities}")
    for dxftype, count in result.skipped_by_type.items():
        print(f"skipped[{dxftype}]: {count}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "inspect":
        return _run_inspect(args.path, verbose=bool(args.verbose), join=args.join)
    if args.command == "convert":
        return _run_convert(
            args.input_path,
            args.output_path,
            types=args.types,
            dxf_version=args.dxf_version,
            strict=bool(args.strict),
            join=args.join,
        )

    parser.print_help()
    return 0

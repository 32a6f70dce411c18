from __future__ import annotations

import argparse
import logging
import sys
from collections import OrderedDict
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Sequence

from .convert import to_dxf
from .document import read, write
from .errors import CommentNotice, DxfError
from .registry import DEFAULT_REGISTRY
from .versions import acadver


def _package_version() -> str:
    try:
        return version("tagdxf")
    except PackageNotFoundError:
        return "0.0.0"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tagdxf", description="Inspect, rewrite, and convert DXF files.")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_package_version()}",
    )
    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser("inspect", help="Show basic DXF information.")
    inspect_parser.add_argument("path", help="Path to DXF file.")
    inspect_parser.add_argument(
        "--verbose",
        action="store_true",
        help="List every diagnostic and log decoder activity.",
    )

    rewrite_parser = subparsers.add_parser(
        "rewrite",
        help="Decode a DXF file and write the supported entities back out.",
    )
    rewrite_parser.add_argument("input_path", help="Path to DXF file.")
    rewrite_parser.add_argument("output_path", help="Path to output DXF file.")
    rewrite_parser.add_argument(
        "--dxf-version",
        default=None,
        help="Output version, e.g. R12/R2000/AC1015. Defaults to the input version.",
    )
    rewrite_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any entity does not pass validation.",
    )

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert DXF entities into a new DXF document using ezdxf as the writing backend.",
    )
    convert_parser.add_argument("input_path", help="Path to DXF file.")
    convert_parser.add_argument("output_path", help="Path to output DXF file.")
    convert_parser.add_argument(
        "--types",
        default=None,
        help='Entity filter passed to query(), e.g. "LINE ARC HATCH".',
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


def _run_inspect(path: str, *, verbose: bool = False) -> int:
    file_path = Path(path)
    if not file_path.exists():
        print(f"error: file not found: {file_path}", file=sys.stderr)
        return 2

    try:
        doc = read(file_path)
    except (DxfError, OSError) as exc:
        print(f"error: failed to read DXF: {exc}", file=sys.stderr)
        return 2

    counts: OrderedDict[str, int] = OrderedDict()
    for entity in doc.query():
        counts[entity.dxftype] = counts.get(entity.dxftype, 0) + 1

    warnings = [item for item in doc.warnings if not issubclass(item.category, CommentNotice)]
    print(f"file: {file_path}")
    print(f"version: {doc.version.name} ({acadver(doc.version)})")
    print(f"total_entities: {len(doc.entities)}")
    for dxftype in DEFAULT_REGISTRY:
        count = counts.get(dxftype, 0)
        if count > 0:
            print(f"{dxftype}: {count}")
    if doc.classes:
        print(f"classes: {len(doc.classes)}")
    if doc.tables:
        print(f"tables: {', '.join(table.table_name for table in doc.tables)}")
    print(f"warnings: {len(warnings)}")
    shown = warnings if verbose else warnings[:3]
    for item in shown:
        print(f"warning: {item}")
    if len(shown) < len(warnings):
        print(f"... {len(warnings) - len(shown)} more (use --verbose)")
    for text in doc.comments:
        print(f"DXF comment: {text}")
    return 0


def _run_rewrite(
    input_path: str,
    output_path: str,
    *,
    dxf_version: str | None = None,
    strict: bool = False,
) -> int:
    dxf_path = Path(input_path)
    if not dxf_path.exists():
        print(f"error: file not found: {dxf_path}", file=sys.stderr)
        return 2

    try:
        doc = read(dxf_path)
        target = dxf_version if dxf_version is not None else doc.version
        result = write(output_path, doc, target, strict=strict)
    except (DxfError, OSError, ValueError) as exc:
        print(f"error: failed to rewrite DXF: {exc}", file=sys.stderr)
        return 2

    print(f"input: {dxf_path}")
    print(f"output: {output_path}")
    print(f"target_version: {acadver(target)}")
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
        result = to_dxf(
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

    if getattr(args, "verbose", False):
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "inspect":
        return _run_inspect(args.path, verbose=bool(args.verbose))
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

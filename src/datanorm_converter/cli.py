from __future__ import annotations

import argparse
import json
import logging
import tempfile
from pathlib import Path

from .config import DEFAULT_CONFIG, ConversionConfig, load_conversion_config
from .converter import DEFAULT_BASE_NAME, convert_catalog, package_streams
from .errors import ConversionError
from .field_map import REQUIRED_FIELDS, TABLE_FIELD_SYNONYMS, describe_headers, merge_synonyms
from .models import FormatGeneration
from .spreadsheet import LEGACY_SPREADSHEET_SUFFIXES, convert_legacy_spreadsheet
from .table_source import TableData, read_delimited, read_table

GENERATION_CHOICES = ["04", "050", "4", "4.0", "5", "5.0", "legacy", "modern"]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config(value: str | None) -> ConversionConfig:
    if not value:
        return DEFAULT_CONFIG
    return load_conversion_config(Path(value))


def _read_any_table(path: Path) -> TableData:
    if path.suffix.lower() in LEGACY_SPREADSHEET_SUFFIXES:
        with tempfile.TemporaryDirectory(prefix="datanorm_xls_") as work_dir:
            csv_path, _ = convert_legacy_spreadsheet(path, Path(work_dir))
            return read_delimited(csv_path)
    return read_table(path)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datanorm-converter",
        description="Convert BMEcat, CSV and Excel catalogs into Datanorm 4 or 5 files.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug details.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser(
        "convert",
        help="Convert one catalog file (.xml, .csv, .txt, .xlsx, .xls) into Datanorm.",
    )
    convert.add_argument("source", help="Path to the catalog file.")
    convert.add_argument(
        "--generation",
        choices=GENERATION_CHOICES,
        default=FormatGeneration.MODERN.value,
        help="Datanorm generation: 04 (legacy) or 050 (modern). Default: 050",
    )
    convert.add_argument(
        "--split",
        action="store_true",
        help="Write separate .001/.002/.003(/.004) streams instead of one combined file.",
    )
    convert.add_argument(
        "--output-dir",
        help="Directory for output streams. Default: directory of the source file",
    )
    convert.add_argument(
        "--base-name",
        help=f"Base name of output streams. Default: {DEFAULT_BASE_NAME}",
    )
    convert.add_argument(
        "--supplier-name",
        default="",
        help="Supplier name for header records; overrides the name found in the source.",
    )
    convert.add_argument(
        "--classification",
        action="append",
        default=[],
        metavar="FILE",
        help="Additional BMEcat classification document (repeatable, XML sources only).",
    )
    convert.add_argument("--config", help="YAML or JSON conversion profile.")
    convert.add_argument(
        "--zip",
        action="store_true",
        help="Also package the written streams into <base-name>.zip.",
    )
    convert.add_argument("--output-json", help="Optional path for a JSON conversion summary.")

    inspect = subparsers.add_parser(
        "inspect-columns",
        help="Show which semantic field each column header of a table binds to.",
    )
    inspect.add_argument("table", help="Path to a .csv, .txt, .xlsx or .xls table.")
    inspect.add_argument("--config", help="YAML or JSON profile with extra_synonyms.")

    return parser


def _handle_convert(args: argparse.Namespace) -> int:
    source = Path(args.source)
    if not source.exists():
        raise FileNotFoundError(source)

    config = _load_config(args.config)
    output_dir = Path(args.output_dir) if args.output_dir else source.parent
    base_name = args.base_name or DEFAULT_BASE_NAME

    result = convert_catalog(
        source,
        output_dir,
        generation=args.generation,
        split=args.split,
        base_name=base_name,
        supplier_name=args.supplier_name,
        classification_paths=[Path(item) for item in args.classification],
        config=config,
    )

    print(f"Datanorm {result.generation.value} conversion: {source}")
    print(f"Articles: {result.article_count}")
    print(f"Groups: {result.group_count}")
    if result.skipped_rows:
        print(f"WARNING: skipped {result.skipped_rows} rows without article number")
    if result.dangling_group_ids:
        print(
            "WARNING: groups referenced but not defined: "
            + ", ".join(result.dangling_group_ids)
        )
    for name, path in result.streams.items():
        print(f"Stream {name}: {path}")

    if args.zip:
        zip_path = package_streams(result.streams.values(), output_dir / f"{base_name}.zip")
        print(f"Archive: {zip_path}")

    if args.output_json:
        output_json = Path(args.output_json)
        output_json.write_text(
            json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
        print(f"Summary JSON: {output_json}")

    return 0


def _handle_inspect_columns(args: argparse.Namespace) -> int:
    table_path = Path(args.table)
    if not table_path.exists():
        raise FileNotFoundError(table_path)

    config = _load_config(args.config)
    synonyms = merge_synonyms(TABLE_FIELD_SYNONYMS, config.extra_synonyms)
    table = _read_any_table(table_path)
    bindings = describe_headers(table.headers, synonyms)

    print(f"Columns in {table_path} (delimiter {table.delimiter!r}, encoding {table.encoding}):")
    for header, key in bindings:
        print(f"  {header} -> {key or '-'}")

    bound = {key for _, key in bindings if key}
    missing = [key for key in REQUIRED_FIELDS if key not in bound]
    if missing:
        print("ERROR: required fields missing: " + ", ".join(missing))
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.command == "convert":
            return _handle_convert(args)
        if args.command == "inspect-columns":
            return _handle_inspect_columns(args)
    except (ConversionError, FileNotFoundError) as error:
        print(f"ERROR: {error}")
        return 1

    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())

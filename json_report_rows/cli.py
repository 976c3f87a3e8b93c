"""Command line entry point: ``json-report-rows``.

    json-report-rows generate input.json --config report.yaml -o report.xlsx
    json-report-rows fields input.json
    json-report-rows compare expected.json actual.json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .compare import compare_row_sets
from .config import ReportConfig, load_report_config
from .errors import ConfigurationError, FlatteningError
from .expansion import EXPANSION_MODES
from .flattening import FlattenStats, generate_rows_from_config, rows_for_export
from .io_utils import OUTPUT_FORMATS, read_json_content, write_rows
from .records import ROOT_PATH, resolve_records
from .schema_utils import discover_fields

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
DEFAULT_LOG_DATEFMT = "%Y/%m/%d %H:%M:%S"


def configure_logging(level: Optional[str]) -> None:
    log_level = getattr(logging, str(level or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=DEFAULT_LOG_FORMAT, datefmt=DEFAULT_LOG_DATEFMT)


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="json-report-rows",
        description="Flatten nested JSON records into spreadsheet report rows",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="log level (default: INFO, or log-level from the config file)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="build report rows and write them")
    gen.add_argument("input", type=Path, help="input JSON file")
    gen.add_argument("--config", "-c", type=Path, help="YAML/JSON config (list of fields or mapping)")
    gen.add_argument("--fields", nargs="+", help="dot paths to report, in column order")
    gen.add_argument("--group-key", "-g", help="field identifying a record's group (default: first field)")
    gen.add_argument("--mode", choices=EXPANSION_MODES, help="how sibling arrays combine (default: cartesian)")
    gen.add_argument("--separator", help="joiner for arrays of scalars (default: ', ')")
    gen.add_argument(
        "--owner-aware-merge",
        action="store_true",
        default=None,
        help="never merge values taken from different items of the same array",
    )
    gen.add_argument("--root-path", help="dot path to the record list inside the input (default: (root))")
    gen.add_argument("--worksheet-name", help="sheet name for xlsx output")
    gen.add_argument(
        "--output",
        "-o",
        type=Path,
        action="append",
        help="output file; repeatable (.xlsx, .csv or .json). Default: print JSON",
    )
    gen.add_argument("--format", "-f", choices=OUTPUT_FORMATS, help="force output format")

    fields = sub.add_parser("fields", help="list the dot paths found in the input")
    fields.add_argument("input", type=Path, help="input JSON file")
    fields.add_argument("--root-path", default=ROOT_PATH, help="dot path to the record list")

    cmp_ = sub.add_parser("compare", help="diff two JSON row files")
    cmp_.add_argument("expected", type=Path)
    cmp_.add_argument("actual", type=Path)
    return parser


def build_config(args: argparse.Namespace) -> ReportConfig:
    if args.config:
        config = load_report_config(args.config)
    elif args.fields:
        config = ReportConfig(fields=list(args.fields))
    else:
        raise ConfigurationError("Either --config or --fields is required.")

    return config.with_overrides(
        fields=list(args.fields) if args.fields else None,
        group_key=args.group_key,
        mode=args.mode,
        separator=args.separator,
        owner_aware_merge=args.owner_aware_merge,
        root_path=args.root_path,
        worksheet_name=args.worksheet_name,
    ).validate()


def run_generate(args: argparse.Namespace) -> int:
    config = build_config(args)
    if config.log_level and not args.log_level:
        logging.getLogger().setLevel(getattr(logging, str(config.log_level).upper(), logging.INFO))

    data = read_json_content(args.input)
    records = resolve_records(data, config.root_path)
    if not records:
        logger.warning("No records found at %s in %s", config.root_path, args.input)

    stats = FlattenStats()
    rows = generate_rows_from_config(records, config, stats)
    stats.log_summary()

    header = config.header_row()
    exported = rows_for_export(rows, config.fields, config.headers)
    if not args.output:
        json.dump(exported, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
        return 0
    for out in args.output:
        write_rows(out, header, exported, args.format, config.worksheet_name)
    return 0


def run_fields(args: argparse.Namespace) -> int:
    data = read_json_content(args.input)
    for name in discover_fields(resolve_records(data, args.root_path)):
        print(name)
    return 0


def _load_rows(path: Path) -> List[Dict[str, Any]]:
    rows = read_json_content(path)
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValueError(f"{path} must contain a JSON array of row objects")
    return rows


def run_compare(args: argparse.Namespace) -> int:
    expected = _load_rows(args.expected)
    actual = _load_rows(args.actual)
    diffs = compare_row_sets(expected, actual)
    print(f"Expected has {len(expected)} rows, actual has {len(actual)} rows")
    for diff in diffs:
        print(diff.describe())
    if diffs:
        print(f"{len(diffs)} difference(s) found")
        return 1
    print("All rows match")
    return 0


COMMANDS = {
    "generate": run_generate,
    "fields": run_fields,
    "compare": run_compare,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return COMMANDS[args.command](args)
    except (ConfigurationError, FlatteningError) as e:
        logger.error("Error: %s", e)
        return 1
    except (ValueError, OSError) as e:
        logger.error("Could not process %s: %s", getattr(args, "input", args.command), e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

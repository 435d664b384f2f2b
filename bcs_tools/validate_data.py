#!/usr/bin/env python3
"""Validate the BCS data/ directory structure and rule files.

Runs nine structural checks over the corpus (see bcs_tools/data_checks.py)
and reports text progress on stderr or a single JSON object on stdout.

Usage:
  python -m bcs_tools.validate_data [--data-dir data] [--quiet] [--json]
      [--exit-on-error] [--summary-limit BYTES] [--abstract-limit BYTES]
      [--bcs-cmd PATH] [--registry-timeout SECONDS] [--check-decode]
      [--config FILE] [--report FILE]

Exit codes:
  0 - All validations passed
  1 - Validation errors found
  2 - Invalid arguments or setup failure
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

import jsonschema

from bcs_tools.code_registry import CodeRegistry
from bcs_tools.data_checks import run_check, selected_checks
from bcs_tools.validate_config import (
    DEFAULT_ABSTRACT_LIMIT,
    DEFAULT_SUMMARY_LIMIT,
    SetupError,
    ValidateConfig,
    build_config,
    check_root_accessible,
    load_config_file,
)
from bcs_tools.validation_report import (
    Aggregator,
    Console,
    ValidationReport,
    render_json,
    write_report_file,
)

PROG = "validate-data"
__version__ = "1.0.0"

EPILOG = """\
validation checks:
  1. Data directory existence
  2. Tier file completeness (all .complete.md have .summary.md and .abstract.md)
  3. Numeric prefix zero-padding (01- not 1-)
  4. Section directories have required 00-section files
  5. BCS code uniqueness (no duplicates)
  6. File naming conventions (NN-name.tier.md)
  7. No alphabetic suffixes (02a-, 02b- forbidden)
  8. Header files existence
  9. File size limits (per tier)
  optional: BCS code decodability (--check-decode)

examples:
  validate-data                           # Run all validations
  validate-data --quiet                   # Only show errors
  validate-data --exit-on-error           # Stop on first error
  validate-data --summary-limit 8000      # Custom size limits
  validate-data --json > report.json      # JSON output

exit codes:
  0 - All validations passed
  1 - Validation errors found
  2 - Invalid arguments or setup failure
"""


def non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid byte count: '{value}'") from None
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0: {n}")
    return n


def positive_float(value: str) -> float:
    try:
        n = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: '{value}'") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0: {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Validate BCS data/ directory structure and rule files.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"{PROG} version {__version__}")
    parser.add_argument("-q", "--quiet", dest="verbosity", action="store_const", const="quiet",
                        help="Quiet mode (errors only)")
    parser.add_argument("-v", "--verbose", dest="verbosity", action="store_const", const="verbose",
                        help="Verbose mode (default)")
    parser.add_argument("--exit-on-error", action="store_true", default=None,
                        help="Exit immediately on first failing check")
    parser.add_argument("--summary-limit", type=non_negative_int, metavar="BYTES",
                        help=f"Max summary file size (default: {DEFAULT_SUMMARY_LIMIT})")
    parser.add_argument("--abstract-limit", type=non_negative_int, metavar="BYTES",
                        help=f"Max abstract file size (default: {DEFAULT_ABSTRACT_LIMIT})")
    parser.add_argument("--json", action="store_true",
                        help="Output results in JSON format (implies --quiet)")
    parser.add_argument("--data-dir", metavar="DIR",
                        help="Path to the data/ directory (default: ./data)")
    parser.add_argument("--bcs-cmd", metavar="PATH",
                        help="bcs program used to list/decode codes "
                             "(default: bcs next to data/, then bcs on PATH)")
    parser.add_argument("--registry-timeout", type=positive_float, metavar="SECONDS",
                        help="Timeout for each bcs invocation (default: 10)")
    parser.add_argument("--check-decode", action="store_true", default=None,
                        help="Also check that every BCS code decodes to an existing file")
    parser.add_argument("--config", metavar="FILE", help="YAML config file")
    parser.add_argument("--report", metavar="FILE", help="Also write the JSON report to FILE")
    return parser


def config_from_args(args: argparse.Namespace, registry: Optional[CodeRegistry] = None) -> ValidateConfig:
    file_values = load_config_file(args.config) if args.config else {}
    overrides = {
        "data_dir": args.data_dir,
        "summary_limit": args.summary_limit,
        "abstract_limit": args.abstract_limit,
        "bcs_cmd": args.bcs_cmd,
        "registry_timeout": args.registry_timeout,
        "exit_on_error": args.exit_on_error,
        "check_decode": args.check_decode,
    }
    return build_config(file_values, overrides, registry=registry)


def run_validation(config: ValidateConfig, console: Console) -> ValidationReport:
    """Run the selected checks in order, streaming progress to the console."""
    root = config.data_dir
    agg = Aggregator(exit_on_error=config.exit_on_error)
    for name, banner, func in selected_checks(config):
        console.info(banner)
        result = run_check(name, func, root, config)
        console.check_result(result)
        if not agg.add(result):
            console.error(f"Stopping after failed check: {name}")
            break
    return agg.report()


def main(argv: Optional[Sequence[str]] = None, registry: Optional[CodeRegistry] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    json_mode = args.json
    quiet = json_mode or args.verbosity == "quiet"
    console = Console(PROG, verbose=not quiet, quiet=quiet, json_mode=json_mode)

    try:
        config = config_from_args(args, registry=registry)
        check_root_accessible(config.data_dir)
    except SetupError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    console.info(f"{console.bold}BCS Data Directory Validation{console.nc}")
    console.info(f"Data directory: {config.data_dir}")
    console.info("")

    report = run_validation(config, console)

    if args.report:
        try:
            path = write_report_file(report, args.report)
        except (OSError, jsonschema.ValidationError) as e:
            print(f"ERROR: Cannot write report to {args.report}: {e}", file=sys.stderr)
            return 2
        console.info(f"Report written to {path}")

    if json_mode:
        print(render_json(report))
    else:
        console.summary(report)
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())

"""Check results, aggregation and text/JSON reporting for the data validator."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

import jsonschema

PASS = "pass"
FAIL = "fail"
WARN = "warn"
STATUSES = (PASS, FAIL, WARN)

REPORT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["status", "summary", "checks"],
    "additionalProperties": False,
    "properties": {
        "status": {"enum": [PASS, FAIL]},
        "summary": {
            "type": "object",
            "required": ["errors", "warnings", "checks_run"],
            "additionalProperties": False,
            "properties": {
                "errors": {"type": "integer", "minimum": 0},
                "warnings": {"type": "integer", "minimum": 0},
                "checks_run": {"type": "integer", "minimum": 0},
            },
        },
        "checks": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["check", "status", "message"],
                "additionalProperties": False,
                "properties": {
                    "check": {"type": "string"},
                    "status": {"enum": list(STATUSES)},
                    "message": {"type": "string"},
                },
            },
        },
    },
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check. Produced once per check per run."""
    check: str
    status: str                        # pass | fail | warn
    message: str
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    details: tuple[str, ...] = ()      # verbose-only lines
    display_limit: Optional[int] = None  # max errors listed in text mode

    @property
    def failed(self) -> bool:
        return self.status == FAIL

    def to_dict(self) -> dict:
        return {"check": self.check, "status": self.status, "message": self.message}


class Findings:
    """Collects one check's errors and warnings, then freezes them into a CheckResult."""

    def __init__(self, check: str):
        self.check = check
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.details: list[str] = []

    def error(self, msg: str):
        self.errors.append(msg)

    def warn(self, msg: str):
        self.warnings.append(msg)

    def detail(self, msg: str):
        self.details.append(msg)

    def io_warning(self, exc: OSError):
        """onerror callback for the walker: unreadable entries become warnings."""
        where = exc.filename if exc.filename is not None else "?"
        self.warn(f"Cannot read {where}: {exc.strerror or exc}")

    def result(self, ok_message: str, fail_message: str = "",
               warn_message: str = "", display_limit: Optional[int] = None) -> CheckResult:
        if self.errors:
            status, message = FAIL, fail_message or f"{len(self.errors)} error(s)"
        elif self.warnings:
            status, message = WARN, warn_message or f"{len(self.warnings)} warning(s)"
        else:
            status, message = PASS, ok_message
        return CheckResult(
            check=self.check,
            status=status,
            message=message,
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            details=tuple(self.details),
            display_limit=display_limit,
        )


@dataclass(frozen=True)
class ValidationReport:
    results: tuple[CheckResult, ...]
    errors: int
    warnings: int

    @property
    def checks_run(self) -> int:
        return len(self.results)

    @property
    def status(self) -> str:
        return PASS if self.errors == 0 else FAIL

    @property
    def exit_code(self) -> int:
        return 0 if self.errors == 0 else 1

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "summary": {
                "errors": self.errors,
                "warnings": self.warnings,
                "checks_run": self.checks_run,
            },
            "checks": [r.to_dict() for r in self.results],
        }


class Aggregator:
    """Accumulates CheckResults in invocation order.

    add() returns False when the caller should stop invoking checks
    (exit_on_error mode after the first failing result).
    """

    def __init__(self, exit_on_error: bool = False):
        self.exit_on_error = exit_on_error
        self.results: list[CheckResult] = []
        self.errors = 0
        self.warnings = 0

    def add(self, result: CheckResult) -> bool:
        self.results.append(result)
        self.errors += len(result.errors)
        self.warnings += len(result.warnings)
        return not (self.exit_on_error and result.failed)

    def report(self) -> ValidationReport:
        return ValidationReport(tuple(self.results), self.errors, self.warnings)


# ---------------------------------------------------------------------------
# Console output (text mode)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    return sys.stdout.isatty() and sys.stderr.isatty()


class Console:
    """stderr messaging with the same quiet/verbose/json rules as the shell tools.

    info/success/detail need verbose and not quiet; warnings are hidden in
    quiet and JSON mode; errors are hidden only in JSON mode.
    """

    def __init__(self, prog: str, verbose: bool = True, quiet: bool = False,
                 json_mode: bool = False, stream: Optional[TextIO] = None,
                 color: Optional[bool] = None):
        self.prog = prog
        self.verbose = verbose and not quiet and not json_mode
        self.quiet = quiet or json_mode
        self.json_mode = json_mode
        self.stream = stream
        if color is None:
            color = _use_color()
        self.red, self.green, self.yellow, self.cyan, self.bold, self.nc = (
            ("\033[0;31m", "\033[0;32m", "\033[0;33m", "\033[0;36m", "\033[1m", "\033[0m")
            if color else ("",) * 6
        )

    def _emit(self, glyph: str, msg: str):
        prefix = f"{self.prog}:" + (f" {glyph}" if glyph else "")
        print(f"{prefix} {msg}", file=self.stream or sys.stderr)

    def detail(self, msg: str):
        if self.verbose:
            self._emit("", msg)

    def info(self, msg: str):
        if self.verbose:
            self._emit(f"{self.cyan}◉{self.nc}", msg)

    def success(self, msg: str):
        if self.verbose:
            self._emit(f"{self.green}✓{self.nc}", msg)

    def warn(self, msg: str):
        if not self.quiet:
            self._emit(f"{self.yellow}▲{self.nc}", msg)

    def error(self, msg: str):
        if not self.json_mode:
            self._emit(f"{self.red}✗{self.nc}", msg)

    def check_result(self, result: CheckResult):
        """Stream one check's findings followed by its status line."""
        for line in result.details:
            self.detail(f"  {line}")
        shown = result.errors
        if result.display_limit is not None:
            shown = result.errors[:result.display_limit]
        for e in shown:
            self.error(f"  - {e}")
        hidden = len(result.errors) - len(shown)
        if hidden:
            self.error(f"  ... and {hidden} more")
        for w in result.warnings:
            self.warn(f"  - {w}")

        if result.status == PASS:
            self.success(result.message)
        elif result.status == WARN:
            self.warn(result.message)
        else:
            self.error(result.message)

    def summary(self, report: ValidationReport):
        self.info("")
        if report.errors == 0:
            self.success(f"{self.bold}Validation complete: All checks passed{self.nc}")
            if report.warnings:
                self.warn(f"  ({report.warnings} warning(s) - non-critical)")
        else:
            self.error(f"{self.bold}Validation failed: {report.errors} error(s), "
                       f"{report.warnings} warning(s){self.nc}")


# ---------------------------------------------------------------------------
# JSON output
# ---------------------------------------------------------------------------

def render_json(report: ValidationReport) -> str:
    """Compact single-object JSON, keys in contract order."""
    return json.dumps(report.to_dict(), ensure_ascii=False, separators=(",", ":"))


def write_report_file(report: ValidationReport, path: str | Path) -> Path:
    """Validate the report against REPORT_SCHEMA and write it pretty-printed."""
    data = report.to_dict()
    jsonschema.validate(data, REPORT_SCHEMA)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.write("\n")
    return path

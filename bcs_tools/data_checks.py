"""Structural checks for the BCS data/ tree.

Checks (run in this order, names are the keys used in JSON reports):
  1. data_directory_exists
  2. tier_file_completeness          every .complete.md has .summary.md and .abstract.md
  3. numeric_prefixes_zero_padded    01- not 1-
  4. section_directories_have_section_files
  5. bcs_code_uniqueness             via the code registry
  6. file_naming_conventions         NN-name.tier.md
  7. no_alphabetic_suffixes          02a-, 02b- forbidden
  8. header_files_exist
  9. file_size_limits                oversized summary/abstract files (warnings only)

Optional:
  bcs_code_decodability              every registered code resolves to a file

Each check is `check(root, config) -> CheckResult` and never raises;
run_check() is the isolation boundary for anything unexpected.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from bcs_tools.code_registry import NotFoundError, RegistryUnavailableError
from bcs_tools.corpus_model import (
    ALPHA_SUFFIX_PREFIX_RE,
    HEADER_STEM,
    RULE_FILE_RE,
    SECTION_DIR_RE,
    SINGLE_DIGIT_PREFIX_RE,
    SPECIAL_FILE_RE,
    TIERS,
    Rule,
    Section,
    TierFile,
    is_header_file,
)
from bcs_tools.corpus_walk import CorpusRootError, file_size, relative_to_root, walk
from bcs_tools.validate_config import ValidateConfig
from bcs_tools.validation_report import FAIL, CheckResult, Findings

NAMING_DISPLAY_LIMIT = 10

CheckFunc = Callable[[Path, ValidateConfig], CheckResult]


def check_data_directory_exists(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("data_directory_exists")
    if not root.is_dir():
        f.error(f"data/ directory not found at: {root}")
    return f.result("data/ directory exists", f"data/ directory not found at: {root}")


def check_tier_file_completeness(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("tier_file_completeness")
    rules = 0
    for entry in walk(root, dirs=False, pattern="*.complete.md", onerror=f.io_warning):
        if is_header_file(entry.path):
            continue
        rule = Rule.from_tier_file(TierFile(entry.path, "complete"))
        rules += 1
        for tier in rule.missing_tiers:
            missing = rule.tier_file(tier).path
            f.error(f"Missing {tier} tier: {relative_to_root(missing, root)}")
    return f.result(
        f"All complete tier files have corresponding abstract and summary tiers ({rules} rules)",
        f"{len(f.errors)} tier file(s) missing",
    )


def check_numeric_prefixes_zero_padded(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("numeric_prefixes_zero_padded")
    for entry in walk(root, onerror=f.io_warning):
        if SINGLE_DIGIT_PREFIX_RE.match(entry.path.name):
            f.error(entry.rel)
    return f.result(
        "All numeric prefixes are zero-padded",
        f"Found {len(f.errors)} item(s) without zero-padding",
    )


def check_section_directories(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("section_directories_have_section_files")
    sections = 0
    for entry in walk(root, files=False, max_depth=1, onerror=f.io_warning):
        if not SECTION_DIR_RE.match(entry.path.name):
            continue
        section = Section.from_path(entry.path)
        sections += 1
        for tier in TIERS:
            if not section.section_file(tier).exists:
                f.error(f"Missing 00-section.{tier}.md in {entry.rel}")
    return f.result(
        f"All section directories have required 00-section files ({sections} sections)",
        f"{len(f.errors)} section file(s) missing",
    )


def check_bcs_code_uniqueness(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("bcs_code_uniqueness")
    try:
        codes = config.registry.list_codes()
    except RegistryUnavailableError as e:
        f.warn(f"registry unavailable, skipping uniqueness check: {e}")
        return f.result("", warn_message="registry unavailable, skipping uniqueness check")

    seen = set()
    for code in codes:
        if code in seen:
            f.error(f"Duplicate BCS code detected: {code}")
        else:
            seen.add(code)
    return f.result(
        f"All BCS codes are unique ({len(codes)} codes)",
        f"{len(f.errors)} duplicate code(s) found",
    )


def check_file_naming_conventions(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("file_naming_conventions")
    for entry in walk(root, dirs=False, pattern="*.md", skip_excluded=True, onerror=f.io_warning):
        name = entry.path.name
        if SPECIAL_FILE_RE.match(name):
            continue
        if not RULE_FILE_RE.match(name):
            f.error(entry.rel)
    return f.result(
        "All rule files follow naming convention",
        f"Found {len(f.errors)} file(s) with invalid names",
        display_limit=NAMING_DISPLAY_LIMIT,
    )


def check_no_alphabetic_suffixes(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("no_alphabetic_suffixes")
    for entry in walk(root, onerror=f.io_warning):
        if ALPHA_SUFFIX_PREFIX_RE.match(entry.path.name):
            f.error(entry.rel)
    return f.result(
        "No files/dirs use alphabetic suffixes (e.g., 02a-, 02b-)",
        f"Found {len(f.errors)} item(s) with alphabetic suffixes",
    )


def check_header_files_exist(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("header_files_exist")
    for tier in TIERS:
        name = f"{HEADER_STEM}.{tier}.md"
        if (root / name).is_file():
            f.detail(f"{name} exists")
        else:
            f.error(f"{name} missing")
    return f.result("All header files exist", f"{len(f.errors)} header file(s) missing")


def check_file_size_limits(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("file_size_limits")
    limits = {"summary": config.summary_limit, "abstract": config.abstract_limit}
    for entry in walk(root, dirs=False, pattern="*.md", onerror=f.io_warning):
        tier_file = TierFile.from_path(entry.path)
        if tier_file is None or tier_file.tier not in limits:
            continue
        if entry.depth == 1 and is_header_file(entry.path):
            continue
        limit = limits[tier_file.tier]
        size = file_size(tier_file.path, onerror=f.io_warning)
        if size is None or size <= limit:
            continue
        f.warn(f"{tier_file.tier.capitalize()} file oversized: {entry.rel} ({size} > {limit} bytes)")
        try:
            f.detail(f"{entry.rel}: {tier_file.line_count()} lines")
        except OSError as e:
            f.io_warning(e)
    return f.result(
        "All files within size limits",
        warn_message=f"{len(f.warnings)} file(s) exceed size limits "
                     f"(consider running: bcs compress --regenerate)",
    )


def check_bcs_code_decodability(root: Path, config: ValidateConfig) -> CheckResult:
    f = Findings("bcs_code_decodability")
    try:
        codes = config.registry.list_codes()
    except RegistryUnavailableError as e:
        f.warn(f"registry unavailable, skipping decodability check: {e}")
        return f.result("", warn_message="registry unavailable, skipping decodability check")

    for code in dict.fromkeys(codes):
        try:
            path = Path(config.registry.decode(code))
        except NotFoundError as e:
            f.error(str(e))
            continue
        except RegistryUnavailableError as e:
            f.warn(f"registry unavailable while decoding {code}: {e}")
            break
        if not path.is_absolute():
            path = root.parent / path
        if not path.is_file():
            f.error(f"{code} decodes to a missing file: {path}")
    return f.result(
        f"All BCS codes decode to existing files ({len(codes)} codes)",
        f"{len(f.errors)} code(s) cannot be decoded",
        warn_message=f"{len(f.warnings)} warning(s) while decoding codes",
    )


CHECKS: list[tuple[str, str, CheckFunc]] = [
    ("data_directory_exists", "Checking data directory existence...", check_data_directory_exists),
    ("tier_file_completeness", "Checking tier file completeness...", check_tier_file_completeness),
    ("numeric_prefixes_zero_padded", "Checking numeric prefix zero-padding...",
     check_numeric_prefixes_zero_padded),
    ("section_directories_have_section_files", "Checking section directory structure...",
     check_section_directories),
    ("bcs_code_uniqueness", "Checking BCS code uniqueness...", check_bcs_code_uniqueness),
    ("file_naming_conventions", "Checking file naming conventions...", check_file_naming_conventions),
    ("no_alphabetic_suffixes", "Checking for alphabetic suffixes...", check_no_alphabetic_suffixes),
    ("header_files_exist", "Checking header files...", check_header_files_exist),
    ("file_size_limits", "Checking file size limits...", check_file_size_limits),
]

DECODE_CHECK = ("bcs_code_decodability", "Checking BCS code decodability...", check_bcs_code_decodability)


def selected_checks(config: ValidateConfig) -> list[tuple[str, str, CheckFunc]]:
    checks = list(CHECKS)
    if config.check_decode:
        checks.append(DECODE_CHECK)
    return checks


def run_check(name: str, func: CheckFunc, root: Path, config: ValidateConfig) -> CheckResult:
    """Run one check, converting anything it raises into a failing result."""
    try:
        return func(root, config)
    except CorpusRootError as e:
        return CheckResult(name, FAIL, str(e), errors=(str(e),))
    except Exception as e:
        msg = f"{name} crashed: {e}"
        return CheckResult(name, FAIL, msg, errors=(msg,))

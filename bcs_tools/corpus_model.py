"""Corpus model for the tiered BCS rule tree under data/.

Layout:
  data/
    00-header.{complete,summary,abstract}.md
    NN-section-name/
      00-section.{complete,summary,abstract}.md
      NN-rule-name.{complete,summary,abstract}.md
      NN-rule-name/            (optional subrules, same naming)

Every rule file is `{stem}.{tier}.md`. The BCS code of a rule is implied
by its position (BCS + section number + rule number ...), the validator never
derives it itself; codes come from the external registry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# ---------------------------------------------------------------------------
# Naming rules
# ---------------------------------------------------------------------------

TIERS = ("complete", "summary", "abstract")
TIER_FILE_RE = re.compile(r"^(?P<stem>.*)\.(?P<tier>complete|summary|abstract)\.md$")

HEADER_STEM = "00-header"
SECTION_STEM = "00-section"

SECTION_DIR_RE = re.compile(r"^(?P<number>[0-9]{2})-(?P<name>.+)$")
RULE_FILE_RE = re.compile(r"^[0-9]{2}-[a-z0-9-]+\.(complete|abstract|summary)\.md$")
SINGLE_DIGIT_PREFIX_RE = re.compile(r"^[0-9]-")
ALPHA_SUFFIX_PREFIX_RE = re.compile(r"^[0-9]{2}[a-z]-")
SPECIAL_FILE_RE = re.compile(r"^00-(header|section)\.")
BCS_CODE_RE = re.compile(r"^BCS[0-9]+$")

TEMPLATES_DIR = "templates"
README_NAME = "README.md"


def tier_file_name(stem: str, tier: str) -> str:
    """Return `{stem}.{tier}.md`; the stem may be empty."""
    if tier not in TIERS:
        raise ValueError(f"Unknown tier '{tier}' (expected one of {', '.join(TIERS)})")
    return f"{stem}.{tier}.md"


def is_header_file(path: Path) -> bool:
    return path.name.startswith(HEADER_STEM + ".")


def is_valid_bcs_code(code: str) -> bool:
    return bool(BCS_CODE_RE.match(code))


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TierFile:
    """One physical `{stem}.{tier}.md` file, inspected at call time."""
    path: Path
    tier: str                          # complete | summary | abstract

    @classmethod
    def from_path(cls, path: Path) -> Optional["TierFile"]:
        """None unless the name ends in `.{tier}.md`."""
        m = TIER_FILE_RE.match(path.name)
        if not m:
            return None
        return cls(path, m.group("tier"))

    @property
    def stem(self) -> str:
        return TIER_FILE_RE.match(self.path.name).group("stem")

    @property
    def exists(self) -> bool:
        return self.path.is_file()

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def line_count(self) -> int:
        with open(self.path, encoding="utf-8", errors="replace") as f:
            return sum(1 for _ in f)


@dataclass(frozen=True)
class Rule:
    """A documented rule: `directory/{stem}.*` plus the tiers present on disk."""
    directory: Path
    stem: str                          # empty for a bare `.complete.md`
    tiers: frozenset[str] = field(default_factory=frozenset)

    @property
    def missing_tiers(self) -> tuple[str, ...]:
        return tuple(t for t in TIERS if t not in self.tiers)

    def tier_file(self, tier: str) -> TierFile:
        return TierFile(self.directory / tier_file_name(self.stem, tier), tier)

    @classmethod
    def from_tier_file(cls, tier_file: TierFile) -> "Rule":
        directory, stem = tier_file.path.parent, tier_file.stem
        present = frozenset(
            t for t in TIERS if (directory / tier_file_name(stem, t)).is_file()
        )
        return cls(directory, stem, present)


@dataclass(frozen=True)
class Section:
    """A top-level `NN-name` directory."""
    number: str
    name: str
    path: Path

    @classmethod
    def from_path(cls, path: Path) -> Optional["Section"]:
        m = SECTION_DIR_RE.match(path.name)
        if not m:
            return None
        return cls(m.group("number"), m.group("name"), path)

    def section_file(self, tier: str) -> TierFile:
        return TierFile(self.path / tier_file_name(SECTION_STEM, tier), tier)

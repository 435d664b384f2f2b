"""Fixture corpora for the data validator tests."""

from pathlib import Path

import pytest

from bcs_tools.code_registry import StaticCodeRegistry
from bcs_tools.validate_config import build_config

TIERS = ("complete", "summary", "abstract")

VALID_LAYOUT = [
    "00-header",
    "01-script-structure/00-section",
    "01-script-structure/01-layout",
    "01-script-structure/02-shebang",
    "01-script-structure/02-shebang/01-dual-purpose",
    "02-variables/00-section",
    "02-variables/01-declarations",
]

VALID_CODES = [
    ("BCS0101", "data/01-script-structure/01-layout.abstract.md"),
    ("BCS0102", "data/01-script-structure/02-shebang.abstract.md"),
    ("BCS010201", "data/01-script-structure/02-shebang/01-dual-purpose.abstract.md"),
    ("BCS0201", "data/02-variables/01-declarations.abstract.md"),
]


def write_rule_files(root: Path, base: str, tiers=TIERS, content: str = "### Rule\n#fin\n"):
    """Create `{base}.{tier}.md` for each tier under root."""
    for tier in tiers:
        p = root / f"{base}.{tier}.md"
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")


def build_corpus(root: Path, bases=VALID_LAYOUT) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for base in bases:
        write_rule_files(root, base)
    (root / "README.md").write_text("# data\n", encoding="utf-8")
    (root / "templates").mkdir(exist_ok=True)
    (root / "templates" / "rule-template.md").write_text("template\n", encoding="utf-8")
    return root


@pytest.fixture
def data_dir(tmp_path) -> Path:
    """A fully valid corpus under tmp_path/data."""
    return build_corpus(tmp_path / "data")


@pytest.fixture
def write_rule():
    """Helper that writes `{base}.{tier}.md` files into a corpus."""
    return write_rule_files


@pytest.fixture
def valid_codes() -> list:
    """(code, path) pairs matching the valid corpus."""
    return list(VALID_CODES)


@pytest.fixture
def registry(valid_codes) -> StaticCodeRegistry:
    return StaticCodeRegistry(valid_codes)


@pytest.fixture
def config_for(registry):
    """Build a ValidateConfig for a data dir, with the static registry by default."""
    def _make(data_dir: Path, reg=None, **overrides):
        return build_config(None, {"data_dir": str(data_dir), **overrides},
                            registry=reg if reg is not None else registry)
    return _make

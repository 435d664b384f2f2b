"""Configuration for the data validator.

Precedence: built-in defaults < YAML config file (--config) < command line.

Example config file:

    data_dir: ../data
    summary_limit: 8000
    abstract_limit: 1500
    bcs_cmd: ../bcs
    registry_timeout: 5
    exit_on_error: false
    check_decode: true

Relative `data_dir` and `bcs_cmd` values are resolved against the directory
holding the config file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import jsonschema
import yaml

from bcs_tools.code_registry import (
    DEFAULT_TIMEOUT,
    BcsCommandRegistry,
    CodeRegistry,
    UnavailableRegistry,
    find_bcs_command,
)

DEFAULT_DATA_DIR = "data"
DEFAULT_SUMMARY_LIMIT = 10000
DEFAULT_ABSTRACT_LIMIT = 1500

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "data_dir": {"type": "string", "minLength": 1},
        "summary_limit": {"type": "integer", "minimum": 0},
        "abstract_limit": {"type": "integer", "minimum": 0},
        "bcs_cmd": {"type": "string", "minLength": 1},
        "registry_timeout": {"type": "number", "exclusiveMinimum": 0},
        "exit_on_error": {"type": "boolean"},
        "check_decode": {"type": "boolean"},
    },
}

PATH_KEYS = ("data_dir", "bcs_cmd")


class SetupError(Exception):
    """Invalid configuration or an unusable environment; exit status 2."""


@dataclass(frozen=True)
class ValidateConfig:
    data_dir: Path
    summary_limit: int = DEFAULT_SUMMARY_LIMIT
    abstract_limit: int = DEFAULT_ABSTRACT_LIMIT
    bcs_cmd: Optional[str] = None
    registry_timeout: float = DEFAULT_TIMEOUT
    exit_on_error: bool = False
    check_decode: bool = False
    registry: CodeRegistry = field(default_factory=UnavailableRegistry, compare=False, repr=False)


def load_config_file(path: str | Path) -> dict:
    """Read and validate a YAML config file. Raises SetupError."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise SetupError(f"Cannot read config file {path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise SetupError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        data = {}
    try:
        jsonschema.validate(data, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise SetupError(f"Config file {path}: {where}: {e.message}") from None

    base = path.resolve().parent
    for key in PATH_KEYS:
        if key in data and not os.path.isabs(data[key]):
            data[key] = str(base / data[key])
    return data


def check_root_accessible(data_dir: Path):
    """A missing root is reported by the checks; an unstat-able one is fatal."""
    try:
        os.stat(data_dir)
    except (FileNotFoundError, NotADirectoryError):
        return
    except OSError as e:
        raise SetupError(f"Cannot access data directory {data_dir}: {e.strerror or e}") from e


def make_registry(data_dir: Path, bcs_cmd: Optional[str], timeout: float) -> CodeRegistry:
    command = find_bcs_command(data_dir, bcs_cmd)
    if command is None:
        return UnavailableRegistry("bcs command not found")
    return BcsCommandRegistry(command, timeout=timeout, cwd=Path(data_dir).resolve().parent)


def build_config(file_values: Optional[dict] = None, overrides: Optional[dict] = None,
                 registry: Optional[CodeRegistry] = None) -> ValidateConfig:
    """Merge defaults, config-file values and non-None overrides.

    `registry` replaces the command-backed registry (used by tests).
    """
    values: dict = {
        "data_dir": DEFAULT_DATA_DIR,
        "summary_limit": DEFAULT_SUMMARY_LIMIT,
        "abstract_limit": DEFAULT_ABSTRACT_LIMIT,
        "bcs_cmd": None,
        "registry_timeout": DEFAULT_TIMEOUT,
        "exit_on_error": False,
        "check_decode": False,
    }
    values.update(file_values or {})
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})

    for key in ("summary_limit", "abstract_limit"):
        if values[key] < 0:
            raise SetupError(f"{key.replace('_', '-')} must be >= 0 (got {values[key]})")
    if values["registry_timeout"] <= 0:
        raise SetupError(f"registry-timeout must be > 0 (got {values['registry_timeout']})")

    data_dir = Path(values["data_dir"]).absolute()
    if registry is None:
        registry = make_registry(data_dir, values["bcs_cmd"], values["registry_timeout"])

    return ValidateConfig(
        data_dir=data_dir,
        summary_limit=int(values["summary_limit"]),
        abstract_limit=int(values["abstract_limit"]),
        bcs_cmd=values["bcs_cmd"],
        registry_timeout=float(values["registry_timeout"]),
        exit_on_error=bool(values["exit_on_error"]),
        check_decode=bool(values["check_decode"]),
        registry=registry,
    )

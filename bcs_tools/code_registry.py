"""Client for the BCS code registry (the external `bcs` program).

The validator only needs two questions answered:
  decode(code)  -> canonical tier-file path for one BCS code
  list_codes()  -> every code registered in the corpus, registry order

`bcs codes` prints one `BCS<digits>:<shortname>:<title>` line per code and
`bcs decode CODE` prints the path of the rule file.
"""

from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from bcs_tools.corpus_model import is_valid_bcs_code

DEFAULT_TIMEOUT = 10.0

CODE_ARG_RE = re.compile(r"^(?:BCS)?(?P<digits>[0-9]+)$")


class RegistryError(Exception):
    pass


class RegistryUnavailableError(RegistryError):
    """The registry program is missing, timed out or failed to run."""


class NotFoundError(RegistryError):
    """The registry has no file for the requested code."""

    def __init__(self, code: str, detail: str = ""):
        msg = f"BCS code not found: {code}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)
        self.code = code


def normalize_code(code: str) -> str:
    """Accept `BCS0102` or `0102`; return `BCS0102`. Raises NotFoundError."""
    m = CODE_ARG_RE.match(code.strip())
    if not m:
        raise NotFoundError(code, "malformed code")
    return "BCS" + m.group("digits")


def parse_codes_output(text: str) -> list[str]:
    """Extract codes from `bcs codes` output, keeping order and repeats."""
    codes = []
    for line in text.splitlines():
        code, sep, _ = line.strip().partition(":")
        if sep and is_valid_bcs_code(code):
            codes.append(code)
    return codes


class CodeRegistry:
    """Interface consumed by the checks."""

    def decode(self, code: str) -> str:
        raise NotImplementedError

    def list_codes(self) -> list[str]:
        raise NotImplementedError


class BcsCommandRegistry(CodeRegistry):
    """Registry backed by running `bcs codes` / `bcs decode CODE`."""

    def __init__(self, command: str | Path, timeout: float = DEFAULT_TIMEOUT,
                 cwd: Optional[Path] = None):
        self.command = str(command)
        self.timeout = timeout
        self.cwd = cwd

    def _run(self, args: Sequence[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                [self.command, *args],
                capture_output=True, text=True, encoding="utf-8", errors="replace",
                timeout=self.timeout, cwd=self.cwd,
            )
        except subprocess.TimeoutExpired:
            raise RegistryUnavailableError(
                f"'{self.command} {' '.join(args)}' timed out after {self.timeout:g}s"
            ) from None
        except OSError as e:
            raise RegistryUnavailableError(f"cannot run '{self.command}': {e}") from e

    def list_codes(self) -> list[str]:
        res = self._run(["codes"])
        if res.returncode != 0:
            raise RegistryUnavailableError(
                f"'{self.command} codes' exited with status {res.returncode}: "
                f"{res.stderr.strip()[:200]}"
            )
        return parse_codes_output(res.stdout)

    def decode(self, code: str) -> str:
        code = normalize_code(code)
        res = self._run(["decode", code])
        path = res.stdout.strip().splitlines()[0].strip() if res.stdout.strip() else ""
        if res.returncode != 0 or not path:
            raise NotFoundError(code, res.stderr.strip()[:200])
        return path


class StaticCodeRegistry(CodeRegistry):
    """In-memory registry from canned (code, path) pairs; repeats are kept."""

    def __init__(self, entries: Sequence[tuple[str, str]] = ()):
        self.entries = list(entries)

    def list_codes(self) -> list[str]:
        return [code for code, _ in self.entries]

    def decode(self, code: str) -> str:
        code = normalize_code(code)
        for known, path in self.entries:
            if known == code:
                return path
        raise NotFoundError(code)


class UnavailableRegistry(CodeRegistry):
    """Stand-in used when no registry program could be located."""

    def __init__(self, reason: str = "bcs command not found"):
        self.reason = reason

    def list_codes(self) -> list[str]:
        raise RegistryUnavailableError(self.reason)

    def decode(self, code: str) -> str:
        raise RegistryUnavailableError(self.reason)


def find_bcs_command(data_dir: Path, explicit: Optional[str] = None) -> Optional[str]:
    """Locate the registry program.

    Order: explicit path, `bcs` next to the data directory, `bcs` on PATH.
    Returns None when nothing executable is found.
    """
    if explicit:
        return explicit
    sibling = Path(data_dir).resolve().parent / "bcs"
    if sibling.is_file() and shutil.which(str(sibling)):
        return str(sibling)
    return shutil.which("bcs")

"""Deterministic, lazy walk over the corpus tree.

Entries are yielded in lexicographic path order (a directory comes right
before its own contents). Symlinks are reported as plain entries and never
followed, so the walk cannot leave the corpus root.
"""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

from bcs_tools.corpus_model import README_NAME, TEMPLATES_DIR


class CorpusRootError(Exception):
    """The corpus root does not exist or is not a directory."""

    def __init__(self, root: Path):
        super().__init__(f"data directory not found at: {root}")
        self.root = root


@dataclass(frozen=True)
class CorpusEntry:
    path: Path
    rel: str                           # posix path relative to the root
    is_dir: bool
    depth: int                         # 1 = directly under the root


def relative_to_root(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def is_excluded(rel: str) -> bool:
    """True for README.md files and anything under a templates/ directory."""
    parts = rel.split("/")
    return parts[-1] == README_NAME or TEMPLATES_DIR in parts


def walk(
    root: Path,
    *,
    files: bool = True,
    dirs: bool = True,
    pattern: Optional[str] = None,
    max_depth: Optional[int] = None,
    skip_excluded: bool = False,
    onerror: Optional[Callable[[OSError], None]] = None,
) -> Iterator[CorpusEntry]:
    """Yield entries below `root` matching the filters.

    `pattern` is a glob matched against the basename. With `skip_excluded`
    the templates/ subtree and README.md files are left out entirely.
    Errors listing a directory are handed to `onerror` (as with os.walk) and
    the walk continues with the next entry.
    """
    root = Path(root)
    if not root.is_dir():
        raise CorpusRootError(root)
    yield from _walk_dir(root, root, 1, files, dirs, pattern, max_depth, skip_excluded, onerror)


def _walk_dir(root, directory, depth, files, dirs, pattern, max_depth, skip_excluded, onerror):
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        if onerror is not None:
            onerror(e)
        return

    for entry in entries:
        path = Path(entry.path)
        rel = relative_to_root(path, root)
        if skip_excluded and is_excluded(rel):
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as e:
            if onerror is not None:
                onerror(e)
            continue

        wanted = dirs if is_dir else files
        if wanted and (pattern is None or fnmatch.fnmatchcase(entry.name, pattern)):
            yield CorpusEntry(path, rel, is_dir, depth)

        if is_dir and (max_depth is None or depth < max_depth):
            yield from _walk_dir(root, path, depth + 1, files, dirs, pattern,
                                 max_depth, skip_excluded, onerror)


def file_size(path: Path, onerror: Optional[Callable[[OSError], None]] = None) -> Optional[int]:
    """Byte size of `path`; None after an error (reported to `onerror`)."""
    try:
        return os.stat(path).st_size
    except OSError as e:
        if onerror is not None:
            onerror(e)
        return None

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional

from backlist.config import DEFAULT_EXTENSIONS, DEFAULT_IGNORED_DIRS
from backlist.domain.errors import DirectoryNotFound
from backlist.repo.ignore import should_ignore_dir


def scan_frontend_files(
    root: Path,
    extensions: Optional[Iterable[str]] = None,
    ignored_dirs: Optional[Iterable[str]] = None,
    max_files: int | None = None,
) -> list[str]:
    """
    Return absolute paths (as strings) of frontend source files under root.

    The list is sorted so that downstream first-wins aggregation is
    reproducible from run to run.
    """
    root = Path(root)
    if not root.is_dir():
        raise DirectoryNotFound(root)

    exts = {e.lower() for e in (extensions or DEFAULT_EXTENSIONS)}
    ignored = set(ignored_dirs) if ignored_dirs is not None else set(DEFAULT_IGNORED_DIRS)

    out: list[str] = []
    for dirpath, dirs, files in _walk(root):
        root_p = Path(dirpath)

        # prune ignored dirs
        dirs[:] = [d for d in dirs if not should_ignore_dir(root_p / d, ignored)]

        for f in files:
            if Path(f).suffix.lower() in exts:
                out.append(str((root_p / f).resolve()))

    out.sort()
    if max_files is not None:
        out = out[:max_files]
    return out


def _walk(root: Path):
    # Separate helper to make unit testing easier (can be mocked)
    return os.walk(root)

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from backlist.config import DEFAULT_IGNORED_DIRS


def should_ignore_dir(dir_path: Path, ignored: Optional[Iterable[str]] = None) -> bool:
    names = DEFAULT_IGNORED_DIRS if ignored is None else ignored
    return dir_path.name in names

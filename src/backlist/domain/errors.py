from __future__ import annotations

from pathlib import Path
from typing import Optional


class BacklistError(Exception):
    """Base class for errors raised by the analyzer."""


class DirectoryNotFound(BacklistError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Source directory does not exist: {path}")


class ParseError(BacklistError):
    """A single file could not be parsed. Recovered per file by the pipeline."""

    def __init__(self, reason: str, path: Optional[str] = None):
        self.reason = reason
        self.path = path
        where = f"{path}: " if path else ""
        super().__init__(f"{where}{reason}")


class ContractsNotFound(BacklistError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Contracts file not found: {path}")


class UnsupportedContractsVersion(BacklistError):
    def __init__(self, found: object, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported contracts schema version {found!r} (expected {supported})"
        )

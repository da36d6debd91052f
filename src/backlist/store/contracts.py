from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from backlist.domain.errors import BacklistError, ContractsNotFound, UnsupportedContractsVersion
from backlist.domain.models import ContractsDocument, EndpointDescriptor


def build_document(root: Path | str, endpoints: Iterable[EndpointDescriptor]) -> ContractsDocument:
    return ContractsDocument(
        schema_version=ContractsStore.SCHEMA_VERSION,
        generated_at=datetime.now(timezone.utc),
        root=str(root),
        endpoints=list(endpoints),
    )


class ContractsStore:
    """JSON file holding one ContractsDocument (`.backlist/contracts.json` by default).

    The document is the cross-process form of the endpoint IR: generators read
    it instead of re-scanning the frontend.
    """

    SCHEMA_VERSION = 1

    def __init__(self, path: Path):
        self.path = Path(path)

    @staticmethod
    def default_path(cwd: Optional[Path] = None) -> Path:
        return (cwd or Path.cwd()) / ".backlist" / "contracts.json"

    def write(self, document: ContractsDocument) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = document.model_dump_json(by_alias=True, indent=2)
        self.path.write_text(text + "\n", encoding="utf-8")
        return self.path

    def read(self) -> ContractsDocument:
        if not self.path.is_file():
            raise ContractsNotFound(self.path)

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise BacklistError(f"Contracts file is not valid JSON: {self.path} ({e})") from e

        version = raw.get("schemaVersion") if isinstance(raw, dict) else None
        if version != self.SCHEMA_VERSION:
            raise UnsupportedContractsVersion(version, self.SCHEMA_VERSION)

        try:
            return ContractsDocument.model_validate(raw)
        except ValidationError as e:
            raise BacklistError(f"Contracts file is malformed: {self.path}\n{e}") from e


def write_contracts(path: Path, document: ContractsDocument) -> Path:
    return ContractsStore(path).write(document)


def read_contracts(path: Path) -> ContractsDocument:
    return ContractsStore(path).read()


def default_contracts_path(cwd: Optional[Path] = None) -> Path:
    return ContractsStore.default_path(cwd)

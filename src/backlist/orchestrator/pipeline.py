from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import structlog

from backlist.config import Settings, get_settings
from backlist.domain.errors import DirectoryNotFound, ParseError
from backlist.domain.models import EndpointDescriptor
from backlist.extractors.js.callsites import extract_calls_from_source
from backlist.extractors.js.parser import grammar_for_path
from backlist.ir.aggregate import aggregate
from backlist.ir.normalize import build_descriptor
from backlist.repo.scanner import scan_frontend_files

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FileAnalysis:
    path: str
    endpoints: list[EndpointDescriptor] = field(default_factory=list)
    call_sites: int = 0
    rejected: int = 0
    failed: bool = False


@dataclass(frozen=True)
class AnalyzeResult:
    root: str
    files_scanned: int
    files_failed: list[str]
    call_sites: int
    rejected: int
    duplicates: int
    endpoints: list[EndpointDescriptor]


def _default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


def analyze_file(path: str, max_file_bytes: Optional[int] = None) -> FileAnalysis:
    """
    Parse one file and return its admitted endpoints in call-site order.

    Pure function of the file's text. Parse and read failures are logged and
    yield an empty, failed result instead of raising.
    """
    fpath = Path(path)
    try:
        if max_file_bytes is not None and fpath.stat().st_size > max_file_bytes:
            logger.warning("file_skipped_too_large", file=path, limit=max_file_bytes)
            return FileAnalysis(path=path, failed=True)
        source = fpath.read_bytes().decode("utf-8", errors="ignore")
    except OSError as e:
        logger.warning("file_read_failed", file=path, error=str(e))
        return FileAnalysis(path=path, failed=True)

    try:
        observations = extract_calls_from_source(source, grammar_for_path(fpath))
    except ParseError as e:
        logger.warning("file_parse_failed", file=path, reason=e.reason)
        return FileAnalysis(path=path, failed=True)

    endpoints: list[EndpointDescriptor] = []
    rejected = 0
    for obs in observations:
        descriptor = build_descriptor(obs, source_file=path)
        if descriptor is None:
            rejected += 1
            continue
        endpoints.append(descriptor)

    return FileAnalysis(
        path=path,
        endpoints=endpoints,
        call_sites=len(observations),
        rejected=rejected,
    )


def run_analyze(
    root: Path,
    settings: Optional[Settings] = None,
    max_files: int | None = None,
    workers: int | None = None,
) -> AnalyzeResult:
    """
    Discover, parse and extract every frontend file under root, then fold the
    per-file results into the deduplicated endpoint list.

    Files are analyzed concurrently; the fold runs afterwards on this thread in
    sorted path order, so output does not depend on scheduling.
    """
    settings = settings or get_settings()
    root = Path(root).expanduser()
    if not root.is_dir():
        raise DirectoryNotFound(root)
    root = root.resolve()

    files = scan_frontend_files(
        root,
        extensions=settings.extensions,
        ignored_dirs=settings.ignored_dirs,
        max_files=max_files,
    )
    n_workers = workers or settings.workers or _default_workers()
    logger.info("scan_started", root=str(root), files=len(files), workers=n_workers)

    if n_workers <= 1 or len(files) <= 1:
        results = [analyze_file(p, settings.max_file_bytes) for p in files]
    else:
        with ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="backlist") as pool:
            # map() yields in input order regardless of completion order
            results = list(pool.map(lambda p: analyze_file(p, settings.max_file_bytes), files))

    endpoints = aggregate(r.endpoints for r in results)
    admitted = sum(len(r.endpoints) for r in results)

    result = AnalyzeResult(
        root=str(root),
        files_scanned=len(files),
        files_failed=[os.path.relpath(r.path, str(root)) for r in results if r.failed],
        call_sites=sum(r.call_sites for r in results),
        rejected=sum(r.rejected for r in results),
        duplicates=admitted - len(endpoints),
        endpoints=endpoints,
    )
    logger.info(
        "scan_finished",
        endpoints=len(result.endpoints),
        failed=len(result.files_failed),
        duplicates=result.duplicates,
    )
    return result


def analyze_frontend(
    root: Path,
    settings: Optional[Settings] = None,
    workers: int | None = None,
) -> list[EndpointDescriptor]:
    """In-process entry point: the ordered, deduplicated endpoint list for root."""
    return run_analyze(root, settings=settings, workers=workers).endpoints

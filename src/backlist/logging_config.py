from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import structlog


def _env_debug() -> bool:
    return os.environ.get("BACKLIST_DEBUG", "").lower() in ("1", "true", "yes", "on")


def configure_logging(debug: Optional[bool] = None) -> None:
    """Configure structlog for CLI use. Logs go to stderr so stdout stays parseable."""
    if debug is None:
        debug = _env_debug()
    level = logging.DEBUG if debug else logging.INFO
    # the interpreter-level stream, not whatever sys.stderr is swapped to at call time
    stream = sys.__stderr__ or sys.stderr

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )

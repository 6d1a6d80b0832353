from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured logging for the context_export package.

    The first call wins: later calls return the same logger without touching
    the handlers. Passing a filename after the import-time default therefore
    adds a file handler to the root logger instead of reconfiguring.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.

    Returns:
        A structlog logger instance configured for the context_export package.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if not _LOGGING_CONFIGURED:
        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
        logging.basicConfig(
            level=logging.INFO,
            handlers=handlers,
            format="%(message)s",
        )
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    if filename:
        root = logging.getLogger()
        target = os.path.abspath(filename)
        known = {getattr(h, "baseFilename", None) for h in root.handlers}
        if target not in known:
            handler = logging.FileHandler(target, encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(message)s"))
            root.addHandler(handler)

    return structlog.get_logger("context_export")


logger = setup_logging()

"""Append-only audit log for acctsweep runs.

Every component writes run-level events to the ``acctsweep.audit`` logger.
``configure_logging`` attaches an append-mode file handler with ISO-8601
timestamps, so each run adds to the same log and nothing is ever rewritten.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

AUDIT_LOGGER_NAME = "acctsweep.audit"

_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def get_audit_logger() -> logging.Logger:
    """Logger used for the audit trail."""
    return logging.getLogger(AUDIT_LOGGER_NAME)


def configure_logging(log_file: Path | None, level: int = logging.INFO) -> None:
    """Configure logging for the application.

    Audit lines are appended to ``log_file`` and echoed to stderr. If the
    file cannot be opened the run continues with console logging only.
    """
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    handlers: list[logging.Handler] = [console_handler]

    file_error: OSError | None = None
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as exc:
            file_error = exc
        else:
            file_handler.setFormatter(formatter)
            file_handler.setLevel(level)
            handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    if file_error is not None:
        get_audit_logger().warning(
            "Cannot open log file %s (%s); logging to console only", log_file, file_error
        )

"""Utility helpers for acctsweep."""
from __future__ import annotations

from .audit import AUDIT_LOGGER_NAME, configure_logging, get_audit_logger
from .commands import (
    CommandExecutionError,
    CommandResult,
    format_command,
    run_command,
    run_first_available,
    which,
)

__all__ = [
    # Audit log
    "AUDIT_LOGGER_NAME",
    "configure_logging",
    "get_audit_logger",
    # Commands
    "CommandExecutionError",
    "CommandResult",
    "format_command",
    "run_command",
    "run_first_available",
    "which",
]

"""Fixed paths and defaults used across acctsweep."""
from __future__ import annotations

from pathlib import Path

DEFAULT_MIN_UID = 1000

# Accounts that are never touched, on top of root and the operator.
DEFAULT_SAFELIST: tuple[str, ...] = ("skulllord", "dreadpirate", "sqluser")

DEFAULT_LOG_FILE = Path("/var/log/acctsweep.log")
ARCHIVE_ROOT = Path("/root/user_archives")

PASSWD_PATH = Path("/etc/passwd")
SUDOERS_PATH = Path("/etc/sudoers")
SUDOERS_DIR = Path("/etc/sudoers.d")

ARCHIVE_DIR_MODE = 0o700
ARCHIVE_FILE_MODE = 0o600

"""Production implementations of the host capability interfaces.

Each class wraps one family of system tools. They raise on failure
(``CommandExecutionError`` or ``OSError``); turning failures into step
outcomes is the mutator's job.
"""
from __future__ import annotations

import logging
import os
import pwd
import shutil
import tarfile
import tempfile
import time
from pathlib import Path
from typing import List, Optional

from ..config import (
    ARCHIVE_DIR_MODE,
    ARCHIVE_FILE_MODE,
    ARCHIVE_ROOT,
    PASSWD_PATH,
    SUDOERS_DIR,
    SUDOERS_PATH,
)
from ..utils.commands import CommandResult, run_command, run_first_available
from ..utils.parsers import parse_passwd
from ..types import Account

logger = logging.getLogger(__name__)

_STAGING_PREFIX = ".acctsweep-"

# Undecodable bytes survive a read and write round trip unchanged.
_TEXT_ERRORS = "surrogateescape"


class PasswdDirectoryReader:
    """Reads accounts from passwd(5), preserving file order."""

    def __init__(self, path: Path = PASSWD_PATH) -> None:
        self.path = path

    def list_accounts(self) -> List[Account]:
        accounts = parse_passwd(self.path.read_text(encoding="utf-8", errors=_TEXT_ERRORS))
        logger.debug("Read %d accounts from %s", len(accounts), self.path)
        return accounts


class CrontabJobStore:
    """Scheduled jobs managed through crontab(1)."""

    def has_jobs(self, username: str) -> bool:
        try:
            result = run_command(["crontab", "-l", "-u", username])
        except FileNotFoundError:
            logger.debug("crontab not installed; assuming no jobs for %s", username)
            return False
        return result.returncode == 0

    def remove_jobs(self, username: str) -> None:
        run_command(["crontab", "-r", "-u", username], check=True)


class PkillProcessSignaler:
    """Terminates processes by owner with pkill(1)."""

    def terminate_all(self, username: str) -> bool:
        # pkill exits 1 when nothing matched
        result = run_command(["pkill", "-u", username], check=True, ok_codes=(0, 1))
        return result.returncode == 0


class SudoersGrantStore:
    """sudoers(5) files, validated with visudo(8)."""

    def __init__(self, primary: Path = SUDOERS_PATH, fragments_dir: Path = SUDOERS_DIR) -> None:
        self._primary = primary
        self.fragments_dir = fragments_dir

    @property
    def primary(self) -> Path:
        return self._primary

    def fragments(self) -> List[Path]:
        if not self.fragments_dir.is_dir():
            return []
        return sorted(
            path
            for path in self.fragments_dir.iterdir()
            if path.is_file() and not path.name.startswith(_STAGING_PREFIX)
        )

    def read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8", errors=_TEXT_ERRORS)
        except FileNotFoundError:
            return None

    def _write_temp(self, path: Path, content: str) -> Path:
        fd, tmp = tempfile.mkstemp(prefix=_STAGING_PREFIX, dir=str(path.parent))
        try:
            os.write(fd, content.encode("utf-8", _TEXT_ERRORS))
            os.fsync(fd)
        finally:
            os.close(fd)
        try:
            os.chmod(tmp, path.stat().st_mode & 0o7777)
        except FileNotFoundError:
            os.chmod(tmp, 0o440)
        return Path(tmp)

    def write(self, path: Path, content: str) -> None:
        tmp = self._write_temp(path, content)
        os.replace(tmp, path)

    def backup(self, path: Path) -> Path:
        stamp = int(time.time())
        target = path.with_name(f"{path.name}.bak.{stamp}")
        counter = 1
        while target.exists():
            target = path.with_name(f"{path.name}.bak.{stamp}.{counter}")
            counter += 1
        shutil.copy2(path, target)
        logger.info("Backed up %s to %s", path, target)
        return target

    def stage(self, path: Path, content: str) -> Path:
        return self._write_temp(path, content)

    def validate(self, candidate: Path) -> CommandResult:
        return run_command(["visudo", "-c", "-f", str(candidate)])

    def commit(self, candidate: Path, path: Path) -> None:
        os.replace(candidate, path)

    def discard(self, candidate: Path) -> None:
        candidate.unlink(missing_ok=True)

    def restore(self, backup: Path, path: Path) -> None:
        tmp = self._write_temp(path, backup.read_text(encoding="utf-8", errors=_TEXT_ERRORS))
        os.replace(tmp, path)
        logger.info("Restored %s from %s", path, backup)


class UserAccountStore:
    """Account primitives from shadow-utils / adduser."""

    def exists(self, username: str) -> bool:
        try:
            pwd.getpwnam(username)
        except KeyError:
            return False
        return True

    def lock(self, username: str) -> None:
        run_command(["usermod", "-L", username], check=True)
        run_command(["usermod", "-e", "1", username], check=True)

    def delete(self, username: str, remove_home: bool) -> str:
        if remove_home:
            candidates = [["deluser", "--remove-home", username], ["userdel", "-r", username]]
        else:
            candidates = [["deluser", username], ["userdel", username]]
        result = run_first_available(candidates, check=True)
        return result.command[0]


class TarHomeArchiver:
    """Writes ``<root>/<user>.tar.gz`` archives readable by the owner only."""

    def __init__(self, root: Path = ARCHIVE_ROOT) -> None:
        self.root = root

    def destination(self, username: str) -> Path:
        return self.root / f"{username}.tar.gz"

    def home_exists(self, home: Optional[Path]) -> bool:
        return home is not None and home.is_dir()

    def archive(self, username: str, home: Path) -> Path:
        self.root.mkdir(mode=ARCHIVE_DIR_MODE, parents=True, exist_ok=True)
        os.chmod(self.root, ARCHIVE_DIR_MODE)
        dest = self.destination(username)
        fd = os.open(dest, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, ARCHIVE_FILE_MODE)
        with os.fdopen(fd, "wb") as handle:
            with tarfile.open(fileobj=handle, mode="w:gz") as tar:
                tar.add(str(home), arcname=home.name)
        os.chmod(dest, ARCHIVE_FILE_MODE)
        return dest

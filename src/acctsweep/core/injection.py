"""Dependency injection container for host capabilities.

This module provides a clean way to inject dependencies, making all
host-level operations mockable for testing. The real implementations
wrap actual system tools, while tests can inject ``MockHost``.

Usage:
    # Production code
    container = get_container()
    accounts = container.directory.list_accounts()

    # Test code
    host = MockHost()
    host.mock_account("bob", 2000)
    container = DependencyContainer.from_host(host)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from ..config import ARCHIVE_ROOT, SUDOERS_DIR, SUDOERS_PATH
from ..utils.commands import CommandExecutionError, CommandResult
from ..types import Account
from .host import (
    CrontabJobStore,
    PasswdDirectoryReader,
    PkillProcessSignaler,
    SudoersGrantStore,
    TarHomeArchiver,
    UserAccountStore,
)
from .interfaces import (
    AccountStore,
    DirectoryReader,
    HomeArchiver,
    PrivilegeGrantStore,
    ProcessSignaler,
    ScheduledJobStore,
)

logger = logging.getLogger(__name__)

# Global container instance (singleton pattern)
_container: Optional["DependencyContainer"] = None


class MockHost:
    """In-memory host implementing every capability interface.

    Configure state using the mock_* methods, then inject it with
    ``DependencyContainer.from_host``. Every mutating call is appended to
    ``journal`` so tests can assert that nothing happened.

    Example:
        host = MockHost()
        host.mock_account("bob", 2000, home=Path("/home/bob"))
        host.mock_crontab("bob")
        container = DependencyContainer.from_host(host)
    """

    def __init__(
        self,
        primary: Path = SUDOERS_PATH,
        fragments_dir: Path = SUDOERS_DIR,
        archive_root: Path = ARCHIVE_ROOT,
    ) -> None:
        self._accounts: Dict[str, Account] = {}
        self._primary = primary
        self._fragments_dir = fragments_dir
        self._archive_root = archive_root
        self.files: Dict[Path, str] = {}
        self.homes: Set[Path] = set()
        self.crontabs: Set[str] = set()
        self.processes: Dict[str, int] = {}
        self.locked: Set[str] = set()
        self.deleted: List[str] = []
        self.archives: Dict[str, Path] = {}
        self.unreadable: Dict[Path, Exception] = {}
        self.journal: List[str] = []
        self._failures: Dict[str, Exception] = {}
        self._validator: Callable[[str], bool] = lambda content: True
        self._stage_counter = 0
        self._backup_counter = 0
        self.directory_error: Optional[Exception] = None

    # -- configuration -------------------------------------------------

    def mock_account(
        self,
        username: str,
        uid: int,
        home: Optional[Path] = None,
        shell: str = "/bin/bash",
        home_exists: bool = True,
    ) -> Account:
        account = Account(username=username, uid=uid, home=home, shell=shell)
        self._accounts[username] = account
        if home is not None and home_exists:
            self.homes.add(home)
        return account

    def mock_crontab(self, username: str) -> None:
        self.crontabs.add(username)

    def mock_processes(self, username: str, count: int) -> None:
        self.processes[username] = count

    def mock_grant_file(self, path: Path, content: str) -> None:
        self.files[path] = content

    def mock_validator(self, validator: Callable[[str], bool]) -> None:
        """Decide which candidate contents pass syntax validation."""
        self._validator = validator

    def mock_failure(self, operation: str, error: Exception) -> None:
        """Make ``operation`` (a method name) raise ``error``."""
        self._failures[operation] = error

    def mock_unreadable(self, path: Path, error: Exception) -> None:
        """Make reading one grant file raise ``error``."""
        self.files.setdefault(path, "")
        self.unreadable[path] = error

    def forget_account(self, username: str) -> None:
        """Remove an account behind the snapshot's back."""
        self._accounts.pop(username, None)

    def _maybe_fail(self, operation: str) -> None:
        error = self._failures.get(operation)
        if error is not None:
            raise error

    def _record(self, entry: str) -> None:
        self.journal.append(entry)

    # -- DirectoryReader -----------------------------------------------

    def list_accounts(self) -> List[Account]:
        if self.directory_error is not None:
            raise self.directory_error
        return list(self._accounts.values())

    # -- ScheduledJobStore ---------------------------------------------

    def has_jobs(self, username: str) -> bool:
        return username in self.crontabs

    def remove_jobs(self, username: str) -> None:
        self._maybe_fail("remove_jobs")
        self._record(f"remove_jobs {username}")
        self.crontabs.discard(username)

    # -- ProcessSignaler -----------------------------------------------

    def terminate_all(self, username: str) -> bool:
        self._maybe_fail("terminate_all")
        self._record(f"terminate_all {username}")
        return self.processes.pop(username, 0) > 0

    # -- PrivilegeGrantStore -------------------------------------------

    @property
    def primary(self) -> Path:
        return self._primary

    def fragments(self) -> List[Path]:
        return sorted(p for p in self.files if p.parent == self._fragments_dir)

    def read(self, path: Path) -> Optional[str]:
        if path in self.unreadable:
            raise self.unreadable[path]
        return self.files.get(path)

    def write(self, path: Path, content: str) -> None:
        self._maybe_fail("write")
        self._record(f"write {path}")
        self.files[path] = content

    def backup(self, path: Path) -> Path:
        self._maybe_fail("backup")
        self._backup_counter += 1
        target = path.with_name(f"{path.name}.bak.{self._backup_counter}")
        self._record(f"backup {path} -> {target}")
        self.files[target] = self.files[path]
        return target

    def stage(self, path: Path, content: str) -> Path:
        self._stage_counter += 1
        candidate = path.with_name(f".acctsweep-{self._stage_counter}")
        self._record(f"stage {candidate}")
        self.files[candidate] = content
        return candidate

    def validate(self, candidate: Path) -> CommandResult:
        self._maybe_fail("validate")
        if self._validator(self.files.get(candidate, "")):
            return CommandResult(stdout=f"{candidate}: parsed OK", stderr="", returncode=0)
        return CommandResult(stdout="", stderr=f"{candidate}: syntax error", returncode=1)

    def commit(self, candidate: Path, path: Path) -> None:
        self._maybe_fail("commit")
        self._record(f"commit {candidate} -> {path}")
        self.files[path] = self.files.pop(candidate)

    def discard(self, candidate: Path) -> None:
        self._record(f"discard {candidate}")
        self.files.pop(candidate, None)

    def restore(self, backup: Path, path: Path) -> None:
        self._record(f"restore {backup} -> {path}")
        self.files[path] = self.files[backup]

    # -- AccountStore --------------------------------------------------

    def exists(self, username: str) -> bool:
        return username in self._accounts

    def lock(self, username: str) -> None:
        self._maybe_fail("lock")
        self._record(f"lock {username}")
        self.locked.add(username)

    def delete(self, username: str, remove_home: bool) -> str:
        self._maybe_fail("delete")
        if username not in self._accounts:
            raise CommandExecutionError(
                ["userdel", username], "", f"user '{username}' does not exist", 6
            )
        self._record(f"delete {username} remove_home={remove_home}")
        account = self._accounts.pop(username)
        self.deleted.append(username)
        if remove_home and account.home is not None:
            self.homes.discard(account.home)
        return "userdel"

    # -- HomeArchiver --------------------------------------------------

    def destination(self, username: str) -> Path:
        return self._archive_root / f"{username}.tar.gz"

    def home_exists(self, home: Optional[Path]) -> bool:
        return home is not None and home in self.homes

    def archive(self, username: str, home: Path) -> Path:
        self._maybe_fail("archive")
        dest = self.destination(username)
        self._record(f"archive {home} -> {dest}")
        self.archives[username] = dest
        return dest


@dataclass
class DependencyContainer:
    """Container for all injectable host capabilities.

    This is the central point for dependency injection. All code
    that touches the host should get it through this container.
    """

    directory: DirectoryReader
    jobs: ScheduledJobStore
    processes: ProcessSignaler
    grants: PrivilegeGrantStore
    accounts: AccountStore
    archiver: HomeArchiver

    @classmethod
    def from_host(cls, host: MockHost) -> "DependencyContainer":
        """Use one object for every capability."""
        return cls(
            directory=host,
            jobs=host,
            processes=host,
            grants=host,
            accounts=host,
            archiver=host,
        )

    @classmethod
    def real(cls) -> "DependencyContainer":
        return cls(
            directory=PasswdDirectoryReader(),
            jobs=CrontabJobStore(),
            processes=PkillProcessSignaler(),
            grants=SudoersGrantStore(),
            accounts=UserAccountStore(),
            archiver=TarHomeArchiver(),
        )


def get_container() -> DependencyContainer:
    """Get the global dependency container.

    Returns the singleton container instance, creating it with
    the real host implementations if it doesn't exist.
    """
    global _container
    if _container is None:
        logger.debug("Creating dependency container with real host capabilities")
        _container = DependencyContainer.real()
    return _container


def set_container(container: DependencyContainer) -> None:
    """Set the global dependency container.

    Used primarily for testing to inject mock dependencies.
    """
    global _container
    _container = container


def reset_container() -> None:
    """Reset the global container to None.

    Forces recreation with real host capabilities on next get_container().
    """
    global _container
    _container = None

"""Capability interfaces for every host interaction.

Architecture:
┌─────────────────────────────────────────────────────────────────┐
│                     PLANNING LAYER                              │
│  - Snapshots the account directory                              │
│  - Applies the safety policy (pure, no side effects)            │
└─────────────────────────────────────────────────────────────────┘
                              │
                              ▼
┌─────────────────────────────────────────────────────────────────┐
│                     MUTATION LAYER                              │
│  - Ordered per-account pipeline                                 │
│  - Talks to the host only through the protocols below           │
│  - Dry-run never calls a mutating method                        │
└─────────────────────────────────────────────────────────────────┘
                              │
                              ▼
┌─────────────────────────────────────────────────────────────────┐
│                     HOST CAPABILITIES                           │
│  - passwd, crontab, pkill, sudoers/visudo, usermod/userdel, tar │
│  - Real implementations in core.host, fakes in core.injection   │
└─────────────────────────────────────────────────────────────────┘
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Protocol

from ..utils.commands import CommandResult
from ..types import Account


class DirectoryReader(Protocol):
    """Enumerates the system account directory."""

    def list_accounts(self) -> List[Account]:
        """Return every account in directory order."""
        ...


class ScheduledJobStore(Protocol):
    """Per-user scheduled jobs (crontabs)."""

    def has_jobs(self, username: str) -> bool:
        ...

    def remove_jobs(self, username: str) -> None:
        """Remove all jobs for ``username``. Raises on failure."""
        ...


class ProcessSignaler(Protocol):
    """Delivers termination signals to processes by owner."""

    def terminate_all(self, username: str) -> bool:
        """Signal every process owned by ``username``.

        Returns:
            True if any process matched. Zero matching processes is not an
            error.
        """
        ...


class PrivilegeGrantStore(Protocol):
    """Read, validate and replace privilege-grant (sudoers) files.

    ``primary`` is the main grant file; ``fragments`` lists the drop-in
    files. Fragments are rewritten directly, the primary file only through
    ``stage`` / ``validate`` / ``commit`` with a ``backup`` taken first.
    """

    @property
    def primary(self) -> Path:
        ...

    def fragments(self) -> List[Path]:
        ...

    def read(self, path: Path) -> Optional[str]:
        """Return file contents, or None if the file is absent."""
        ...

    def write(self, path: Path, content: str) -> None:
        """Atomically replace ``path`` with ``content``, keeping its mode."""
        ...

    def backup(self, path: Path) -> Path:
        """Copy ``path`` to a new timestamped backup and return its exact path."""
        ...

    def stage(self, path: Path, content: str) -> Path:
        """Write a candidate replacement for ``path`` and return its location."""
        ...

    def validate(self, candidate: Path) -> CommandResult:
        """Syntax-check a candidate file. ``returncode == 0`` means valid."""
        ...

    def commit(self, candidate: Path, path: Path) -> None:
        """Atomically move a validated candidate over ``path``."""
        ...

    def discard(self, candidate: Path) -> None:
        ...

    def restore(self, backup: Path, path: Path) -> None:
        """Copy ``backup`` back over ``path``; the backup itself is kept."""
        ...


class AccountStore(Protocol):
    """Account lock and delete primitives."""

    def exists(self, username: str) -> bool:
        ...

    def lock(self, username: str) -> None:
        """Disable password login and expire the account."""
        ...

    def delete(self, username: str, remove_home: bool) -> str:
        """Delete the account and return the name of the tool used."""
        ...


class HomeArchiver(Protocol):
    """Creates per-user compressed archives of home directories."""

    def destination(self, username: str) -> Path:
        ...

    def home_exists(self, home: Optional[Path]) -> bool:
        ...

    def archive(self, username: str, home: Path) -> Path:
        """Archive ``home`` to ``destination(username)`` with owner-only mode."""
        ...

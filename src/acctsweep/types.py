"""Core value types for account decommissioning - no external dependencies."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

from .config import DEFAULT_MIN_UID, DEFAULT_SAFELIST


class Step(str, Enum):
    """Pipeline steps, declared in the order they are applied."""

    ARCHIVE = "Archive"
    REVOKE_SCHEDULED_JOBS = "RevokeScheduledJobs"
    TERMINATE_PROCESSES = "TerminateProcesses"
    STRIP_PRIVILEGE_GRANTS = "StripPrivilegeGrants"
    LOCK_OR_DELETE = "LockOrDelete"


class StepStatus(str, Enum):
    """Result status of a single pipeline step."""

    SKIPPED = "Skipped"
    DRY_RUN = "DryRun"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class ProtectionReason(str, Enum):
    """Why the safety policy kept an account."""

    ROOT = "root"
    SELF = "self"
    SAFELIST = "safelist"
    BELOW_MIN_UID = "below-min-uid"


@dataclass(frozen=True)
class Account:
    """Snapshot of one entry in the system account directory."""

    username: str
    uid: int
    home: Optional[Path] = None
    shell: str = ""


@dataclass(frozen=True)
class RunConfig:
    """Options for one run. Built once and never mutated."""

    execute: bool = False
    archive: bool = False
    remove_home: bool = False
    no_archive: bool = False
    force: bool = False
    min_uid: int = DEFAULT_MIN_UID
    lock_only: bool = False
    safelist: FrozenSet[str] = frozenset(DEFAULT_SAFELIST)

    @property
    def dry_run(self) -> bool:
        return not self.execute

    @property
    def archive_enabled(self) -> bool:
        """Archive homes when asked to, or implicitly for --remove-home."""
        return (self.archive or self.remove_home) and not self.no_archive

    @classmethod
    def from_args(cls, args: Any) -> "RunConfig":
        """Build a config from an argparse namespace."""
        safelist = set(DEFAULT_SAFELIST)
        safelist.update(getattr(args, "keep", None) or ())
        return cls(
            execute=args.execute,
            archive=args.archive,
            remove_home=args.remove_home,
            no_archive=args.no_archive,
            force=args.force,
            min_uid=args.min_uid,
            lock_only=args.lock_only,
            safelist=frozenset(safelist),
        )

    def describe(self) -> str:
        return (
            f"EXECUTE={int(self.execute)} ARCHIVE={int(self.archive_enabled)} "
            f"REMOVE_HOME={int(self.remove_home)} NO_ARCHIVE={int(self.no_archive)} "
            f"FORCE={int(self.force)} MIN_UID={self.min_uid} LOCK_ONLY={int(self.lock_only)}"
        )


@dataclass(frozen=True)
class Verdict:
    """Safety policy decision for one account."""

    username: str
    reason: Optional[ProtectionReason] = None

    @property
    def protected(self) -> bool:
        return self.reason is not None

    @property
    def eligible(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one pipeline step for one account."""

    username: str
    step: Step
    status: StepStatus
    detail: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "username": self.username,
            "step": self.step.value,
            "status": self.status.value,
            "detail": self.detail,
        }


@dataclass
class RunReport:
    """Everything a run produced besides log lines."""

    candidates: List[str] = field(default_factory=list)
    final_removal_list: List[str] = field(default_factory=list)
    outcomes: List[ActionOutcome] = field(default_factory=list)
    protected: Dict[str, ProtectionReason] = field(default_factory=dict)
    dry_run: bool = True
    exit_code: int = 0

    def outcomes_for(self, username: str) -> List[ActionOutcome]:
        return [o for o in self.outcomes if o.username == username]

    def failed_accounts(self) -> List[str]:
        failed = {o.username for o in self.outcomes if o.status is StepStatus.FAILED}
        return [name for name in self.final_removal_list if name in failed]

    def succeeded_accounts(self) -> List[str]:
        """Accounts with at least one applied step and no failed one."""
        applied = {o.username for o in self.outcomes if o.status is StepStatus.SUCCEEDED}
        failed = set(self.failed_accounts())
        return [name for name in self.final_removal_list if name in applied and name not in failed]

    def summary(self) -> Dict[str, int]:
        """Counts of protected, eligible, succeeded and failed accounts.

        A dry run applies nothing, so it never counts an account as succeeded.
        """
        failed = len(self.failed_accounts())
        statuses = Counter(o.status for o in self.outcomes)
        return {
            "protected": len(self.protected),
            "eligible": len(self.final_removal_list),
            "succeeded": len(self.succeeded_accounts()),
            "failed": failed,
            "steps_failed": statuses[StepStatus.FAILED],
            "steps_skipped": statuses[StepStatus.SKIPPED],
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "candidates": list(self.candidates),
            "protected": {name: reason.value for name, reason in self.protected.items()},
            "final_removal_list": list(self.final_removal_list),
            "outcomes": [o.to_dict() for o in self.outcomes],
            "summary": self.summary(),
            "exit_code": self.exit_code,
        }

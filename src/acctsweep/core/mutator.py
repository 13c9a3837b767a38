"""Per-account decommissioning pipeline.

Steps run in a fixed order and each is best-effort: a failure is captured
as a ``FAILED`` outcome and the next step still runs. Nothing raised by a
host capability escapes ``AccountMutator.process``.
"""
from __future__ import annotations

import logging
import traceback
from pathlib import Path
from typing import Callable, Dict, List, Tuple

from ..utils.audit import get_audit_logger
from ..utils.parsers import matching_lines, strip_user_lines
from ..types import Account, ActionOutcome, RunConfig, Step, StepStatus
from .injection import DependencyContainer

logger = logging.getLogger(__name__)
audit = get_audit_logger()

StepResult = Tuple[StepStatus, str]
StepHandler = Callable[[Account, RunConfig], StepResult]


class AccountMutator:
    """Applies the ordered side effects for one eligible account."""

    def __init__(self, container: DependencyContainer) -> None:
        self.container = container

    def _pipeline(self) -> List[Tuple[Step, StepHandler]]:
        return [
            (Step.ARCHIVE, self._archive),
            (Step.REVOKE_SCHEDULED_JOBS, self._revoke_jobs),
            (Step.TERMINATE_PROCESSES, self._terminate_processes),
            (Step.STRIP_PRIVILEGE_GRANTS, self._strip_grants),
            (Step.LOCK_OR_DELETE, self._lock_or_delete),
        ]

    def process(self, account: Account, config: RunConfig) -> List[ActionOutcome]:
        """Run every step for ``account`` and return one outcome per step."""
        username = account.username
        if not self.container.accounts.exists(username):
            audit.info("NOTICE: user %s does not exist on this system - skipping", username)
            return [
                ActionOutcome(username, step, StepStatus.SKIPPED, "account no longer exists")
                for step in Step
            ]

        audit.info("Targeting user: %s (UID=%d HOME=%s)", username, account.uid, account.home)
        outcomes: List[ActionOutcome] = []
        for step, handler in self._pipeline():
            outcome = self._run_step(step, handler, account, config)
            _log_outcome(outcome)
            outcomes.append(outcome)
        return outcomes

    def _run_step(
        self,
        step: Step,
        handler: StepHandler,
        account: Account,
        config: RunConfig,
    ) -> ActionOutcome:
        try:
            status, detail = handler(account, config)
        except Exception as exc:
            logger.debug("Traceback for %s/%s: %s", account.username, step.value, traceback.format_exc())
            status = StepStatus.FAILED
            detail = f"{type(exc).__name__}: {exc}"
        return ActionOutcome(account.username, step, status, detail)

    # -- steps ---------------------------------------------------------

    def _archive(self, account: Account, config: RunConfig) -> StepResult:
        if not config.archive_enabled:
            return StepStatus.SKIPPED, "archiving not requested"
        archiver = self.container.archiver
        home = account.home
        if home is None or not archiver.home_exists(home):
            return StepStatus.SKIPPED, f"no home directory at {home} (skipping archive)"
        dest = archiver.destination(account.username)
        if config.dry_run:
            return StepStatus.DRY_RUN, f"would archive {home} -> {dest}"
        archiver.archive(account.username, home)
        return StepStatus.SUCCEEDED, f"archived {home} -> {dest}"

    def _revoke_jobs(self, account: Account, config: RunConfig) -> StepResult:
        jobs = self.container.jobs
        if not jobs.has_jobs(account.username):
            return StepStatus.SKIPPED, "no scheduled jobs"
        if config.dry_run:
            return StepStatus.DRY_RUN, f"would remove crontab for {account.username}"
        jobs.remove_jobs(account.username)
        return StepStatus.SUCCEEDED, f"removed crontab for {account.username}"

    def _terminate_processes(self, account: Account, config: RunConfig) -> StepResult:
        if config.dry_run:
            return StepStatus.DRY_RUN, f"would kill processes for {account.username}"
        if self.container.processes.terminate_all(account.username):
            return StepStatus.SUCCEEDED, f"killed processes for {account.username}"
        return StepStatus.SUCCEEDED, f"no running processes for {account.username}"

    def _strip_grants(self, account: Account, config: RunConfig) -> StepResult:
        username = account.username
        grants = self.container.grants
        matched: Dict[Path, str] = {}
        unreadable: List[str] = []
        for path in [grants.primary, *grants.fragments()]:
            try:
                content = grants.read(path)
            except (OSError, UnicodeError) as exc:
                audit.error("ERROR: cannot read sudoers file %s: %s", path, exc)
                unreadable.append(f"{path}: cannot read ({exc})")
                continue
            if content is not None and any(matching_lines(content, username)):
                matched[path] = content

        if not matched:
            if unreadable:
                return StepStatus.FAILED, "; ".join(unreadable)
            return StepStatus.SKIPPED, "no privilege grants"
        names = ", ".join(str(path) for path in matched)
        if config.dry_run:
            detail = f"would remove sudoers entries for {username} from {names}"
            if unreadable:
                detail += f" (skipped {'; '.join(unreadable)})"
            return StepStatus.DRY_RUN, detail

        cleaned: List[str] = []
        errors: List[str] = list(unreadable)
        for path, content in matched.items():
            if path == grants.primary:
                continue
            try:
                grants.write(path, strip_user_lines(content, username))
            except OSError as exc:
                errors.append(f"{path}: {exc}")
            else:
                audit.info("Cleaned sudoers file: %s", path)
                cleaned.append(str(path))

        if grants.primary in matched:
            committed, message = self._rewrite_primary(username, matched[grants.primary])
            if committed:
                cleaned.append(str(grants.primary))
            else:
                errors.append(message)

        if errors:
            return StepStatus.FAILED, "; ".join(errors)
        return StepStatus.SUCCEEDED, f"removed sudoers entries from {', '.join(cleaned)}"

    def _rewrite_primary(self, username: str, content: str) -> Tuple[bool, str]:
        """Backup, stage, validate, then commit the primary grant file.

        The live file is only ever replaced by a candidate that passed
        validation. On any failure it is restored from the backup taken
        here, never from some other backup found on disk.
        """
        grants = self.container.grants
        primary = grants.primary
        backup = grants.backup(primary)
        candidate = grants.stage(primary, strip_user_lines(content, username))
        committed = False
        try:
            try:
                result = grants.validate(candidate)
                problem = "" if result.returncode == 0 else (
                    result.stderr or result.stdout or f"exit code {result.returncode}"
                )
            except Exception as exc:
                problem = f"{type(exc).__name__}: {exc}"
            if not problem:
                try:
                    grants.commit(candidate, primary)
                    committed = True
                except Exception as exc:
                    problem = f"commit failed: {exc}"
        finally:
            if not committed:
                grants.discard(candidate)

        if committed:
            audit.info("Removed %s entries from %s (validated, backup %s)", username, primary, backup)
            return True, ""

        grants.restore(backup, primary)
        audit.error(
            "ERROR: sudoers validation failed for %s; restored %s from %s (%s)",
            username,
            primary,
            backup,
            problem,
        )
        return False, f"{primary}: validation failed, restored from {backup} ({problem})"

    def _lock_or_delete(self, account: Account, config: RunConfig) -> StepResult:
        username = account.username
        accounts = self.container.accounts
        if config.lock_only:
            if config.dry_run:
                return StepStatus.DRY_RUN, f"would lock account {username} (disable password and expire)"
            accounts.lock(username)
            return StepStatus.SUCCEEDED, f"locked account {username}"

        if config.dry_run:
            return (
                StepStatus.DRY_RUN,
                f"would delete user {username} (remove-home={int(config.remove_home)})",
            )
        tool = accounts.delete(username, config.remove_home)
        home_note = "removed home" if config.remove_home else "home preserved"
        return StepStatus.SUCCEEDED, f"deleted user {username} with {tool} ({home_note})"


def _log_outcome(outcome: ActionOutcome) -> None:
    if outcome.status is StepStatus.FAILED:
        audit.error("ERROR %s for %s: %s", outcome.step.value, outcome.username, outcome.detail)
    elif outcome.status is StepStatus.DRY_RUN:
        audit.info("DRY: %s", outcome.detail)
    else:
        audit.info("%s %s: %s", outcome.step.value, outcome.status.value.lower(), outcome.detail)

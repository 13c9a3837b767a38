"""Run orchestration: snapshot, classify, plan and drive the mutator."""
from __future__ import annotations

import logging
from typing import List, Optional

from ..utils.audit import get_audit_logger
from ..types import Account, RunConfig, RunReport
from .injection import DependencyContainer, get_container
from .mutator import AccountMutator
from .policy import classify, describe_protection

logger = logging.getLogger(__name__)
audit = get_audit_logger()


class PlannerError(RuntimeError):
    """Raised when the run cannot be planned at all."""


class RunPlanner:
    """Builds the removal list and processes it one account at a time."""

    def __init__(
        self,
        running_user: str,
        container: Optional[DependencyContainer] = None,
        mutator: Optional[AccountMutator] = None,
    ) -> None:
        self.running_user = running_user
        self.container = container or get_container()
        self.mutator = mutator or AccountMutator(self.container)

    def snapshot(self) -> List[Account]:
        try:
            return self.container.directory.list_accounts()
        except Exception as exc:
            raise PlannerError(f"Cannot read account directory: {exc}") from exc

    def plan(self, accounts: List[Account], config: RunConfig, report: RunReport) -> List[Account]:
        """Classify ``accounts`` into ``report`` and return the eligible ones in order."""
        eligible: List[Account] = []
        for account in accounts:
            report.candidates.append(account.username)
            verdict = classify(account, config, self.running_user)
            if verdict.reason is not None:
                report.protected[account.username] = verdict.reason
                audit.info(describe_protection(verdict, account, config))
                continue
            eligible.append(account)
        report.final_removal_list = [account.username for account in eligible]
        return eligible

    def run(self, config: RunConfig) -> RunReport:
        report = RunReport(dry_run=config.dry_run)
        audit.info("Run started. %s", config.describe())
        audit.info("Safelist: %s", " ".join(sorted(config.safelist)))

        accounts = self.snapshot()
        eligible = self.plan(accounts, config, report)
        audit.info("Candidates: %s", " ".join(report.candidates))

        if not eligible:
            audit.info("No users to remove (after safelist/UID filters). Exiting.")
            return report

        audit.info(
            "Final removal list (%d): %s",
            len(report.final_removal_list),
            " ".join(report.final_removal_list),
        )
        if config.dry_run:
            audit.info("If you want to proceed, re-run with --execute. Current run: EXECUTE=0")

        for account in eligible:
            report.outcomes.extend(self.mutator.process(account, config))

        stats = report.summary()
        audit.info(
            "Run finished. protected=%d eligible=%d succeeded=%d failed=%d",
            stats["protected"],
            stats["eligible"],
            stats["succeeded"],
            stats["failed"],
        )
        for username in report.failed_accounts():
            logger.warning("Account %s finished with failed steps", username)
        return report

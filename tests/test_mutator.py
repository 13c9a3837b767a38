"""Unit tests for the per-account mutation pipeline."""
from __future__ import annotations

from pathlib import Path

import pytest

from acctsweep.core.injection import DependencyContainer, MockHost
from acctsweep.core.mutator import AccountMutator
from acctsweep.types import RunConfig, Step, StepStatus
from acctsweep.utils.commands import CommandExecutionError

SUDOERS = """\
Defaults env_reset
root    ALL=(ALL:ALL) ALL
bob     ALL=(ALL) NOPASSWD: ALL
# bob used to be an admin
"""


@pytest.fixture
def bob_host() -> MockHost:
    host = MockHost()
    host.mock_account("bob", 2000, home=Path("/home/bob"))
    host.mock_crontab("bob")
    host.mock_processes("bob", 3)
    host.mock_grant_file(host.primary, SUDOERS)
    host.mock_grant_file(Path("/etc/sudoers.d/90-bob"), "bob ALL=(ALL) /usr/bin/systemctl\n")
    return host


@pytest.fixture
def mutator(bob_host: MockHost) -> AccountMutator:
    return AccountMutator(DependencyContainer.from_host(bob_host))


def _statuses(outcomes):
    return {o.step: o.status for o in outcomes}


class TestPipelineOrder:
    def test_one_outcome_per_step_in_order(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        account = bob_host.list_accounts()[0]
        outcomes = mutator.process(account, RunConfig(execute=True, archive=True))

        assert [o.step for o in outcomes] == list(Step)
        assert all(o.username == "bob" for o in outcomes)

    def test_execute_applies_every_step(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        account = bob_host.list_accounts()[0]
        outcomes = mutator.process(account, RunConfig(execute=True, archive=True))

        assert set(_statuses(outcomes).values()) == {StepStatus.SUCCEEDED}
        assert bob_host.archives["bob"] == Path("/root/user_archives/bob.tar.gz")
        assert "bob" not in bob_host.crontabs
        assert bob_host.deleted == ["bob"]
        primary = bob_host.files[bob_host.primary]
        assert "NOPASSWD" not in primary
        assert "root    ALL=(ALL:ALL) ALL" in primary
        assert "# bob used to be an admin" in primary
        assert bob_host.files[Path("/etc/sudoers.d/90-bob")] == ""

    def test_failure_does_not_stop_later_steps(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_failure("archive", OSError("disk full"))
        bob_host.mock_failure("remove_jobs", CommandExecutionError(["crontab"], "", "denied", 1))
        account = bob_host.list_accounts()[0]

        outcomes = mutator.process(account, RunConfig(execute=True, archive=True))
        statuses = _statuses(outcomes)

        assert statuses[Step.ARCHIVE] is StepStatus.FAILED
        assert statuses[Step.REVOKE_SCHEDULED_JOBS] is StepStatus.FAILED
        assert statuses[Step.TERMINATE_PROCESSES] is StepStatus.SUCCEEDED
        assert statuses[Step.LOCK_OR_DELETE] is StepStatus.SUCCEEDED
        assert "disk full" in outcomes[0].detail
        assert bob_host.deleted == ["bob"]

    def test_unexpected_exception_becomes_failed_outcome(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_failure("delete", RuntimeError("boom"))
        account = bob_host.list_accounts()[0]

        outcomes = mutator.process(account, RunConfig(execute=True))

        assert outcomes[-1].status is StepStatus.FAILED
        assert outcomes[-1].detail == "RuntimeError: boom"


class TestDryRun:
    def test_dry_run_reports_intent_without_mutation(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        account = bob_host.list_accounts()[0]
        before = dict(bob_host.files)

        outcomes = mutator.process(account, RunConfig(archive=True))

        assert set(_statuses(outcomes).values()) == {StepStatus.DRY_RUN}
        assert bob_host.journal == []
        assert bob_host.files == before
        assert "/root/user_archives/bob.tar.gz" in outcomes[0].detail

    def test_dry_run_delete_mentions_remove_home(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        account = bob_host.list_accounts()[0]
        outcomes = mutator.process(account, RunConfig(remove_home=True, no_archive=True))
        assert outcomes[-1].detail == "would delete user bob (remove-home=1)"
        assert outcomes[0].status is StepStatus.SKIPPED

    def test_dry_run_lock_only(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        account = bob_host.list_accounts()[0]
        outcomes = mutator.process(account, RunConfig(lock_only=True))
        assert outcomes[-1].status is StepStatus.DRY_RUN
        assert "would lock" in outcomes[-1].detail
        assert bob_host.locked == set()


class TestSkips:
    def test_archive_not_requested(self, host: MockHost, container: DependencyContainer) -> None:
        account = host.mock_account("erin", 3000, home=Path("/home/erin"))
        outcomes = AccountMutator(container).process(account, RunConfig(execute=True))
        assert outcomes[0].status is StepStatus.SKIPPED
        assert host.archives == {}

    def test_missing_home_skips_archive(self, host: MockHost, container: DependencyContainer) -> None:
        account = host.mock_account("erin", 3000, home=Path("/home/erin"), home_exists=False)
        outcomes = AccountMutator(container).process(account, RunConfig(execute=True, archive=True))
        assert outcomes[0].status is StepStatus.SKIPPED
        assert "no home directory" in outcomes[0].detail

    def test_no_crontab_no_grants(self, host: MockHost, container: DependencyContainer) -> None:
        account = host.mock_account("erin", 3000)
        statuses = _statuses(AccountMutator(container).process(account, RunConfig(execute=True)))
        assert statuses[Step.REVOKE_SCHEDULED_JOBS] is StepStatus.SKIPPED
        assert statuses[Step.STRIP_PRIVILEGE_GRANTS] is StepStatus.SKIPPED

    def test_zero_processes_is_success(self, host: MockHost, container: DependencyContainer) -> None:
        account = host.mock_account("erin", 3000)
        outcomes = AccountMutator(container).process(account, RunConfig(execute=True))
        terminate = outcomes[2]
        assert terminate.status is StepStatus.SUCCEEDED
        assert "no running processes" in terminate.detail

    def test_vanished_account_is_skipped(self, host: MockHost, container: DependencyContainer) -> None:
        account = host.mock_account("erin", 3000)
        host.forget_account("erin")

        outcomes = AccountMutator(container).process(account, RunConfig(execute=True))

        assert len(outcomes) == len(Step)
        assert {o.status for o in outcomes} == {StepStatus.SKIPPED}
        assert host.journal == []


class TestPrivilegeGrants:
    def test_comment_only_mention_is_ignored(self, host: MockHost, container: DependencyContainer) -> None:
        host.mock_grant_file(host.primary, "root ALL=(ALL) ALL\n# erin asked for sudo\n")
        account = host.mock_account("erin", 3000)

        outcomes = AccountMutator(container).process(account, RunConfig(execute=True))

        assert outcomes[3].status is StepStatus.SKIPPED
        assert not any(entry.startswith("backup") for entry in host.journal)

    def test_validation_failure_restores_primary(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_validator(lambda content: False)
        account = bob_host.list_accounts()[0]

        outcomes = mutator.process(account, RunConfig(execute=True))
        grant = outcomes[3]

        assert grant.status is StepStatus.FAILED
        assert "validation failed" in grant.detail
        assert bob_host.files[bob_host.primary] == SUDOERS
        backup = bob_host.primary.with_name("sudoers.bak.1")
        assert bob_host.files[backup] == SUDOERS
        assert f"restore {backup} -> {bob_host.primary}" in bob_host.journal
        # the candidate never lingers and later steps still ran
        assert not any(p.name.startswith(".acctsweep-") for p in bob_host.files)
        assert outcomes[4].status is StepStatus.SUCCEEDED

    def test_restores_backup_from_this_step(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        stale = bob_host.primary.with_name("sudoers.bak.0")
        bob_host.mock_grant_file(stale, "stale content\n")
        bob_host.mock_validator(lambda content: False)
        account = bob_host.list_accounts()[0]

        mutator.process(account, RunConfig(execute=True))

        assert bob_host.files[bob_host.primary] == SUDOERS

    def test_validator_error_counts_as_failure(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_failure("validate", FileNotFoundError("visudo"))
        account = bob_host.list_accounts()[0]

        outcomes = mutator.process(account, RunConfig(execute=True))

        assert outcomes[3].status is StepStatus.FAILED
        assert bob_host.files[bob_host.primary] == SUDOERS

    def test_commit_failure_restores(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_failure("commit", OSError("read-only file system"))
        account = bob_host.list_accounts()[0]

        outcomes = mutator.process(account, RunConfig(execute=True))

        assert outcomes[3].status is StepStatus.FAILED
        assert "read-only" in outcomes[3].detail
        assert bob_host.files[bob_host.primary] == SUDOERS

    def test_fragment_failure_still_rewrites_primary(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_failure("write", PermissionError("fragment locked"))
        account = bob_host.list_accounts()[0]

        outcomes = mutator.process(account, RunConfig(execute=True))

        assert outcomes[3].status is StepStatus.FAILED
        assert "fragment locked" in outcomes[3].detail
        assert "NOPASSWD" not in bob_host.files[bob_host.primary]

    def test_backup_failure_leaves_primary_untouched(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_failure("backup", OSError("no space"))
        account = bob_host.list_accounts()[0]

        outcomes = mutator.process(account, RunConfig(execute=True))

        assert outcomes[3].status is StepStatus.FAILED
        assert bob_host.files[bob_host.primary] == SUDOERS
        assert not any(entry.startswith("stage") for entry in bob_host.journal)


class TestLockOrDelete:
    def test_lock_only_never_deletes(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        account = bob_host.list_accounts()[0]
        outcomes = mutator.process(account, RunConfig(execute=True, lock_only=True))

        assert outcomes[-1].status is StepStatus.SUCCEEDED
        assert outcomes[-1].detail == "locked account bob"
        assert bob_host.locked == {"bob"}
        assert bob_host.deleted == []

    def test_delete_reports_home_handling(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        account = bob_host.list_accounts()[0]
        outcomes = mutator.process(account, RunConfig(execute=True, remove_home=True))

        assert outcomes[-1].detail == "deleted user bob with userdel (removed home)"
        assert Path("/home/bob") not in bob_host.homes
        assert outcomes[0].status is StepStatus.SUCCEEDED


class TestUnreadableGrantFiles:
    LEGACY = Path("/etc/sudoers.d/50-legacy")

    def _undecodable(self) -> UnicodeDecodeError:
        return UnicodeDecodeError("utf-8", b"caf\xe9", 3, 4, "invalid continuation byte")

    def test_dry_run_still_reports_primary(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_unreadable(self.LEGACY, self._undecodable())
        account = bob_host.list_accounts()[0]

        grant = mutator.process(account, RunConfig())[3]

        assert grant.status is StepStatus.DRY_RUN
        assert str(bob_host.primary) in grant.detail
        assert str(self.LEGACY) in grant.detail

    def test_execute_still_cleans_primary(self, mutator: AccountMutator, bob_host: MockHost) -> None:
        bob_host.mock_unreadable(self.LEGACY, self._undecodable())
        account = bob_host.list_accounts()[0]

        grant = mutator.process(account, RunConfig(execute=True))[3]

        assert grant.status is StepStatus.FAILED
        assert str(self.LEGACY) in grant.detail
        assert "NOPASSWD" not in bob_host.files[bob_host.primary]
        assert bob_host.files[Path("/etc/sudoers.d/90-bob")] == ""

    def test_only_unreadable_files_is_a_failure(self, host: MockHost, container: DependencyContainer) -> None:
        host.mock_unreadable(self.LEGACY, PermissionError("denied"))
        account = host.mock_account("erin", 3000)

        grant = AccountMutator(container).process(account, RunConfig(execute=True))[3]

        assert grant.status is StepStatus.FAILED
        assert "denied" in grant.detail

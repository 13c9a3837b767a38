"""Safety policy deciding which accounts may be touched."""
from __future__ import annotations

from ..types import Account, ProtectionReason, RunConfig, Verdict

ROOT_USERNAME = "root"


def classify(account: Account, config: RunConfig, running_user: str) -> Verdict:
    """Return whether ``account`` is protected and why.

    Checks run in a fixed order and the first match wins: root, the
    operator running the tool, the safelist, then the UID floor (skipped
    with ``force``). Pure function; touches nothing on the host.
    """
    name = account.username
    if name == ROOT_USERNAME:
        return Verdict(name, ProtectionReason.ROOT)
    if name == running_user:
        return Verdict(name, ProtectionReason.SELF)
    if name in config.safelist:
        return Verdict(name, ProtectionReason.SAFELIST)
    if not config.force and account.uid < config.min_uid:
        return Verdict(name, ProtectionReason.BELOW_MIN_UID)
    return Verdict(name)


def describe_protection(verdict: Verdict, account: Account, config: RunConfig) -> str:
    """Audit-log wording for a protected account."""
    reason = verdict.reason
    if reason is ProtectionReason.ROOT:
        return "SKIP: refusing to remove root"
    if reason is ProtectionReason.SELF:
        return f"SKIP: refusing to remove the user running the tool ({account.username})"
    if reason is ProtectionReason.SAFELIST:
        return f"Keeping safelisted user: {account.username}"
    return (
        f"SKIP: {account.username} UID={account.uid} < MIN_UID={config.min_uid} "
        "(likely system account) - use --force to override"
    )

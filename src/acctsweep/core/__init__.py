"""Core components for acctsweep.

This module provides:
- Value types shared by every layer
- The safety policy (pure account classification)
- The per-account mutation pipeline
- The run planner that ties them together
- Capability interfaces and dependency injection for host access
"""

from .injection import DependencyContainer, MockHost, get_container, reset_container, set_container
from .interfaces import (
    AccountStore,
    DirectoryReader,
    HomeArchiver,
    PrivilegeGrantStore,
    ProcessSignaler,
    ScheduledJobStore,
)
from .mutator import AccountMutator
from .planner import PlannerError, RunPlanner
from .policy import classify
from ..types import (
    Account,
    ActionOutcome,
    ProtectionReason,
    RunConfig,
    RunReport,
    Step,
    StepStatus,
    Verdict,
)

__all__ = [
    # Types
    "Account",
    "ActionOutcome",
    "ProtectionReason",
    "RunConfig",
    "RunReport",
    "Step",
    "StepStatus",
    "Verdict",
    # Policy, pipeline, planner
    "classify",
    "AccountMutator",
    "RunPlanner",
    "PlannerError",
    # Interfaces
    "AccountStore",
    "DirectoryReader",
    "HomeArchiver",
    "PrivilegeGrantStore",
    "ProcessSignaler",
    "ScheduledJobStore",
    # Dependency Injection
    "DependencyContainer",
    "MockHost",
    "get_container",
    "set_container",
    "reset_container",
]

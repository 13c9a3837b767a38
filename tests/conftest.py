"""Pytest configuration and shared fixtures for acctsweep tests."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

# Add src/ to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from acctsweep.core.injection import DependencyContainer, MockHost, reset_container  # noqa: E402
from acctsweep.types import RunConfig  # noqa: E402

RUNNING_USER = "runner"

SUDOERS_BASE = """\
# /etc/sudoers
Defaults env_reset
root    ALL=(ALL:ALL) ALL
%sudo   ALL=(ALL:ALL) ALL
"""


# ==============================================================================
# Host fixtures
# ==============================================================================

@pytest.fixture
def host() -> MockHost:
    """Empty in-memory host."""
    return MockHost()


@pytest.fixture
def scenario_host() -> MockHost:
    """Directory used by the planning scenarios.

    root(0), svc(200), runner(500, operator), alice(1500, safelisted),
    bob(2000), in that order, like a passwd file sorted by UID.
    """
    mock = MockHost()
    mock.mock_account("root", 0, home=Path("/root"))
    mock.mock_account("svc", 200, home=Path("/var/lib/svc"), shell="/usr/sbin/nologin")
    mock.mock_account(RUNNING_USER, 500, home=Path("/home/runner"))
    mock.mock_account("alice", 1500, home=Path("/home/alice"))
    mock.mock_account("bob", 2000, home=Path("/home/bob"))
    mock.mock_grant_file(mock.primary, SUDOERS_BASE)
    return mock


@pytest.fixture
def container(host: MockHost) -> DependencyContainer:
    return DependencyContainer.from_host(host)


@pytest.fixture
def scenario_container(scenario_host: MockHost) -> DependencyContainer:
    return DependencyContainer.from_host(scenario_host)


@pytest.fixture
def make_config() -> Callable[..., RunConfig]:
    """Build a RunConfig with an explicit safelist of just ``alice``."""

    def _make(**overrides) -> RunConfig:
        overrides.setdefault("safelist", frozenset({"alice"}))
        return RunConfig(**overrides)

    return _make


@pytest.fixture(autouse=True)
def _reset_global_container():
    """Never leak an injected container between tests."""
    yield
    reset_container()

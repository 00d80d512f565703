"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest
from molectl.core.oplog import OperationLog
from molectl.policy import ProtectionPolicy


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point HOME and XDG_CONFIG_HOME at a temporary location.

    Tests never read or write the real user's configuration, whitelist or
    operation log.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    yield home


@pytest.fixture
def policy() -> ProtectionPolicy:
    """Policy with only the built-in rule."""
    return ProtectionPolicy()


@pytest.fixture
def oplog(tmp_path: Path) -> OperationLog:
    """Operation log in a temporary directory."""
    return OperationLog(tmp_path / "logs" / "operations.log")

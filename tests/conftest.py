"""
Shared pytest fixtures and configuration for e2ekit tests.

This module provides:
- Environment-variable and working-directory isolation for EnvConfig
- A fresh RecordingHandle per test
- Small feature fixtures reused across the engine tests
"""

import os
import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure e2ekit package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from e2ekit import features
from e2ekit.features import Feature
from e2ekit.testing import RecordingHandle, marker_step


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """
    Keep EnvConfig deterministic.

    Removes E2E_* variables inherited from the shell and runs each test in
    an empty directory so no stray .env file is picked up.
    """
    for key in list(os.environ):
        if key.startswith("E2E_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


# =============================================================================
# Handles and Features
# =============================================================================


@pytest.fixture
def handle() -> RecordingHandle:
    """A fresh recording handle."""
    return RecordingHandle(name="e2e")


@pytest.fixture
def single_step_feature() -> Feature:
    """Feature "test-feat" with one assessment appending "test-feat"."""
    return features.new("test-feat").assess("assess", marker_step("test-feat")).feature()

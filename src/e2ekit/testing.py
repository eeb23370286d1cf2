"""Test Harness: utilities for testing suites built on e2ekit.

Manifesto:
Exercising an environment needs a test handle that records what the engine
reported, and hooks/steps that leave a visible trail. This module provides
both, so a test reads as "register, run, compare the trail".

ARCHITECTURE
────────────
::

    Test doubles:
      RecordingHandle           → TestHandle that records logs and failures
      FatalTestError            → raised by RecordingHandle.fatal()

    Trail helpers (accumulate inside the context, never in closures):
      marker_step(marker)       → step appending marker to ctx["markers"]
      marker_env_hook(marker)   → setup/finish hook doing the same
      marker_test_hook(marker)  → before/after-test hook doing the same
      marker_feature_hook(marker)
      markers(ctx)              → the trail as a list

    Assertion helpers:
      assert_markers(ctx, expected)
      assert_no_failures(handle)

Example::

    from e2ekit import env, features
    from e2ekit.testing import RecordingHandle, marker_step, marker_test_hook, markers

    def test_pipeline_order():
        testenv = env.new().before_each_test(marker_test_hook("before"))
        feat = features.new("f").assess("a", marker_step("mid")).feature()
        ctx = testenv.test(RecordingHandle(), feat)
        assert markers(ctx) == ["before", "mid"]

Tags:
    e2ekit, testing, harness, assertions, doubles

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field

from e2ekit.core.context import RunContext
from e2ekit.core.protocols import TestHandle
from e2ekit.env.actions import EnvFunc, FeatureFunc, TestFunc
from e2ekit.envconf.config import EnvConfig
from e2ekit.features.feature import Feature, StepFunc

MARKERS_KEY = "markers"


class FatalTestError(BaseException):
    """Raised by :meth:`RecordingHandle.fatal`.

    Derives from ``BaseException`` (like pytest's own outcome exceptions)
    so that ``except Exception`` in hook error handling never swallows it.
    """

    def __init__(self, handle_name: str, message: str):
        self.handle_name = handle_name
        self.message = message
        super().__init__(f"{handle_name}: {message}")


@dataclass
class RecordingHandle:
    """TestHandle that records everything reported to it."""

    name: str = "test"
    logs: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    fatals: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errors or self.fatals)

    def log(self, message: str) -> None:
        self.logs.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def fatal(self, message: str) -> None:
        self.fatals.append(message)
        raise FatalTestError(self.name, message)


# ---------------------------------------------------------------------------
# Trail helpers
# ---------------------------------------------------------------------------


def markers(ctx: RunContext, key: str = MARKERS_KEY) -> list[str]:
    """Return the trail accumulated under *key* (empty if none)."""
    return list(ctx.value(key, ()))


def marker_step(marker: str, key: str = MARKERS_KEY) -> StepFunc:
    def step(ctx: RunContext, handle: TestHandle, cfg: EnvConfig) -> RunContext:
        return ctx.appended(key, marker)

    step.__qualname__ = f"marker_step[{marker}]"
    return step


def marker_env_hook(marker: str, key: str = MARKERS_KEY) -> EnvFunc:
    def hook(ctx: RunContext, cfg: EnvConfig) -> RunContext:
        return ctx.appended(key, marker)

    hook.__qualname__ = f"marker_env_hook[{marker}]"
    return hook


def marker_test_hook(marker: str, key: str = MARKERS_KEY) -> TestFunc:
    def hook(ctx: RunContext, cfg: EnvConfig, handle: TestHandle) -> RunContext:
        return ctx.appended(key, marker)

    hook.__qualname__ = f"marker_test_hook[{marker}]"
    return hook


def marker_feature_hook(marker: str, key: str = MARKERS_KEY) -> FeatureFunc:
    def hook(ctx: RunContext, cfg: EnvConfig, feature: Feature) -> RunContext:
        return ctx.appended(key, marker)

    hook.__qualname__ = f"marker_feature_hook[{marker}]"
    return hook


# ---------------------------------------------------------------------------
# Assertion helpers
# ---------------------------------------------------------------------------


def assert_markers(ctx: RunContext, expected: list[str], key: str = MARKERS_KEY) -> None:
    actual = markers(ctx, key)
    assert actual == expected, f"Expected markers {expected}, got {actual}"


def assert_no_failures(handle: RecordingHandle) -> None:
    assert not handle.failed, f"Unexpected failures: errors={handle.errors} fatals={handle.fatals}"


__all__ = [
    "FatalTestError",
    "MARKERS_KEY",
    "RecordingHandle",
    "assert_markers",
    "assert_no_failures",
    "marker_env_hook",
    "marker_feature_hook",
    "marker_step",
    "marker_test_hook",
    "markers",
]

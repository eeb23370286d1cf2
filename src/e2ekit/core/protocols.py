"""
Protocols consumed by the engine.

The engine never imports a test framework. It talks to whatever drives the
run through :class:`TestHandle`: log a line, record a failure and carry on,
or fail fatally. A pytest test passes a small adapter around its own
reporting; :class:`e2ekit.testing.RecordingHandle` is one.

Guardrails:
    ❌ DON'T: Catch the exception ``fatal`` raises inside a hook
    ✅ DO: Let it propagate so the run stops where the caller asked

Tags:
    protocol, test-handle, e2ekit, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TestHandle(Protocol):
    """Reporting surface of the test that drives a run.

    ``error`` records a failure and returns. ``fatal`` records a failure
    and is expected not to return; implementations raise.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def failed(self) -> bool:
        ...

    def log(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def fatal(self, message: str) -> None:
        ...


__all__ = ["TestHandle"]

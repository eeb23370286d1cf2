"""
Run Context - the state value threaded through every hook and step.

Each hook receives the current :class:`RunContext` and returns the context
for the next hook. A context is never mutated in place: every ``with_*``
method returns a NEW context and the receiver stays as it was, so a hook
that wants to carry state forward has to hand back a new value.

Design Principles:
- Immutable: ``values`` is a read-only mapping, updates produce copies
- Typed: hooks read named values instead of recovering types from a bag
- Cancellation and deadline travel with the context; nothing enforces them
  except the hooks that choose to look

Example:
    from e2ekit.core.context import RunContext

    def create_namespace(ctx: RunContext, cfg) -> RunContext:
        ns = provision(cfg.namespace)
        return ctx.with_value("namespace", ns).appended("events", "ns-created")

Tags:
    e2ekit, context, shared-state, immutable-snapshot

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from types import MappingProxyType
from typing import Any


def _freeze(values: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class RunContext:
    """
    Immutable context that flows through hooks and feature steps.

    Attributes:
        values: Read-only bindings carried between hooks
        deadline: Optional point in time after which the run should stop
        cancel_event: Optional cancellation signal shared by derived contexts
        run_id: Identifier used to correlate log records of one run
    """

    values: Mapping[str, Any] = field(default_factory=lambda: _freeze(None))
    deadline: datetime | None = None
    cancel_event: threading.Event | None = field(default=None, compare=False)
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if not isinstance(self.values, MappingProxyType):
            object.__setattr__(self, "values", _freeze(self.values))
        if self.deadline is not None and self.deadline.tzinfo is None:
            raise ValueError("RunContext deadline must be timezone-aware")

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def background(cls, **values: Any) -> RunContext:
        """Create a root context with no deadline and no cancellation."""
        return cls(values=values)

    # =========================================================================
    # Accessors (read-only)
    # =========================================================================

    def value(self, key: str, default: Any = None) -> Any:
        """Get a bound value."""
        return self.values.get(key, default)

    def has(self, key: str) -> bool:
        return key in self.values

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and datetime.now(UTC) >= self.deadline

    @property
    def done(self) -> bool:
        """True once the context was cancelled or its deadline passed."""
        return self.cancelled or self.expired

    @property
    def remaining(self) -> timedelta | None:
        """Time left until the deadline, ``None`` without a deadline."""
        if self.deadline is None:
            return None
        return max(self.deadline - datetime.now(UTC), timedelta(0))

    # =========================================================================
    # Derivation (returns new context)
    # =========================================================================

    def with_value(self, key: str, value: Any) -> RunContext:
        """Create new context with one binding added or replaced."""
        return self._copy_with(values={**self.values, key: value})

    def with_values(self, updates: Mapping[str, Any]) -> RunContext:
        """Create new context with bindings merged."""
        return self._copy_with(values={**self.values, **updates})

    def appended(self, key: str, *items: Any) -> RunContext:
        """
        Create new context whose ``key`` holds a new list extended by *items*.

        The list stored in the receiver is left untouched, so an earlier
        context keeps seeing the sequence as it was.
        """
        current = self.values.get(key, ())
        return self.with_value(key, [*current, *items])

    def with_deadline(self, deadline: datetime) -> RunContext:
        """Create new context with a deadline; an earlier existing one wins."""
        if self.deadline is not None and self.deadline <= deadline:
            return self
        return self._copy_with(deadline=deadline)

    def with_timeout(self, seconds: float) -> RunContext:
        return self.with_deadline(datetime.now(UTC) + timedelta(seconds=seconds))

    def with_cancel(self) -> RunContext:
        """Create new context carrying a cancellation event.

        Contexts derived from the result share the event, so cancelling
        any of them is observed by all.
        """
        if self.cancel_event is not None:
            return self
        return self._copy_with(cancel_event=threading.Event())

    def cancel(self) -> None:
        """Signal cancellation. No-op for contexts without an event."""
        if self.cancel_event is not None:
            self.cancel_event.set()

    def _copy_with(self, **overrides: Any) -> RunContext:
        return RunContext(
            values=overrides.get("values", self.values),
            deadline=overrides.get("deadline", self.deadline),
            cancel_event=overrides.get("cancel_event", self.cancel_event),
            run_id=overrides.get("run_id", self.run_id),
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging."""
        return {
            "run_id": self.run_id,
            "keys": sorted(self.values.keys()),
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "cancelled": self.cancelled,
        }

    def __repr__(self) -> str:
        return f"RunContext(run_id={self.run_id!r}, keys={sorted(self.values.keys())})"


def background() -> RunContext:
    """Module-level shortcut for :meth:`RunContext.background`."""
    return RunContext.background()


__all__ = ["RunContext", "background"]

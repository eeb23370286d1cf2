"""Features: named, ordered collections of test steps.

Manifesto:
A feature is the unit of selection: the environment's filter decides per
feature whether it runs, and before/after-feature hooks wrap each feature
that does. Inside a feature, assessments are the named test steps; setup
and teardown steps bracket them. Authors build a feature with the fluent
:class:`FeatureBuilder` and freeze it with :meth:`FeatureBuilder.feature`.

ARCHITECTURE
────────────
::

    new(name) → FeatureBuilder
      ├── .setup(fn)                ── level SETUP, runs first
      ├── .assess(name, fn)         ── level ASSESS, subject to the assessment filter
      ├── .teardown(fn)             ── level TEARDOWN, runs last
      ├── .with_label(key, value)
      └── .feature()                → Feature (frozen snapshot)

    Feature
      ├── .steps / .assessments     ── tuples, never mutated
      ├── .labels                   ── this object's own dict
      └── .copy()                   ── isolated copy handed to hooks

Example::

    from e2ekit import features

    feat = (
        features.new("pod-lifecycle")
        .with_label("area", "workloads")
        .assess("pod is scheduled", check_scheduled)
        .assess("pod becomes ready", check_ready)
        .feature()
    )

Tags:
    e2ekit, features, assessments, builder

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from e2ekit.core.context import RunContext
    from e2ekit.core.protocols import TestHandle
    from e2ekit.envconf.config import EnvConfig

StepFunc: TypeAlias = Callable[["RunContext", "TestHandle", "EnvConfig"], "RunContext | None"]


class Level(str, Enum):
    """Where a step sits inside its feature."""

    SETUP = "setup"
    ASSESS = "assess"
    TEARDOWN = "teardown"


def _clean_name(kind: str, name: Any) -> str:
    if not isinstance(name, str):
        raise TypeError(f"{kind} name must be a string (type={type(name).__name__})")
    cleaned = name.strip()
    if not cleaned:
        raise ValueError(f"{kind} name cannot be empty")
    return cleaned


@dataclass(frozen=True)
class Step:
    """A single named step of a feature.

    The step function receives ``(ctx, handle, config)`` and returns the
    context for the next step. It has no error return: a failing step
    reports through the test handle.
    """

    name: str
    level: Level
    fn: StepFunc

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean_name("Step", self.name))
        object.__setattr__(self, "level", Level(self.level))
        if not callable(self.fn):
            raise TypeError(f"Step fn must be callable (type={type(self.fn).__name__})")

    @property
    def is_assessment(self) -> bool:
        return self.level == Level.ASSESS


@dataclass(frozen=True)
class Feature:
    """Frozen description of a feature.

    ``steps`` is a tuple, so the step sequence cannot change after the
    builder froze it. ``labels`` is a plain dict owned by this object;
    the environment hands every hook call its own :meth:`copy`, so a write
    one hook makes is seen by no other hook.
    """

    name: str
    steps: tuple[Step, ...] = ()
    # Hash on name and steps only; the label dict is not hashable.
    labels: dict[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean_name("Feature", self.name))
        object.__setattr__(self, "steps", tuple(self.steps))
        for step in self.steps:
            if not isinstance(step, Step):
                raise TypeError(
                    f"Feature {self.name} step must be a Step (type={type(step).__name__})"
                )

    @property
    def assessments(self) -> tuple[Step, ...]:
        return self.steps_at(Level.ASSESS)

    def steps_at(self, level: Level) -> tuple[Step, ...]:
        """Steps of one level, in declared order."""
        return tuple(s for s in self.steps if s.level == level)

    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    def copy(self) -> Feature:
        """Return a copy with its own label dict and the same steps."""
        return Feature(name=self.name, steps=self.steps, labels=dict(self.labels))

    def __repr__(self) -> str:
        return f"Feature(name={self.name!r}, steps={self.step_names()}, labels={self.labels!r})"


class FeatureBuilder:
    """Accumulates steps in call order; :meth:`feature` freezes them."""

    def __init__(self, name: str) -> None:
        self._name = _clean_name("Feature", name)
        self._steps: list[Step] = []
        self._labels: dict[str, str] = {}

    @property
    def name(self) -> str:
        return self._name

    def with_label(self, key: str, value: str) -> FeatureBuilder:
        self._labels[_clean_name("Label", key)] = str(value)
        return self

    def with_labels(self, labels: Mapping[str, str]) -> FeatureBuilder:
        for key, value in labels.items():
            self.with_label(key, value)
        return self

    def setup(self, fn: StepFunc, name: str = "setup") -> FeatureBuilder:
        self._steps.append(Step(name=name, level=Level.SETUP, fn=fn))
        return self

    def assess(self, name: str, fn: StepFunc) -> FeatureBuilder:
        """Append a named assessment."""
        self._steps.append(Step(name=name, level=Level.ASSESS, fn=fn))
        return self

    def teardown(self, fn: StepFunc, name: str = "teardown") -> FeatureBuilder:
        self._steps.append(Step(name=name, level=Level.TEARDOWN, fn=fn))
        return self

    def feature(self) -> Feature:
        """Freeze the builder into an immutable snapshot.

        Later builder calls do not affect features already returned.
        """
        return Feature(name=self._name, steps=tuple(self._steps), labels=dict(self._labels))


def new(name: str) -> FeatureBuilder:
    """Start building a feature called *name*."""
    return FeatureBuilder(name)


__all__ = ["Feature", "FeatureBuilder", "Level", "Step", "StepFunc", "new"]

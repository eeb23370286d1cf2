"""Actions: hooks tagged with the lifecycle role they run at.

Manifesto:
The environment runs hooks at six lifecycle points. Each hook is stored
as an :class:`Action` carrying its role, and the :class:`ActionRegistry`
keeps one ordered bucket per role. Order inside a bucket is registration
order and nothing ever reorders it.

ARCHITECTURE
────────────
::

    ActionRole                 HookKind      callback shape
    ──────────                 ────────      ──────────────
    SETUP, FINISH              ENV           (ctx, cfg)          -> ctx
    BEFORE_TEST, AFTER_TEST    TEST          (ctx, cfg, handle)  -> ctx
    BEFORE_FEATURE,
    AFTER_FEATURE              FEATURE       (ctx, cfg, feature) -> ctx

    ActionRegistry
      ├── register(role, action)   ── append, chainable
      └── actions_for_role(role)   ── tuple, read-only, no bucket allocation

Tags:
    e2ekit, env, actions, hooks, registry

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeAlias

from e2ekit.core.logging import get_logger

if TYPE_CHECKING:
    from e2ekit.core.context import RunContext
    from e2ekit.core.protocols import TestHandle
    from e2ekit.envconf.config import EnvConfig
    from e2ekit.features.feature import Feature

logger = get_logger(__name__)

EnvFunc: TypeAlias = Callable[["RunContext", "EnvConfig"], "RunContext | None"]
TestFunc: TypeAlias = Callable[["RunContext", "EnvConfig", "TestHandle"], "RunContext | None"]
FeatureFunc: TypeAlias = Callable[["RunContext", "EnvConfig", "Feature"], "RunContext | None"]


class HookKind(str, Enum):
    """Callback shape of a hook."""

    ENV = "env"
    TEST = "test"
    FEATURE = "feature"


class ActionRole(str, Enum):
    """Lifecycle point a hook runs at."""

    SETUP = "setup"
    BEFORE_TEST = "before-test"
    AFTER_TEST = "after-test"
    BEFORE_FEATURE = "before-feature"
    AFTER_FEATURE = "after-feature"
    FINISH = "finish"

    @property
    def kind(self) -> HookKind:
        match self:
            case ActionRole.SETUP | ActionRole.FINISH:
                return HookKind.ENV
            case ActionRole.BEFORE_TEST | ActionRole.AFTER_TEST:
                return HookKind.TEST
            case _:
                return HookKind.FEATURE


def _callable_name(fn: Callable[..., Any]) -> str:
    module = getattr(fn, "__module__", None) or "<unknown_module>"
    qualname = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)
    return f"{module}.{qualname}"


@dataclass(frozen=True)
class Action:
    """A hook bound to a role. The role never changes after construction."""

    role: ActionRole
    fn: Callable[..., RunContext | None]
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", ActionRole(self.role))
        if not callable(self.fn):
            raise TypeError(f"Action fn must be callable (type={type(self.fn).__name__})")
        if not self.name:
            object.__setattr__(self, "name", _callable_name(self.fn))

    @property
    def kind(self) -> HookKind:
        return self.role.kind

    # Factories, one per hook kind

    @classmethod
    def env(cls, role: ActionRole, fn: EnvFunc, name: str = "") -> Action:
        return cls._of_kind(HookKind.ENV, role, fn, name)

    @classmethod
    def test(cls, role: ActionRole, fn: TestFunc, name: str = "") -> Action:
        return cls._of_kind(HookKind.TEST, role, fn, name)

    @classmethod
    def feature(cls, role: ActionRole, fn: FeatureFunc, name: str = "") -> Action:
        return cls._of_kind(HookKind.FEATURE, role, fn, name)

    @classmethod
    def _of_kind(cls, kind: HookKind, role: ActionRole, fn: Callable[..., Any], name: str) -> Action:
        role = ActionRole(role)
        if role.kind != kind:
            raise ValueError(f"Role {role.value} takes {role.kind.value} hooks, not {kind.value} hooks")
        return cls(role=role, fn=fn, name=name)


class ActionRegistry:
    """Ordered actions per role.

    Insertion order is kept and duplicates are allowed. The registry only
    grows; a read never creates a bucket.
    """

    def __init__(self) -> None:
        self._actions: dict[ActionRole, list[Action]] = {}

    def register(self, role: ActionRole, action: Action) -> ActionRegistry:
        role = ActionRole(role)
        if action.role != role:
            raise ValueError(
                f"Action {action.name} has role {action.role.value}, cannot register under {role.value}"
            )
        self._actions.setdefault(role, []).append(action)
        logger.debug("action_registered", role=role.value, action=action.name)
        return self

    def actions_for_role(self, role: ActionRole) -> tuple[Action, ...]:
        """Return the registered sequence for *role* (empty if none)."""
        return tuple(self._actions.get(ActionRole(role), ()))

    def count(self, role: ActionRole) -> int:
        return len(self._actions.get(ActionRole(role), ()))

    def roles(self) -> list[ActionRole]:
        """Roles that have at least one action."""
        return [role for role in ActionRole if self._actions.get(role)]

    def __len__(self) -> int:
        return sum(len(actions) for actions in self._actions.values())

    def __repr__(self) -> str:
        counts = {role.value: len(actions) for role, actions in self._actions.items()}
        return f"ActionRegistry({counts})"


__all__ = [
    "Action",
    "ActionRegistry",
    "ActionRole",
    "EnvFunc",
    "FeatureFunc",
    "HookKind",
    "TestFunc",
]

"""Test environment: action registry, filter and execution engine."""

from e2ekit.env.actions import Action, ActionRegistry, ActionRole, HookKind
from e2ekit.env.environment import Environment, new, new_with_config, new_with_context
from e2ekit.env.filter import Filter

__all__ = [
    "Action",
    "ActionRegistry",
    "ActionRole",
    "HookKind",
    "Environment",
    "Filter",
    "new",
    "new_with_config",
    "new_with_context",
]

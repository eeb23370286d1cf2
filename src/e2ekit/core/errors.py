"""
Structured error types for e2ekit.

Every failure the engine raises or reports carries a category and a small
structured context (which hook, which role, which feature) so that the
message handed to the test handle and the structured log record describe
the same thing.

Manifesto:
    - **Typed hierarchy:** configuration problems, engine misuse and hook
      failures are different exception families
    - **Rich context:** errors carry role/hook/feature metadata for logging
    - **Error chaining:** the exception a hook raised is kept as ``cause``

Architecture:
    ::

        E2EError  (category, context, cause)
          ├── ConfigError            (CONFIG)
          │     ├── MissingConfigError
          │     └── InvalidConfigError
          └── EngineError            (ENGINE)
                ├── InvalidContextError
                └── HookError        (HOOK)  role, hook name, feature
                      ├── SetupError         fatal tier
                      ├── FinishError        fatal tier
                      └── FeatureHookError   per-feature tier

Examples:
    >>> err = HookError("boom", role="before-test", hook="prepare_ns")
    >>> err.context.role
    'before-test'
    >>> err.to_dict()["category"]
    'HOOK'

Tags:
    error-handling, exception-hierarchy, error-context, e2ekit

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification in logs and reports."""

    CONFIG = "CONFIG"
    ENGINE = "ENGINE"
    HOOK = "HOOK"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set end up in :meth:`to_dict`, so a config error
    does not carry empty hook fields around in its log record.
    """

    role: str | None = None
    hook: str | None = None
    feature: str | None = None
    step: str | None = None
    run_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize non-empty fields."""
        result: dict[str, Any] = {}
        for name in ("role", "hook", "feature", "step", "run_id"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        result.update(self.metadata)
        return result


class E2EError(Exception):
    """
    Base exception for all e2ekit errors.

    Subclasses set ``default_category``; callers may override it per
    instance. ``cause`` is also wired into ``__cause__`` so tracebacks show
    the original hook exception.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> E2EError:
        """
        Add context to this error (fluent API).

        Usage:
            raise EngineError("bad state").with_context(feature="pods")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = repr(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(E2EError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# ENGINE ERRORS
# =============================================================================


class EngineError(E2EError):
    """The environment was used incorrectly or is in a bad state."""

    default_category = ErrorCategory.ENGINE


class InvalidContextError(EngineError):
    """A missing or wrongly typed run context was supplied."""

    def __init__(self, value: Any = None):
        self.value = value
        if value is None:
            message = "Run context must not be None"
        else:
            message = f"Expected RunContext, got {type(value).__name__}"
        super().__init__(message)


class HookError(EngineError):
    """A registered hook failed."""

    default_category = ErrorCategory.HOOK

    def __init__(
        self,
        message: str,
        *,
        role: str | None = None,
        hook: str | None = None,
        feature: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(role=role, hook=hook, feature=feature),
            cause=cause,
        )

    @property
    def role(self) -> str | None:
        return self.context.role

    @property
    def hook(self) -> str | None:
        return self.context.hook

    @property
    def feature(self) -> str | None:
        return self.context.feature


class SetupError(HookError):
    """A setup action failed; the whole run is aborted."""


class FinishError(HookError):
    """A finish action failed."""


class FeatureHookError(HookError):
    """A before/after feature or test hook failed for one feature."""



__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "E2EError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "EngineError",
    "InvalidContextError",
    "HookError",
    "SetupError",
    "FinishError",
    "FeatureHookError",
]

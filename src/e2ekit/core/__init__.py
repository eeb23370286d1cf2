"""e2ekit core -- errors, logging, run context and the test-handle protocol.

Architecture::

    errors.py      Structured error hierarchy (E2EError, HookError, ...)
    logging.py     structlog configuration + get_logger
    context.py     RunContext, the immutable value threaded through hooks
    protocols.py   TestHandle, the reporting surface used by the engine
"""

from e2ekit.core.context import RunContext, background
from e2ekit.core.errors import (
    ConfigError,
    E2EError,
    EngineError,
    ErrorCategory,
    ErrorContext,
    FeatureHookError,
    FinishError,
    HookError,
    InvalidConfigError,
    InvalidContextError,
    MissingConfigError,
    SetupError,
)
from e2ekit.core.logging import LogContext, configure_logging, get_logger
from e2ekit.core.protocols import TestHandle

__all__ = [
    "RunContext",
    "background",
    "ConfigError",
    "E2EError",
    "EngineError",
    "ErrorCategory",
    "ErrorContext",
    "FeatureHookError",
    "FinishError",
    "HookError",
    "InvalidConfigError",
    "InvalidContextError",
    "MissingConfigError",
    "SetupError",
    "LogContext",
    "configure_logging",
    "get_logger",
    "TestHandle",
]

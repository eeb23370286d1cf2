"""
Environment configuration for a test run.

``EnvConfig`` is the read-only configuration every hook and step receives:
the namespace a suite works in, the optional name filters that select which
features and assessments run, a label selector, and the path of the
cluster credentials file. The engine only reads the filters; the credentials
path is carried for hooks and never opened here.

Values resolve in this order (later wins)::

    field defaults  →  .env file  →  E2E_* environment variables  →  explicit kwargs

Example:
    >>> cfg = EnvConfig(namespace="e2e-ns").with_feature_regex("^pods")
    >>> cfg.namespace, cfg.feature_regex
    ('e2e-ns', '^pods')

Tags:
    e2ekit, configuration, settings, pydantic, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from e2ekit.core.errors import ConfigError, InvalidConfigError, MissingConfigError


@lru_cache(maxsize=128)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a filter pattern, caching the result."""
    return re.compile(pattern)


class EnvConfig(BaseSettings):
    """Configuration shared by reference across an entire run.

    All fields can be set via ``E2E_*`` environment variables (e.g.
    ``E2E_FEATURE_REGEX=^pods``). Instances are frozen; the ``with_*``
    builders return a new config.
    """

    model_config = SettingsConfigDict(
        env_prefix="E2E_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ── Placement ────────────────────────────────────────────────
    namespace: str = Field(default="", description="Namespace the suite works in")

    # ── Selection ────────────────────────────────────────────────
    feature_regex: str | None = Field(
        default=None, description="Only features whose name matches run"
    )
    assessment_regex: str | None = Field(
        default=None, description="Only assessments whose name matches run"
    )
    labels: dict[str, str] = Field(
        default_factory=dict, description="Only features carrying all these labels run"
    )

    # ── Connection ───────────────────────────────────────────────
    kubeconfig: Path | None = Field(
        default=None, description="Credentials file for the target cluster"
    )

    @field_validator("feature_regex", "assessment_regex")
    @classmethod
    def _check_pattern(cls, value: str | None, info: ValidationInfo) -> str | None:
        if value is None or value == "":
            return None
        try:
            compile_pattern(value)
        except re.error as exc:
            raise InvalidConfigError(
                info.field_name, value, f"Invalid {info.field_name} {value!r}: {exc}"
            ) from exc
        return value

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def from_toml(cls, path: str | Path, table: str = "e2e") -> EnvConfig:
        """Load configuration from the ``[e2e]`` table of a TOML file.

        Environment variables still apply to keys the file does not set.
        """
        path = Path(path)
        if not path.exists():
            raise MissingConfigError(str(path), f"Config file not found: {path}")
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Cannot parse {path}: {exc}", cause=exc) from exc

        section = data.get(table)
        if section is None:
            raise MissingConfigError(table, f"Config file {path} has no [{table}] table")
        if not isinstance(section, dict):
            raise InvalidConfigError(table, section)
        return cls(**section)

    # =========================================================================
    # Builders (return a new config)
    # =========================================================================

    def with_namespace(self, namespace: str) -> EnvConfig:
        return self._copy_with(namespace=namespace)

    def with_feature_regex(self, pattern: str | None) -> EnvConfig:
        return self._copy_with(feature_regex=pattern)

    def with_assessment_regex(self, pattern: str | None) -> EnvConfig:
        return self._copy_with(assessment_regex=pattern)

    def with_labels(self, labels: dict[str, str]) -> EnvConfig:
        return self._copy_with(labels={**self.labels, **labels})

    def with_kubeconfig_file(self, path: str | Path) -> EnvConfig:
        """Record the credentials file. The file is not read or validated."""
        return self._copy_with(kubeconfig=Path(path))

    def _copy_with(self, **overrides: Any) -> EnvConfig:
        # Re-run validation; explicit kwargs take precedence over env sources.
        return type(self)(**{**self.model_dump(), **overrides})

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def feature_pattern(self) -> re.Pattern[str] | None:
        return compile_pattern(self.feature_regex) if self.feature_regex else None

    @property
    def assessment_pattern(self) -> re.Pattern[str] | None:
        return compile_pattern(self.assessment_regex) if self.assessment_regex else None


def new() -> EnvConfig:
    """Build a config from defaults, ``.env`` and ``E2E_*`` variables."""
    return EnvConfig()


__all__ = ["EnvConfig", "compile_pattern", "new"]

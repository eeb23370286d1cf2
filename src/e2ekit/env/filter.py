"""Name and label selection applied before anything runs.

Patterns are regular expressions searched anywhere in the name (not
anchored), so ``"add-"`` selects ``"add-one"`` and ``"^add-"`` is needed to
pin a prefix. An unset pattern selects everything.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from e2ekit.envconf.config import EnvConfig, compile_pattern
from e2ekit.features.feature import Feature


@dataclass(frozen=True)
class Filter:
    """Feature/assessment predicate built from an :class:`EnvConfig`."""

    feature_pattern: re.Pattern[str] | None = None
    assessment_pattern: re.Pattern[str] | None = None
    labels: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: EnvConfig) -> Filter:
        return cls(
            feature_pattern=config.feature_pattern,
            assessment_pattern=config.assessment_pattern,
            labels=dict(config.labels),
        )

    @classmethod
    def from_patterns(
        cls,
        feature: str | None = None,
        assessment: str | None = None,
        labels: Mapping[str, str] | None = None,
    ) -> Filter:
        return cls(
            feature_pattern=compile_pattern(feature) if feature else None,
            assessment_pattern=compile_pattern(assessment) if assessment else None,
            labels=dict(labels or {}),
        )

    def matches_feature(self, name: str) -> bool:
        if self.feature_pattern is None:
            return True
        return self.feature_pattern.search(name) is not None

    def matches_assessment(self, name: str) -> bool:
        if self.assessment_pattern is None:
            return True
        return self.assessment_pattern.search(name) is not None

    def matches_labels(self, labels: Mapping[str, str]) -> bool:
        """True when every required label is present with the same value."""
        return all(labels.get(key) == value for key, value in self.labels.items())

    def selects(self, feature: Feature) -> bool:
        """Whether *feature* runs at all."""
        return self.matches_feature(feature.name) and self.matches_labels(feature.labels)


__all__ = ["Filter"]

"""Feature and assessment model."""

from e2ekit.features.feature import Feature, FeatureBuilder, Level, Step, StepFunc, new

__all__ = ["Feature", "FeatureBuilder", "Level", "Step", "StepFunc", "new"]

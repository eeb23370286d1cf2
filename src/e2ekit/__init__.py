"""
e2ekit: lifecycle-hook execution engine for feature-based test suites.

WHY
───
End-to-end suites need shared setup (a cluster, a namespace), per-feature
and per-test preparation and cleanup, and a way to pass what setup created
down to the test steps. e2ekit registers those hooks by lifecycle role and
runs them, with the features, in one deterministic order while threading a
single immutable context through every stage.

ARCHITECTURE
────────────
::

    env.Environment            ─ hook registration + execution engine
      ├── setup / finish                  (ctx, cfg)          -> ctx
      ├── before/after_each_test          (ctx, cfg, handle)  -> ctx
      └── before/after_each_feature       (ctx, cfg, feature) -> ctx

    features.new(name)         ─ builder: .assess(name, fn) ... .feature()
    envconf.EnvConfig          ─ namespace, name filters, labels, kubeconfig
    core.RunContext            ─ immutable context threaded step to step
    core.TestHandle            ─ reporting surface (log / error / fatal)

MODULE MAP (recommended reading order)
──────────────────────────────────────
1. core/errors.py          ─ error hierarchy
2. core/context.py         ─ RunContext
3. core/protocols.py       ─ TestHandle
4. envconf/config.py       ─ EnvConfig (pydantic-settings)
5. features/feature.py     ─ Feature, Step, FeatureBuilder
6. env/actions.py          ─ ActionRole, Action, ActionRegistry
7. env/filter.py           ─ Filter
8. env/environment.py      ─ Environment
9. testing.py              ─ RecordingHandle + trail helpers

Example::

    from e2ekit import env, envconf, features

    testenv = env.new_with_config(envconf.EnvConfig(namespace="e2e"))
    testenv.setup(create_namespace).finish(delete_namespace)

    feat = features.new("deployments").assess("scales up", check_scale).feature()

    def test_deployments():
        testenv.test(RecordingHandle("deployments"), feat)
"""

from e2ekit import env, envconf, features
from e2ekit.core.context import RunContext, background
from e2ekit.core.errors import (
    ConfigError,
    E2EError,
    EngineError,
    FeatureHookError,
    FinishError,
    HookError,
    InvalidConfigError,
    InvalidContextError,
    SetupError,
)
from e2ekit.core.protocols import TestHandle
from e2ekit.env import Environment
from e2ekit.envconf import EnvConfig
from e2ekit.features import Feature, FeatureBuilder

__version__ = "0.1.0"

__all__ = [
    "env",
    "envconf",
    "features",
    "RunContext",
    "background",
    "ConfigError",
    "E2EError",
    "EngineError",
    "FeatureHookError",
    "FinishError",
    "HookError",
    "InvalidConfigError",
    "InvalidContextError",
    "SetupError",
    "TestHandle",
    "Environment",
    "EnvConfig",
    "Feature",
    "FeatureBuilder",
]

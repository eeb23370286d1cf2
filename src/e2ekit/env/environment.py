"""Environment: runs features against registered lifecycle hooks.

The :class:`Environment` holds the hooks registered for a suite and drives
one strictly sequential execution order, threading a single
:class:`~e2ekit.core.context.RunContext` through every hook and step.

Execution order of ``test(handle, *features)``::

    setup hooks                      (once per environment, first call with features)
    for each feature selected by the filter:
        before-feature hooks         (each call gets its own copy of the feature)
        before-test hooks
        setup steps
        assessments                  (those matching the assessment filter)
        teardown steps
        after-test hooks             (always, once the feature was selected)
        after-feature hooks          (always, each call gets its own copy)
    finish hooks                     (once, via run_finish() or session())

It handles:

- **Fatal** failures. A setup or finish hook raising aborts the run; the
  handle's ``fatal`` is called and :class:`SetupError`/:class:`FinishError`
  is raised.
- **Per-feature** failures. A before/after hook raising is reported with
  ``handle.error``. A failed before-hook skips the rest of the before-hooks
  and the feature's steps; after-hooks still run and later features still
  run.
- **Step** failures are never intercepted. Steps report through the handle;
  an exception raised from a step propagates after the after-hooks of its
  feature ran.

Example::

    from e2ekit import env, features

    def create_ns(ctx, cfg):
        return ctx.with_value("namespace", cfg.namespace or "e2e")

    testenv = env.new().setup(create_ns)

    feat = features.new("namespaces").assess("exists", check_ns).feature()
    final_ctx = testenv.test(handle, feat)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from e2ekit.core.context import RunContext
from e2ekit.core.errors import (
    FeatureHookError,
    FinishError,
    HookError,
    InvalidContextError,
    SetupError,
)
from e2ekit.core.logging import LogContext, get_logger
from e2ekit.core.protocols import TestHandle
from e2ekit.env.actions import (
    Action,
    ActionRegistry,
    ActionRole,
    EnvFunc,
    FeatureFunc,
    HookKind,
    TestFunc,
)
from e2ekit.env.filter import Filter
from e2ekit.envconf.config import EnvConfig
from e2ekit.features.feature import Feature, Level, Step

logger = get_logger(__name__)

_ERROR_BY_ROLE: dict[ActionRole, type[HookError]] = {
    ActionRole.SETUP: SetupError,
    ActionRole.FINISH: FinishError,
    ActionRole.BEFORE_TEST: FeatureHookError,
    ActionRole.AFTER_TEST: FeatureHookError,
    ActionRole.BEFORE_FEATURE: FeatureHookError,
    ActionRole.AFTER_FEATURE: FeatureHookError,
}


class Environment:
    """Registered hooks plus the context they share.

    Registration methods return the environment so calls can be chained.
    Registration is expected to finish before the first :meth:`test` call.
    """

    def __init__(self, config: EnvConfig | None = None, ctx: RunContext | None = None) -> None:
        self._config = config if config is not None else EnvConfig()
        self._ctx = ctx if ctx is not None else RunContext.background()
        self._actions = ActionRegistry()
        self._filter = Filter.from_config(self._config)
        self._setup_done = False
        self._setup_error: SetupError | None = None
        self._finished = False

    @property
    def context(self) -> RunContext:
        """The latest context, updated after every hook and step."""
        return self._ctx

    @property
    def config(self) -> EnvConfig:
        return self._config

    @property
    def actions(self) -> ActionRegistry:
        return self._actions

    @property
    def filter(self) -> Filter:
        return self._filter

    # =========================================================================
    # Registration
    # =========================================================================

    def setup(self, fn: EnvFunc) -> Environment:
        return self._register(Action.env(ActionRole.SETUP, fn))

    def before_each_test(self, fn: TestFunc) -> Environment:
        return self._register(Action.test(ActionRole.BEFORE_TEST, fn))

    def after_each_test(self, fn: TestFunc) -> Environment:
        return self._register(Action.test(ActionRole.AFTER_TEST, fn))

    def before_each_feature(self, fn: FeatureFunc) -> Environment:
        return self._register(Action.feature(ActionRole.BEFORE_FEATURE, fn))

    def after_each_feature(self, fn: FeatureFunc) -> Environment:
        return self._register(Action.feature(ActionRole.AFTER_FEATURE, fn))

    def finish(self, fn: EnvFunc) -> Environment:
        return self._register(Action.env(ActionRole.FINISH, fn))

    def _register(self, action: Action) -> Environment:
        self._actions.register(action.role, action)
        return self

    # =========================================================================
    # Execution
    # =========================================================================

    def test(self, handle: TestHandle, *features: Feature) -> RunContext:
        """
        Run *features* in the order given and return the resulting context.

        Args:
            handle: Reporting surface of the calling test
            *features: Frozen features (``builder.feature()``)

        Returns:
            The final context, also kept as this environment's context
        """
        if not features:
            logger.debug("env.test.no_features")
            return self._ctx

        for feature in features:
            if not isinstance(feature, Feature):
                raise TypeError(
                    f"Expected Feature, got {type(feature).__name__}. "
                    "Call .feature() on a builder before passing it."
                )

        self.run_setup(handle)
        for feature in features:
            self._run_feature(handle, feature)
        return self._ctx

    def run_setup(self, handle: TestHandle) -> RunContext:
        """Run setup hooks once. Later calls re-report an earlier failure."""
        if self._setup_error is not None:
            handle.fatal(str(self._setup_error))
            raise self._setup_error
        if self._setup_done:
            return self._ctx

        self._setup_done = True
        logger.info("env.setup.start", hooks=self._actions.count(ActionRole.SETUP))
        error = self._run_until_error(ActionRole.SETUP, handle)
        if error is not None:
            self._setup_error = error
            handle.fatal(str(error))
            raise error
        return self._ctx

    def run_finish(self, handle: TestHandle) -> RunContext:
        """Run finish hooks once per environment."""
        if self._finished:
            return self._ctx

        self._finished = True
        logger.info("env.finish.start", hooks=self._actions.count(ActionRole.FINISH))
        error = self._run_until_error(ActionRole.FINISH, handle)
        if error is not None:
            handle.fatal(str(error))
            raise error
        return self._ctx

    @contextmanager
    def session(self, handle: TestHandle) -> Iterator[Environment]:
        """Run setup on enter and finish on exit.

        Finish runs even when the body raises. In that case the body's
        exception is the one that propagates; a finish failure was already
        reported to *handle* and is attached to it as a note.

        Example::

            with testenv.session(handle) as e:
                e.test(handle, feat_a)
                e.test(handle, feat_b)
        """
        self.run_setup(handle)
        try:
            yield self
        except BaseException as body_exc:
            try:
                self.run_finish(handle)
            except BaseException as finish_exc:
                logger.error(
                    "env.finish.failed_after_error",
                    error=str(finish_exc),
                    original=repr(body_exc),
                )
                body_exc.add_note(f"finish also failed: {finish_exc}")
            raise
        self.run_finish(handle)

    # =========================================================================
    # Internals
    # =========================================================================

    def _run_feature(self, handle: TestHandle, feature: Feature) -> None:
        if not self._filter.selects(feature):
            logger.debug("env.feature.skipped", feature=feature.name, reason="filtered")
            handle.log(f"skipping feature {feature.name}: does not match filter")
            return

        with LogContext(feature=feature.name, run_id=self._ctx.run_id):
            logger.info("env.feature.start", steps=len(feature.steps))
            try:
                ready = self._run_before(ActionRole.BEFORE_FEATURE, handle, feature)
                if ready:
                    ready = self._run_before(ActionRole.BEFORE_TEST, handle, feature)
                if ready:
                    self._run_steps(handle, feature)
                else:
                    logger.warning("env.feature.steps_skipped", reason="before_hook_failed")
            finally:
                self._run_after(ActionRole.AFTER_TEST, handle, feature)
                self._run_after(ActionRole.AFTER_FEATURE, handle, feature)
            logger.info("env.feature.complete", failed=handle.failed)

    def _run_steps(self, handle: TestHandle, feature: Feature) -> None:
        for step in feature.steps_at(Level.SETUP):
            self._run_step(handle, step)
        try:
            for step in feature.assessments:
                if not self._filter.matches_assessment(step.name):
                    logger.debug("env.step.skipped", step=step.name, reason="filtered")
                    handle.log(f"skipping assessment {step.name}: does not match filter")
                    continue
                self._run_step(handle, step)
        finally:
            for step in feature.steps_at(Level.TEARDOWN):
                self._run_step(handle, step)

    def _run_step(self, handle: TestHandle, step: Step) -> None:
        logger.debug("env.step.start", step=step.name, level=step.level.value)
        returned = step.fn(self._ctx, handle, self._config)
        if returned is None:
            return
        if not isinstance(returned, RunContext):
            handle.error(
                f"step {step.name} must return a RunContext or None, "
                f"got {type(returned).__name__}"
            )
            return
        self._ctx = returned

    def _run_before(self, role: ActionRole, handle: TestHandle, feature: Feature) -> bool:
        """Run *role* hooks in order, stopping at the first failure."""
        error = self._run_until_error(role, handle, feature)
        if error is None:
            return True
        handle.error(str(error))
        return False

    def _run_after(self, role: ActionRole, handle: TestHandle, feature: Feature) -> None:
        """Run every *role* hook; each failure is reported and the rest still run."""
        for action in self._actions.actions_for_role(role):
            error = self._invoke(action, handle, feature)
            if error is not None:
                handle.error(str(error))

    def _run_until_error(
        self, role: ActionRole, handle: TestHandle, feature: Feature | None = None
    ) -> HookError | None:
        for action in self._actions.actions_for_role(role):
            error = self._invoke(action, handle, feature)
            if error is not None:
                return error
        return None

    def _invoke(
        self, action: Action, handle: TestHandle, feature: Feature | None
    ) -> HookError | None:
        """Call one hook with the current context.

        On success the returned context becomes the current one. A hook
        failure is returned, not raised; the context stays as it was.
        """
        match action.kind:
            case HookKind.ENV:
                args: tuple = (self._ctx, self._config)
            case HookKind.TEST:
                args = (self._ctx, self._config, handle)
            case HookKind.FEATURE:
                # Each call gets its own copy; label writes stay inside it.
                args = (self._ctx, self._config, feature.copy())

        feature_name = feature.name if feature is not None else None
        error_cls = _ERROR_BY_ROLE[action.role]
        logger.debug("env.hook.start", role=action.role.value, hook=action.name)

        try:
            returned = action.fn(*args)
        except Exception as exc:
            error = error_cls(
                f"{action.role.value} hook {action.name} failed: {exc}",
                role=action.role.value,
                hook=action.name,
                feature=feature_name,
                cause=exc,
            )
            logger.error("env.hook.failed", **error.to_dict())
            return error

        if returned is None:
            return None
        if not isinstance(returned, RunContext):
            error = error_cls(
                f"{action.role.value} hook {action.name} must return a RunContext or None, "
                f"got {type(returned).__name__}",
                role=action.role.value,
                hook=action.name,
                feature=feature_name,
            )
            logger.error("env.hook.failed", **error.to_dict())
            return error

        self._ctx = returned
        return None


# =============================================================================
# Construction
# =============================================================================


def new() -> Environment:
    """Environment with the default config and a background context."""
    return Environment()


def new_with_config(config: EnvConfig) -> Environment:
    return Environment(config=config)


def new_with_context(ctx: RunContext, config: EnvConfig | None = None) -> Environment:
    """Environment starting from *ctx*.

    Raises:
        InvalidContextError: If *ctx* is None or not a RunContext
    """
    if ctx is None or not isinstance(ctx, RunContext):
        raise InvalidContextError(ctx)
    return Environment(config=config, ctx=ctx)


__all__ = ["Environment", "new", "new_with_config", "new_with_context"]

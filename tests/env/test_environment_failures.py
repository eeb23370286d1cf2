"""Tests for Environment failure handling.

Setup and finish failures are fatal to the run. Before/after hook failures
are reported per feature and leave other features running. Step failures
are the step's own business: exceptions propagate once the feature's
after-hooks have run.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from e2ekit import env, features
from e2ekit.core.errors import FinishError, SetupError
from e2ekit.testing import (
    FatalTestError,
    RecordingHandle,
    assert_markers,
    marker_env_hook,
    marker_feature_hook,
    marker_step,
    marker_test_hook,
)


@dataclass
class LenientHandle(RecordingHandle):
    """Records fatal reports without aborting, so the raised error surfaces."""

    def fatal(self, message: str) -> None:
        self.fatals.append(message)


def boom_env(ctx, cfg):
    raise RuntimeError("boom")


def boom_test(ctx, cfg, t):
    raise RuntimeError("boom")


def boom_feature(ctx, cfg, info):
    raise RuntimeError("boom")


def simple_feature(name: str = "f", marker: str = "step"):
    return features.new(name).assess("a", marker_step(marker)).feature()


# ---------------------------------------------------------------------------
# Setup (fatal)
# ---------------------------------------------------------------------------


class TestSetupFailure:
    def test_setup_failure_is_fatal(self):
        handle = RecordingHandle()
        e = env.new().setup(boom_env).before_each_test(marker_test_hook("before"))

        with pytest.raises(FatalTestError):
            e.test(handle, simple_feature())

        assert len(handle.fatals) == 1
        assert "boom" in handle.fatals[0]
        assert_markers(e.context, [])

    def test_setup_failure_raises_setup_error(self):
        handle = LenientHandle()
        e = env.new().setup(boom_env)

        with pytest.raises(SetupError) as exc_info:
            e.test(handle, simple_feature())

        err = exc_info.value
        assert err.role == "setup"
        assert "boom_env" in err.hook
        assert isinstance(err.cause, RuntimeError)
        assert handle.fatals == [str(err)]

    def test_later_setup_hooks_do_not_run(self):
        e = env.new().setup(marker_env_hook("first")).setup(boom_env).setup(marker_env_hook("third"))
        with pytest.raises(SetupError):
            e.run_setup(LenientHandle())
        assert_markers(e.context, ["first"])

    def test_setup_failure_is_rereported_without_rerun(self):
        calls = []

        def failing(ctx, cfg):
            calls.append(1)
            raise RuntimeError("boom")

        handle = LenientHandle()
        e = env.new().setup(failing)

        with pytest.raises(SetupError):
            e.test(handle, simple_feature())
        with pytest.raises(SetupError):
            e.test(handle, simple_feature())

        assert len(calls) == 1
        assert len(handle.fatals) == 2

    def test_setup_returning_non_context_is_fatal(self):
        handle = LenientHandle()
        e = env.new().setup(lambda ctx, cfg: "not a context")

        with pytest.raises(SetupError, match="must return a RunContext"):
            e.test(handle, simple_feature())

    def test_session_does_not_enter_after_setup_failure(self):
        e = env.new().setup(boom_env).finish(marker_env_hook("finish"))
        entered = False

        with pytest.raises(SetupError):
            with e.session(LenientHandle()):
                entered = True

        assert not entered
        assert_markers(e.context, [])


# ---------------------------------------------------------------------------
# Finish (fatal)
# ---------------------------------------------------------------------------


class TestFinishFailure:
    def test_finish_failure_is_fatal(self):
        handle = RecordingHandle()
        e = env.new().finish(boom_env)

        with pytest.raises(FatalTestError):
            e.run_finish(handle)

        assert len(handle.fatals) == 1

    def test_finish_failure_raises_finish_error(self):
        e = env.new().finish(boom_env).finish(marker_env_hook("after"))

        with pytest.raises(FinishError) as exc_info:
            e.run_finish(LenientHandle())

        assert exc_info.value.role == "finish"
        assert_markers(e.context, [])

    def test_finish_not_retried(self):
        handle = LenientHandle()
        e = env.new().finish(boom_env)
        with pytest.raises(FinishError):
            e.run_finish(handle)
        e.run_finish(handle)
        assert len(handle.fatals) == 1

    def test_session_body_error_wins_over_fatal_finish(self):
        handle = RecordingHandle()
        e = env.new().finish(boom_env)

        with pytest.raises(KeyError) as exc_info:
            with e.session(handle):
                raise KeyError("missing")

        assert len(handle.fatals) == 1
        assert any("finish also failed" in note for note in exc_info.value.__notes__)

    def test_session_body_error_wins_over_finish_error(self):
        handle = LenientHandle()
        e = env.new().finish(boom_env)

        with pytest.raises(KeyError) as exc_info:
            with e.session(handle):
                raise KeyError("missing")

        assert "boom" in exc_info.value.__notes__[0]
        assert len(handle.fatals) == 1

    def test_session_body_error_without_finish_failure_has_no_note(self):
        e = env.new().finish(marker_env_hook("finish"))

        with pytest.raises(KeyError) as exc_info:
            with e.session(LenientHandle()):
                raise KeyError("missing")

        assert not getattr(exc_info.value, "__notes__", [])
        assert_markers(e.context, ["finish"])

    def test_session_finish_failure_raises_after_clean_body(self):
        e = env.new().finish(boom_env)

        with pytest.raises(FinishError):
            with e.session(LenientHandle()):
                pass


# ---------------------------------------------------------------------------
# Before / after hooks (per feature)
# ---------------------------------------------------------------------------


class TestBeforeHookFailure:
    def test_before_test_failure_skips_steps_but_runs_after_hooks(self, handle):
        e = (
            env.new()
            .before_each_test(boom_test)
            .before_each_test(marker_test_hook("second-before"))
            .after_each_test(marker_test_hook("after-test"))
            .after_each_feature(marker_feature_hook("after-feature"))
        )

        ctx = e.test(handle, simple_feature())

        assert_markers(ctx, ["after-test", "after-feature"])
        assert len(handle.errors) == 1
        assert "before-test" in handle.errors[0]
        assert handle.fatals == []

    def test_before_feature_failure_skips_before_test(self, handle):
        e = (
            env.new()
            .before_each_feature(boom_feature)
            .before_each_test(marker_test_hook("before-test"))
            .after_each_test(marker_test_hook("after-test"))
        )
        assert_markers(e.test(handle, simple_feature()), ["after-test"])
        assert len(handle.errors) == 1

    def test_other_features_still_run(self, handle):
        def fail_for_first(ctx, cfg, info):
            if info.name == "first":
                raise RuntimeError("boom")
            return ctx

        e = env.new().before_each_feature(fail_for_first)
        ctx = e.test(handle, simple_feature("first", "one"), simple_feature("second", "two"))

        assert_markers(ctx, ["two"])
        assert len(handle.errors) == 1
        assert "boom" in handle.errors[0]

    def test_before_hook_returning_non_context(self, handle):
        e = env.new().before_each_test(lambda ctx, cfg, t: 42)
        assert_markers(e.test(handle, simple_feature()), [])
        assert len(handle.errors) == 1
        assert "int" in handle.errors[0]

    def test_failed_hook_keeps_previous_context(self, handle):
        e = (
            env.new()
            .before_each_feature(marker_feature_hook("ok"))
            .before_each_feature(boom_feature)
            .after_each_feature(marker_feature_hook("after"))
        )
        assert_markers(e.test(handle, simple_feature()), ["ok", "after"])


class TestAfterHookFailure:
    def test_every_after_hook_runs(self, handle):
        e = (
            env.new()
            .after_each_test(boom_test)
            .after_each_test(marker_test_hook("after-test"))
            .after_each_feature(boom_feature)
            .after_each_feature(marker_feature_hook("after-feature"))
        )

        ctx = e.test(handle, simple_feature())

        assert_markers(ctx, ["step", "after-test", "after-feature"])
        assert len(handle.errors) == 2

    def test_after_hook_failure_does_not_stop_next_feature(self, handle):
        e = env.new().after_each_test(boom_test)
        ctx = e.test(handle, simple_feature("a", "one"), simple_feature("b", "two"))
        assert_markers(ctx, ["one", "two"])
        assert len(handle.errors) == 2


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


class TestStepFailure:
    def test_step_exception_propagates_after_after_hooks(self, handle):
        def exploding(ctx, t, cfg):
            raise ValueError("step exploded")

        e = (
            env.new()
            .after_each_test(marker_test_hook("after-test"))
            .after_each_feature(marker_feature_hook("after-feature"))
        )
        feat = (
            features.new("f")
            .assess("first", marker_step("first"))
            .assess("explodes", exploding)
            .assess("never", marker_step("never"))
            .teardown(marker_step("teardown"))
            .feature()
        )

        with pytest.raises(ValueError, match="step exploded"):
            e.test(handle, feat)

        assert_markers(e.context, ["first", "teardown", "after-test", "after-feature"])

    def test_step_reporting_error_does_not_stop_feature(self, handle):
        def reports(ctx, t, cfg):
            t.error("assertion failed")
            return ctx

        feat = features.new("f").assess("bad", reports).assess("next", marker_step("next")).feature()
        assert_markers(env.new().test(handle, feat), ["next"])
        assert handle.errors == ["assertion failed"]

    def test_step_returning_wrong_type_is_reported(self, handle):
        feat = (
            features.new("f")
            .assess("first", marker_step("first"))
            .assess("bad", lambda ctx, t, cfg: {"not": "a context"})
            .assess("last", marker_step("last"))
            .feature()
        )
        ctx = env.new().test(handle, feat)

        assert_markers(ctx, ["first", "last"])
        assert len(handle.errors) == 1
        assert "bad" in handle.errors[0]

    def test_fatal_from_step_is_not_swallowed(self, handle):
        def fatal_step(ctx, t, cfg):
            t.fatal("cannot continue")

        e = env.new().after_each_test(marker_test_hook("after"))
        feat = features.new("f").assess("fatal", fatal_step).feature()

        with pytest.raises(FatalTestError):
            e.test(handle, feat)

        assert_markers(e.context, ["after"])

    def test_fatal_from_hook_is_not_converted(self, handle):
        def fatal_hook(ctx, cfg, t):
            t.fatal("hook gave up")

        e = env.new().before_each_test(fatal_hook)
        with pytest.raises(FatalTestError):
            e.test(handle, simple_feature())
        assert handle.errors == []


class TestHookErrorDetails:
    def test_message_names_role_and_hook(self):
        handle = RecordingHandle()

        e = env.new().before_each_feature(boom_feature)
        e.test(handle, simple_feature("named-feature"))

        assert len(handle.errors) == 1
        assert "before-feature" in handle.errors[0]
        assert "boom_feature" in handle.errors[0]

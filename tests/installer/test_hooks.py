"""
Tests for hook actions, the callback registry and session state.
"""

from __future__ import annotations

from zinstall.core.models.recipe import NamedCallback, Recipe, ShellExpression
from zinstall.core.services.installer.domain.actions import CallbackRegistry, HookContext
from zinstall.core.services.installer.execution.builtin_callbacks import default_registry
from zinstall.core.services.installer.execution.hooks import run_action
from zinstall.core.services.installer.execution.session import SessionState

RECIPE = Recipe(id="tool", name="tool")


def _ctx(hook: str = "post_install") -> HookContext:
    return HookContext(recipe=RECIPE, hook=hook, backend="apt")


class TestCallbackRegistry:
    def test_register_and_get(self):
        registry = CallbackRegistry()
        fn = lambda ctx: True  # noqa: E731
        registry.register("setup", fn)
        assert registry.get("setup") is fn
        assert "setup" in registry
        assert registry.get("missing") is None

    def test_decorator(self):
        registry = CallbackRegistry()

        @registry.register("setup")
        def setup(ctx):
            return True

        assert registry.names() == ["setup"]

    def test_default_registry(self):
        assert default_registry().names() == [
            "git_post_install", "mise_post_install", "rust_post_install",
        ]


class TestRunAction:
    def test_callback_receives_context(self):
        seen = []
        registry = CallbackRegistry({"setup": lambda ctx: seen.append(ctx.recipe.id)})

        result = run_action(NamedCallback(name="setup"), _ctx(), registry)

        assert result == {"ok": True}
        assert seen == ["tool"]

    def test_callback_returning_false(self):
        registry = CallbackRegistry({"setup": lambda ctx: False})
        result = run_action(NamedCallback(name="setup"), _ctx(), registry)
        assert not result["ok"]
        assert "reported failure" in result["error"]

    def test_callback_raising(self):
        def boom(ctx):
            raise RuntimeError("disk full")

        result = run_action(NamedCallback(name="boom"), _ctx(), CallbackRegistry({"boom": boom}))
        assert not result["ok"]
        assert "disk full" in result["error"]

    def test_unknown_callback(self):
        result = run_action(NamedCallback(name="nope"), _ctx(), CallbackRegistry())
        assert result == {"ok": False, "error": "Unknown callback 'nope'"}

    def test_shell_expression(self, runner):
        result = run_action(
            ShellExpression(text="rg --version"), _ctx(), CallbackRegistry(),
            run=runner, shell="zsh", timeout=60,
        )
        assert result["ok"]
        assert runner.calls == [["zsh", "-c", "rg --version"]]
        assert runner.kwargs[0]["timeout"] == 60

    def test_failing_shell_expression(self, runner):
        runner.fail_tokens.add("false")
        result = run_action(ShellExpression(text="false"), _ctx(), CallbackRegistry(), run=runner)
        assert not result["ok"]


class TestSessionState:
    def test_refresh_flags(self):
        session = SessionState()
        assert session.should_refresh("apt")
        session.mark_refreshed("apt")
        assert not session.should_refresh("apt")
        assert session.should_refresh("apt", force=True)
        session.flag_refresh("apt")
        assert session.should_refresh("apt")
        session.mark_refreshed("apt")
        assert not session.should_refresh("apt")

    def test_handled_and_reset(self):
        session = SessionState()
        session.mark_handled("git")
        assert session.was_handled("git")
        session.reset()
        assert not session.was_handled("git")
        assert session.should_refresh("apt")

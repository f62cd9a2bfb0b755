"""
L4 Execution — Callbacks used by the bundled recipes.

Host applications may start from ``default_registry()`` and register
their own callbacks on top.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from zinstall.core.services.installer.domain.actions import CallbackRegistry, HookContext
from zinstall.core.services.installer.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)


def _run(ctx: HookContext, cmd: list[str]) -> dict:
    runner = ctx.run or run_command
    return runner(cmd, timeout=600)


def git_post_install(ctx: HookContext) -> bool:
    """Include the dotfiles' default git config from the global one."""
    if not shutil.which("git"):
        logger.error("❌ git not found after install")
        return False
    logger.info("📦 Setting global git config...")
    return _run(ctx, ["git", "config", "--global", "include.path", "~/.gitconfig_default"])["ok"]


def rust_post_install(ctx: HookContext) -> bool:
    """Make stable the default toolchain."""
    rustup = shutil.which("rustup") or str(Path.home() / ".cargo" / "bin" / "rustup")
    if not Path(rustup).exists():
        logger.warning("⚠️ rustup not found after install; source ~/.cargo/env")
        return True
    logger.info("   Setting rustup default to stable...")
    return _run(ctx, [rustup, "default", "stable"])["ok"]


def mise_post_install(ctx: HookContext) -> bool:
    """Install the tools pinned in the home directory's mise config."""
    mise = shutil.which("mise") or str(Path.home() / ".local" / "bin" / "mise")
    logger.info("   Running mise install...")
    if not _run(ctx, [mise, "install", "--cd", str(Path.home())])["ok"]:
        logger.warning("⚠️ mise install failed. Run it manually to install tools.")
    return True


def default_registry() -> CallbackRegistry:
    registry = CallbackRegistry()
    registry.register("git_post_install", git_post_install)
    registry.register("rust_post_install", rust_post_install)
    registry.register("mise_post_install", mise_post_install)
    return registry

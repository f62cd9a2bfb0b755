"""
L4 Execution — Running hook and custom-install actions.

``NamedCallback`` actions dispatch through the host's callback registry;
``ShellExpression`` actions run through the configured shell.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from zinstall.core.models.recipe import NamedCallback, ShellExpression
from zinstall.core.services.installer.domain.actions import CallbackRegistry, HookContext
from zinstall.core.services.installer.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)


def run_action(
    action: NamedCallback | ShellExpression,
    context: HookContext,
    registry: CallbackRegistry,
    *,
    run: Callable[..., dict[str, Any]] = run_command,
    shell: str = "bash",
    timeout: int | None = 1800,
    stream: bool = False,
) -> dict[str, Any]:
    """Execute one action for ``context.recipe``.

    Returns:
        ``{"ok": True}`` or ``{"ok": False, "error": "..."}``. Never raises
        for a failing action.
    """
    if isinstance(action, NamedCallback):
        fn = registry.get(action.name)
        if fn is None:
            return {"ok": False, "error": f"Unknown callback '{action.name}'"}
        try:
            outcome = fn(context)
        except Exception as e:
            logger.debug("Callback %s raised", action.name, exc_info=True)
            return {"ok": False, "error": f"Callback '{action.name}' raised: {e}"}
        if outcome is False:
            return {"ok": False, "error": f"Callback '{action.name}' reported failure"}
        return {"ok": True}

    result = run([shell, "-c", action.text], timeout=timeout, stream=stream)
    if result["ok"]:
        return {"ok": True, "stdout": result.get("stdout", "")}
    return {
        "ok": False,
        "error": result.get("error", "Command failed"),
        "stderr": result.get("stderr", ""),
    }

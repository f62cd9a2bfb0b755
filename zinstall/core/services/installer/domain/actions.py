"""
L1 Domain — Callback registry for named hook actions.

The host application registers callables under the names recipes use in
``{callback: name}`` hooks. A callback receives a ``HookContext`` and
signals failure by returning ``False`` or raising.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from zinstall.core.models.recipe import Recipe

logger = logging.getLogger(__name__)


@dataclass
class HookContext:
    """What a callback gets to work with."""

    recipe: Recipe
    hook: str
    backend: str | None = None
    run: Callable[..., dict[str, Any]] | None = None
    extra: dict[str, Any] = field(default_factory=dict)


Callback = Callable[[HookContext], "bool | None"]


class CallbackRegistry:
    """Name → callable mapping supplied by the host application."""

    def __init__(self, callbacks: dict[str, Callback] | None = None) -> None:
        self._callbacks: dict[str, Callback] = dict(callbacks or {})

    def register(self, name: str, fn: Callback | None = None):
        """Register *fn* under *name*; usable as a decorator."""
        def _register(func: Callback) -> Callback:
            if name in self._callbacks:
                logger.warning("Overwriting existing callback: %s", name)
            self._callbacks[name] = func
            return func

        if fn is not None:
            return _register(fn)
        return _register

    def get(self, name: str) -> Callback | None:
        return self._callbacks.get(name)

    def names(self) -> list[str]:
        return sorted(self._callbacks)

    def __contains__(self, name: object) -> bool:
        return name in self._callbacks

"""
L3 Detection — Idempotency guard.

A recipe is satisfied when any of its ``provides`` commands resolves on
the executable search path. A recipe without ``provides`` is never
assumed satisfied.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable

from zinstall.core.models.recipe import Recipe

Which = Callable[[str], "str | None"]


def find_provided(recipe: Recipe, which: Which = shutil.which) -> str | None:
    """First provided command found on PATH, or ``None``."""
    for cmd in recipe.provides:
        if which(cmd):
            return cmd
    return None


def is_recipe_installed(recipe: Recipe, which: Which = shutil.which) -> bool:
    if not recipe.provides:
        return False
    return find_provided(recipe, which) is not None

"""
Domain models — Pydantic types and report dataclasses for the installer.

    from zinstall.core.models import Recipe, Settings, InstallReport
"""

from zinstall.core.models.recipe import (
    Action,
    NamedCallback,
    Recipe,
    ShellExpression,
)
from zinstall.core.models.report import InstallReport, RecipeOutcome
from zinstall.core.models.settings import Settings, bundled_recipes_dir

__all__ = [
    # recipe.py
    "Action",
    "NamedCallback",
    "Recipe",
    "ShellExpression",
    # report.py
    "InstallReport",
    "RecipeOutcome",
    # settings.py
    "Settings",
    "bundled_recipes_dir",
]

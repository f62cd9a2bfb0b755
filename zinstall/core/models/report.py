"""
Install report — per-recipe outcomes of one ``install()`` invocation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

OutcomeStatus = Literal[
    "installed", "already_installed", "no_method", "failed", "skipped",
]


@dataclass
class RecipeOutcome:
    """What happened to one recipe of the stack."""

    recipe_id: str
    name: str = ""
    status: OutcomeStatus = "skipped"
    backend: str | None = None
    message: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipe_id": self.recipe_id,
            "name": self.name,
            "status": self.status,
            "backend": self.backend,
            "message": self.message,
            "warnings": list(self.warnings),
        }


@dataclass
class InstallReport:
    """Result of installing one or more targets."""

    targets: list[str] = field(default_factory=list)
    stack: list[str] = field(default_factory=list)
    outcomes: list[RecipeOutcome] = field(default_factory=list)
    error: Exception | None = None

    def outcome(self, recipe_id: str) -> RecipeOutcome | None:
        for o in self.outcomes:
            if o.recipe_id == recipe_id:
                return o
        return None

    def by_status(self, status: str) -> list[str]:
        return [o.recipe_id for o in self.outcomes if o.status == status]

    @property
    def installed(self) -> list[str]:
        return self.by_status("installed")

    @property
    def failed(self) -> list[str]:
        return self.by_status("failed")

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed

    @property
    def status(self) -> str:
        if self.ok:
            return "ok"
        if self.installed:
            return "partial"
        return "failed"

    def raise_for_error(self) -> None:
        """Re-raise the first fatal error, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        return {
            "targets": list(self.targets),
            "status": self.status,
            "stack": list(self.stack),
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }

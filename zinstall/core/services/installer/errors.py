"""
Installer error taxonomy.

Every error names the recipe and/or backend it concerns so that a failure
can be localised to one phase and one recipe. ``NoApplicableMethod`` is
informational: ``install()`` reports it as a no-op and never raises it.
"""

from __future__ import annotations

from collections.abc import Sequence


class InstallerError(Exception):
    """Base class for all installer errors."""

    def __init__(
        self,
        message: str,
        *,
        recipe_id: str | None = None,
        backend: str | None = None,
    ) -> None:
        super().__init__(message)
        self.recipe_id = recipe_id
        self.backend = backend


class UnknownTarget(InstallerError):
    """A target resolves to no recipe id and no provided command."""

    def __init__(self, target: str, *, required_by: str | None = None) -> None:
        msg = f"No recipe provides '{target}'"
        if required_by:
            msg += f" (required by {required_by})"
        super().__init__(msg, recipe_id=required_by)
        self.target = target
        self.required_by = required_by


class CycleDetected(InstallerError):
    """The depends-graph loops; ``path`` ends with the node it started at."""

    def __init__(self, path: Sequence[str]) -> None:
        self.path = list(path)
        super().__init__(
            "Dependency cycle detected: " + " → ".join(self.path),
            recipe_id=self.path[0] if self.path else None,
        )


class RecipeFieldMissing(InstallerError, KeyError):
    """get-field found neither a value nor a default."""

    def __init__(self, recipe_id: str, field: str) -> None:
        super().__init__(f"Recipe '{recipe_id}' has no field '{field}'", recipe_id=recipe_id)
        self.field = field

    def __str__(self) -> str:
        return self.args[0]


class NoApplicableMethod(InstallerError):
    """No available backend has a package spec for the recipe on this platform."""


class BatchInstallFailure(InstallerError):
    """A batched backend invocation exited non-zero."""

    def __init__(self, backend: str, recipe_ids: Sequence[str], detail: str = "") -> None:
        self.recipe_ids = list(recipe_ids)
        msg = f"Batch installation failed for {backend} ({', '.join(self.recipe_ids)})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg, backend=backend)


class SingleInstallFailure(InstallerError):
    """A non-batchable recipe's install action failed."""


class RepoProvisioningFailure(InstallerError):
    """Key or repository-file setup failed."""


class NetworkFailure(InstallerError):
    """A remote version, key or asset lookup failed."""

    def __init__(self, url: str, detail: str = "", **kwargs) -> None:
        self.url = url
        msg = f"Network request failed: {url}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg, **kwargs)


class HookFailure(InstallerError):
    """A pre_install (fatal) or post_install (warning) action failed."""

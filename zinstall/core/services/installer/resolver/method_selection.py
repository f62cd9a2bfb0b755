"""
L2 Resolver — Install method selection.

Picks the backend a recipe installs through on this machine: the first
backend, in ascending precedence, that is available here and has a
non-empty package spec on the recipe. No match is not an error; the
recipe simply does not apply to this platform.
"""

from __future__ import annotations

import logging
from collections.abc import Collection

from zinstall.core.models.recipe import Recipe
from zinstall.core.services.installer.data.backends import BACKEND_ORDER, get_backend

logger = logging.getLogger(__name__)


def pick_install_method(recipe: Recipe, available: Collection[str]) -> str | None:
    """Preferred available backend for *recipe*, or ``None``.

    Args:
        recipe: The recipe to install.
        available: Backend ids usable on this machine.

    Returns:
        A backend id, or ``None`` when the recipe is a no-op here.
    """
    for backend in BACKEND_ORDER:
        if backend not in available:
            continue
        if backend == "install_cmd":
            if recipe.install_cmd is not None:
                return backend
            continue
        if recipe.spec_for(backend):
            return backend
    return None


def build_install_cmd(backend: str, specs: list[str]) -> list[str]:
    """Command list installing every package of *specs* through *backend*.

    Each spec may name several packages (``"docker-ce docker-compose-plugin"``).

    Raises:
        ValueError: If the backend does not batch installs.
    """
    spec = get_backend(backend)
    if not spec.batchable or not spec.install:
        raise ValueError(f"Backend '{backend}' has no batch install command")
    packages: list[str] = []
    for s in specs:
        for pkg in s.split():
            if pkg not in packages:
                packages.append(pkg)
    return list(spec.install) + packages


def parse_github_spec(spec: str) -> tuple[str, str, str]:
    """Split ``app:owner/repo@version`` into ``(app, repo, version)``.

    ``app:`` defaults to the repo name and ``@version`` to ``latest``.

    Raises:
        ValueError: If no ``owner/repo`` is present.
    """
    app, sep, rest = spec.strip().partition(":")
    if not sep:
        app, rest = "", app
    repo, _, version = rest.partition("@")
    repo = repo.strip()
    if repo.count("/") != 1 or not all(repo.split("/")):
        raise ValueError(f"Invalid GitHub spec {spec!r}: expected app:owner/repo@version")
    return (app.strip() or repo.split("/")[1], repo, version.strip() or "latest")

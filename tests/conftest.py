"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from zinstall.core.models.settings import Settings
from zinstall.core.services.installer.data.recipe_loader import RecipeIndex
from zinstall.core.services.installer.domain.actions import CallbackRegistry
from zinstall.core.services.installer.orchestration.orchestrator import Installer
from tests.installer.fakes import DEBIAN, FakeRunner, FakeWhich


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def recipe_dir(tmp_path: Path) -> Path:
    d = tmp_path / "recipes"
    d.mkdir()
    return d


@pytest.fixture
def write_recipe(recipe_dir: Path) -> Callable[..., Path]:
    """Write ``<recipe_dir>/<id>.yml`` from keyword fields."""

    def _write(recipe_id: str, **fields: Any) -> Path:
        path = recipe_dir / f"{recipe_id}.yml"
        path.write_text(yaml.safe_dump(fields, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings(tmp_path: Path, recipe_dir: Path) -> Settings:
    for name in ("keyrings", "sources.list.d", "yum.repos.d", "opt"):
        (tmp_path / name).mkdir()
    return Settings(
        recipe_dirs=[recipe_dir],
        include_bundled_recipes=False,
        github_install_dir=tmp_path / "opt",
        keyring_dir=tmp_path / "keyrings",
        apt_sources_dir=tmp_path / "sources.list.d",
        yum_repos_dir=tmp_path / "yum.repos.d",
        stream_output=False,
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def which() -> FakeWhich:
    return FakeWhich()


@pytest.fixture
def make_installer(
    settings: Settings, runner: FakeRunner, which: FakeWhich,
) -> Callable[..., Installer]:
    """Build an Installer wired to the fakes; keyword args override."""

    def _make(**overrides: Any) -> Installer:
        kwargs: dict[str, Any] = {
            "profile": DEBIAN,
            "run": runner,
            "which": which,
            "callbacks": CallbackRegistry(),
            "fetch": lambda url, **kw: b"-----BEGIN PGP PUBLIC KEY BLOCK-----\n",
        }
        kwargs.update(overrides)
        return Installer(settings, **kwargs)

    return _make


@pytest.fixture
def index(recipe_dir: Path) -> RecipeIndex:
    return RecipeIndex([recipe_dir])

"""
Settings model — runtime configuration of the installer.

Loaded from an optional ``zinstall.yml`` plus environment overrides
(see ``zinstall.core.config.loader``).
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


def _default_github_dir() -> Path:
    return Path.home() / ".local" / "opt"


class Settings(BaseModel):
    """Where recipes live, where things get installed, and how long to wait."""

    recipe_dirs: list[Path] = Field(default_factory=list)
    include_bundled_recipes: bool = True

    github_install_dir: Path = Field(default_factory=_default_github_dir)
    keyring_dir: Path = Path("/usr/share/keyrings")
    apt_sources_dir: Path = Path("/etc/apt/sources.list.d")
    yum_repos_dir: Path = Path("/etc/yum.repos.d")

    shell: str = "bash"
    stream_output: bool = True
    command_timeout: int = Field(default=1800, gt=0)
    http_timeout: int = Field(default=30, gt=0)

    @field_validator("recipe_dirs", mode="before")
    @classmethod
    def _split_dirs(cls, value):
        if isinstance(value, (str, Path)):
            return [value]
        return value

    @field_validator("recipe_dirs", "github_install_dir", mode="after")
    @classmethod
    def _expand(cls, value):
        if isinstance(value, list):
            return [Path(p).expanduser() for p in value]
        return Path(value).expanduser()

    def all_recipe_dirs(self) -> list[Path]:
        """Recipe directories in load order (bundled first, user dirs override)."""
        dirs: list[Path] = []
        if self.include_bundled_recipes:
            dirs.append(bundled_recipes_dir())
        dirs.extend(self.recipe_dirs)
        return dirs


def bundled_recipes_dir() -> Path:
    """Directory holding the recipes shipped with the package."""
    return Path(__file__).resolve().parent.parent.parent / "recipes"

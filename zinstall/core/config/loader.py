"""
Configuration loader — reads zinstall.yml into ``Settings``.

Lookup order for the file: explicit path → ``zinstall.yml`` walking up
from the current directory → ``$XDG_CONFIG_HOME/zinstall/zinstall.yml``.
A missing file is fine: defaults apply. Environment variables override
whatever the file says.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from zinstall.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "zinstall.yml"

# Environment variable → settings key
_ENV_OVERRIDES: dict[str, str] = {
    "GITHUB_RELEASES_INSTALL_DIR": "github_install_dir",
    "ZINSTALL_COMMAND_TIMEOUT": "command_timeout",
    "ZINSTALL_HTTP_TIMEOUT": "http_timeout",
    "ZINSTALL_SHELL": "shell",
}


class ConfigError(Exception):
    """Raised when configuration is invalid."""


def user_config_file(environ: dict[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    base = env.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "zinstall" / CONFIG_FILE


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for zinstall.yml from *start_dir* upward, then the user config dir."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    user_file = user_config_file()
    return user_file if user_file.is_file() else None


def _read_config(path: Path) -> dict:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may wrap everything under a "zinstall" key or be flat
    data = data.get("zinstall", data) if "zinstall" in data else data

    # Relative recipe dirs are relative to the config file
    dirs = data.get("recipe_dirs")
    if isinstance(dirs, str):
        dirs = [dirs]
    if isinstance(dirs, list):
        data["recipe_dirs"] = [
            str(path.parent / Path(d).expanduser()) if not Path(d).expanduser().is_absolute()
            else d
            for d in dirs
        ]
    return data


def _apply_env(data: dict, environ: dict[str, str]) -> dict:
    merged = dict(data)
    recipes_env = environ.get("ZINSTALL_RECIPES_DIR")
    if recipes_env:
        merged["recipe_dirs"] = [p for p in recipes_env.split(os.pathsep) if p]
    for var, key in _ENV_OVERRIDES.items():
        if environ.get(var):
            merged[key] = environ[var]
    return merged


def load_settings(
    path: Path | None = None,
    *,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit config file. If None, searches for one.
        environ: Environment to read overrides from (default: os.environ).

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    env = dict(os.environ if environ is None else environ)

    if path is not None and not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    if path is None:
        path = find_config_file()

    data: dict = {}
    if path is not None:
        logger.debug("Loading settings from %s", path)
        data = _read_config(path)

    try:
        settings = Settings.model_validate(_apply_env(data, env))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug("Recipe directories: %s", ", ".join(map(str, settings.all_recipe_dirs())))
    return settings

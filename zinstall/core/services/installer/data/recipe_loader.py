"""
L0 Data — Recipe loader and index.

Scans recipe directories once, parses each YAML file into a validated
``Recipe`` and indexes:

    - raw fields by ``(recipe_id, field)``
    - every provided command → recipe id (the recipe's name when it
      declares no ``provides``)

Malformed files are skipped with a warning; one bad recipe never aborts
the whole load.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from zinstall.core.models.recipe import NamedCallback, Recipe, ShellExpression
from zinstall.core.services.installer.data.backends import BACKENDS, TAP_FIELD
from zinstall.core.services.installer.errors import RecipeFieldMissing

logger = logging.getLogger(__name__)

RECIPE_SUFFIXES = (".yml", ".yaml")

_LIST_FIELDS = ("provides", "depends", TAP_FIELD)
_ACTION_FIELDS = ("pre_install", "post_install", "install_cmd")


class RecipeFormatError(ValueError):
    """A recipe file cannot be turned into a ``Recipe``."""


def _as_words(value: Any, key: str) -> tuple[str, ...]:
    """Space-separated string or list of strings → tuple of words."""
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(value.split())
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(w for v in value for w in v.split())
    raise RecipeFormatError(f"'{key}' must be a string or a list of strings")


def _as_spec(value: Any, key: str) -> str:
    """Package spec: a string, or a list of strings joined by spaces."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return " ".join(v.strip() for v in value)
    raise RecipeFormatError(f"'{key}' must be a string or a list of strings")


def parse_action(value: Any, key: str = "action") -> NamedCallback | ShellExpression | None:
    """Turn a YAML value into an Action.

    - ``"text"`` → ``ShellExpression``
    - ``{callback: name}`` → ``NamedCallback``
    - ``{shell: text}`` → ``ShellExpression``
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return ShellExpression(text=value.strip())
    if isinstance(value, dict) and len(value) == 1:
        kind, arg = next(iter(value.items()))
        if isinstance(arg, str) and arg.strip():
            if kind == "callback":
                return NamedCallback(name=arg.strip())
            if kind == "shell":
                return ShellExpression(text=arg.strip())
    raise RecipeFormatError(
        f"'{key}' must be a shell string, {{callback: name}} or {{shell: text}}"
    )


def _action_text(action: NamedCallback | ShellExpression) -> str:
    return action.name if isinstance(action, NamedCallback) else action.text


def parse_recipe(recipe_id: str, data: Any, source: str = "") -> Recipe:
    """Validate one recipe document.

    Raises:
        RecipeFormatError: If the document is not a valid recipe.
    """
    if not isinstance(data, dict):
        raise RecipeFormatError(
            f"expected a mapping, got {type(data).__name__}"
        )

    raw: dict[str, str] = {}
    methods: dict[str, str] = {}
    repos: dict[str, str] = {}
    actions: dict[str, NamedCallback | ShellExpression | None] = {}

    for key, value in data.items():
        if not isinstance(key, str):
            raise RecipeFormatError(f"non-string key: {key!r}")

        if key in _LIST_FIELDS:
            words = _as_words(value, key)
            if words:
                raw[key] = " ".join(words)
        elif key in _ACTION_FIELDS:
            action = parse_action(value, key)
            actions[key] = action
            if action is not None:
                raw[key] = _action_text(action)
                if key == "install_cmd":
                    methods[key] = raw[key]
        elif key in BACKENDS:
            spec = _as_spec(value, key)
            if spec:
                methods[key] = spec
                raw[key] = spec
        elif key.endswith("_repo"):
            backend = key[: -len("_repo")]
            if backend not in BACKENDS:
                raise RecipeFormatError(f"'{key}' names an unknown backend")
            spec = _as_spec(value, key)
            if spec:
                repos[backend] = spec
                raw[key] = spec
        elif isinstance(value, (str, int, float, bool)):
            raw[key] = str(value)
        elif value is not None:
            raise RecipeFormatError(f"'{key}' must be a scalar value")

    name = raw.get("name", "").strip() or recipe_id
    raw["name"] = name

    try:
        return Recipe(
            id=recipe_id,
            name=name,
            provides=_as_words(data.get("provides"), "provides"),
            depends=_as_words(data.get("depends"), "depends"),
            methods=methods,
            repos=repos,
            taps=_as_words(data.get(TAP_FIELD), TAP_FIELD),
            pre_install=actions.get("pre_install"),
            post_install=actions.get("post_install"),
            install_cmd=actions.get("install_cmd"),
            source=source,
            fields=raw,
        )
    except ValidationError as e:
        raise RecipeFormatError(str(e)) from e


def iter_recipe_files(directory: Path) -> Iterator[Path]:
    """Yield recipe files of *directory* in sorted order."""
    if not directory.is_dir():
        logger.debug("Recipe directory not found: %s", directory)
        return
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix in RECIPE_SUFFIXES:
            yield path


def load_recipe_file(path: Path) -> Recipe:
    """Read and parse one recipe file.

    Raises:
        RecipeFormatError: If the file is unreadable or invalid.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise RecipeFormatError(f"cannot read: {e}") from e
    except yaml.YAMLError as e:
        raise RecipeFormatError(f"invalid YAML: {e}") from e
    return parse_recipe(path.stem, data, source=str(path))


class RecipeIndex:
    """Lazily-loaded index over one or more recipe directories.

    Later directories override earlier ones by recipe id. ``load()`` is
    guarded: only the first call scans; use ``reload()`` to rescan.
    """

    def __init__(self, directories: Sequence[Path]) -> None:
        self._directories = [Path(d) for d in directories]
        self._loaded = False
        self._recipes: dict[str, Recipe] = {}
        self._fields: dict[tuple[str, str], str] = {}
        self._commands: dict[str, str] = {}
        self.skipped: dict[str, str] = {}

    @property
    def directories(self) -> list[Path]:
        return list(self._directories)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """Scan all directories once."""
        if self._loaded:
            return
        self._loaded = True

        for directory in self._directories:
            for path in iter_recipe_files(directory):
                try:
                    recipe = load_recipe_file(path)
                except RecipeFormatError as e:
                    logger.warning("Skipping malformed recipe %s: %s", path, e)
                    self.skipped[str(path)] = str(e)
                    continue
                self._add(recipe)

        logger.debug(
            "Indexed %d recipes (%d commands, %d skipped)",
            len(self._recipes), len(self._commands), len(self.skipped),
        )

    def reload(self) -> None:
        """Drop everything and rescan."""
        self._loaded = False
        self._recipes.clear()
        self._fields.clear()
        self._commands.clear()
        self.skipped.clear()
        self.load()

    def add(self, recipe: Recipe) -> None:
        """Index a recipe built in code (e.g. by the host application)."""
        self.load()
        self._add(recipe)

    def _add(self, recipe: Recipe) -> None:
        old = self._recipes.get(recipe.id)
        if old is not None:
            logger.debug("Recipe '%s' overridden by %s", recipe.id, recipe.source)
            for key in [k for k in self._fields if k[0] == recipe.id]:
                del self._fields[key]
            for cmd in [c for c, rid in self._commands.items() if rid == recipe.id]:
                del self._commands[cmd]

        self._recipes[recipe.id] = recipe
        for field, value in recipe.fields.items():
            self._fields[(recipe.id, field)] = value
        for cmd in recipe.commands:
            self._commands[cmd] = recipe.id

    # ── Lookups ───────────────────────────────────────────────────

    def resolve(self, target: str) -> str | None:
        """Recipe id for a provided command or a recipe id; ``None`` if unknown."""
        self.load()
        if target in self._commands:
            return self._commands[target]
        if target in self._recipes:
            return target
        return None

    def get(self, recipe_id: str) -> Recipe | None:
        self.load()
        return self._recipes.get(recipe_id)

    def field(self, recipe_id: str, field: str, default: str | None = None) -> str:
        """Raw field value, else *default*.

        Raises:
            RecipeFieldMissing: If neither exists.
        """
        self.load()
        key = (recipe_id, field)
        if key in self._fields:
            return self._fields[key]
        if default is not None:
            return default
        raise RecipeFieldMissing(recipe_id, field)

    def ids(self) -> list[str]:
        self.load()
        return sorted(self._recipes)

    def recipes(self) -> list[Recipe]:
        self.load()
        return [self._recipes[rid] for rid in sorted(self._recipes)]

    def commands(self) -> dict[str, str]:
        self.load()
        return dict(self._commands)

    def __contains__(self, recipe_id: object) -> bool:
        self.load()
        return recipe_id in self._recipes

    def __len__(self) -> int:
        self.load()
        return len(self._recipes)

"""
Recipe model — the declarative unit describing one installable target.

Recipes are parsed once from YAML files by the recipe loader and are
immutable afterwards. Hooks are stored as a tagged ``Action``: either a
named callback resolved through the host's callback registry, or a
literal shell expression.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class NamedCallback(BaseModel):
    """Reference to a callback registered by the host application."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["callback"] = "callback"
    name: str = Field(min_length=1)

    def describe(self) -> str:
        return f"callback {self.name}"


class ShellExpression(BaseModel):
    """A literal shell expression evaluated by the configured shell."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["shell"] = "shell"
    text: str = Field(min_length=1)

    def describe(self) -> str:
        return self.text


Action = Annotated[Union[NamedCallback, ShellExpression], Field(discriminator="kind")]


class Recipe(BaseModel):
    """One installable target.

    ``methods`` maps a backend id to that backend's package spec string.
    ``repos`` maps a backend id to its repository/key descriptor.
    ``fields`` keeps every raw field as a string, for ``get-field`` lookups.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    provides: tuple[str, ...] = ()
    depends: tuple[str, ...] = ()
    methods: dict[str, str] = Field(default_factory=dict)
    repos: dict[str, str] = Field(default_factory=dict)
    taps: tuple[str, ...] = ()
    pre_install: Action | None = None
    post_install: Action | None = None
    install_cmd: Action | None = None
    source: str = ""
    fields: dict[str, str] = Field(default_factory=dict)

    @property
    def commands(self) -> tuple[str, ...]:
        """Commands that identify this recipe (``provides``, else its name)."""
        return self.provides or (self.name,)

    def spec_for(self, backend: str) -> str:
        """Package spec for *backend*, or ``""`` when the recipe has none."""
        return self.methods.get(backend, "").strip()

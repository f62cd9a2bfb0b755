"""
L4 Execution — Session state.

Lives as long as the ``Installer`` that owns it (one process / shell
session). Nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SessionState:
    """Per-session refresh flags and handled recipes."""

    refreshed: set[str] = field(default_factory=set)
    needs_refresh: set[str] = field(default_factory=set)
    handled: set[str] = field(default_factory=set)

    def flag_refresh(self, backend: str) -> None:
        """A provisioning step changed *backend*'s repositories."""
        self.needs_refresh.add(backend)

    def should_refresh(self, backend: str, force: bool = False) -> bool:
        return (
            force
            or backend not in self.refreshed
            or backend in self.needs_refresh
        )

    def mark_refreshed(self, backend: str) -> None:
        self.refreshed.add(backend)
        self.needs_refresh.discard(backend)

    def mark_handled(self, recipe_id: str) -> None:
        self.handled.add(recipe_id)

    def was_handled(self, recipe_id: str) -> bool:
        return recipe_id in self.handled

    def reset(self) -> None:
        self.refreshed.clear()
        self.needs_refresh.clear()
        self.handled.clear()

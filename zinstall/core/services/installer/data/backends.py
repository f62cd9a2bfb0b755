"""
L0 Data — Backend table.

Pure data. No logic beyond lookups. Lower precedence = preferred.
Batchable backends take many package specs in one invocation; the
others (GitHub release, custom command) install one recipe at a time.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BackendSpec:
    """Static description of one installation backend."""

    id: str
    precedence: int
    batchable: bool
    install: tuple[str, ...] = ()
    refresh: tuple[str, ...] = ()
    needs_sudo: bool = False
    label: str = ""
    refresh_as: str = ""


BACKENDS: dict[str, BackendSpec] = {
    spec.id: spec
    for spec in (
        BackendSpec("brew", 1, True, ("brew", "install"), ("brew", "update"),
                    label="Homebrew formula"),
        BackendSpec("brew-cask", 2, True, ("brew", "install", "--cask"), ("brew", "update"),
                    label="Homebrew cask", refresh_as="brew"),
        BackendSpec("pkg", 3, True, ("pkg", "install", "-y"), ("pkg", "update"),
                    label="Termux pkg"),
        BackendSpec("flatpak", 4, True, ("flatpak", "install", "-y"),
                    label="Flatpak"),
        BackendSpec("snap", 5, True, ("snap", "install"), needs_sudo=True,
                    label="Snap"),
        BackendSpec("apt", 6, True, ("apt", "install", "-y"), ("apt", "update", "-qq"),
                    needs_sudo=True, label="APT"),
        BackendSpec("dnf", 7, True, ("dnf", "install", "-y"), ("dnf", "makecache"),
                    needs_sudo=True, label="DNF"),
        BackendSpec("pacman", 8, True, ("pacman", "-S", "--noconfirm"), ("pacman", "-Sy"),
                    needs_sudo=True, label="pacman"),
        BackendSpec("cargo", 9, True, ("cargo", "install"),
                    label="cargo"),
        BackendSpec("github", 10, False, label="GitHub release"),
        BackendSpec("install_cmd", 11, False, label="custom command"),
    )
}

# Backend ids in ascending precedence order.
BACKEND_ORDER: tuple[str, ...] = tuple(
    sorted(BACKENDS, key=lambda b: BACKENDS[b].precedence)
)

# Recipe key holding formula taps.
TAP_FIELD = "brew_tap"


def get_backend(backend_id: str) -> BackendSpec:
    """Look up a backend; ``KeyError`` for unknown ids."""
    return BACKENDS[backend_id]


def refresh_key(backend_id: str) -> str:
    """Backend whose refresh flags *backend_id* shares (brew-cask → brew)."""
    spec = BACKENDS.get(backend_id)
    return (spec.refresh_as if spec else "") or backend_id


def is_batchable(backend_id: str) -> bool:
    spec = BACKENDS.get(backend_id)
    return bool(spec and spec.batchable)

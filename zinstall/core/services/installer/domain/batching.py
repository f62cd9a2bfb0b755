"""
L1 Domain — Install waves and backend groups (pure).

A wave is a set of groups that can be installed once every earlier wave
is done. A recipe joins its dependency's wave when both share a
batchable backend (the package manager orders packages inside one
invocation); otherwise it goes one wave later.
No I/O, no subprocess.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field


@dataclass
class InstallGroup:
    """Pending recipes of one wave sharing a backend."""

    backend: str
    recipe_ids: list[str] = field(default_factory=list)
    wave: int = 0


def assign_waves(
    pending: Sequence[str],
    deps: Mapping[str, Sequence[str]],
    backend_of: Mapping[str, str],
    batchable: Callable[[str], bool],
) -> dict[str, int]:
    """Wave index per pending recipe.

    Args:
        pending: Recipe ids in dependency order (dependencies first).
        deps: Recipe id → dependency recipe ids.
        backend_of: Resolved backend per pending recipe.
        batchable: Whether a backend installs many packages at once.
    """
    waves: dict[str, int] = {}
    for rid in pending:
        wave = 0
        for dep in deps.get(rid, ()):
            if dep not in waves:
                continue  # not pending: installed already or no method
            shares_batch = (
                backend_of[dep] == backend_of[rid] and batchable(backend_of[rid])
            )
            wave = max(wave, waves[dep] if shares_batch else waves[dep] + 1)
        waves[rid] = wave
    return waves


def plan_groups(
    pending: Sequence[str],
    deps: Mapping[str, Sequence[str]],
    backend_of: Mapping[str, str],
    batchable: Callable[[str], bool],
) -> list[list[InstallGroup]]:
    """Waves of backend groups, in execution order.

    Groups inside a wave keep the order in which their backend first
    appears in *pending*; recipes inside a group keep dependency order.
    """
    waves = assign_waves(pending, deps, backend_of, batchable)
    if not waves:
        return []

    plan: list[list[InstallGroup]] = [[] for _ in range(max(waves.values()) + 1)]
    for rid in pending:
        groups = plan[waves[rid]]
        backend = backend_of[rid]
        for group in groups:
            if group.backend == backend:
                group.recipe_ids.append(rid)
                break
        else:
            groups.append(InstallGroup(backend=backend, recipe_ids=[rid], wave=waves[rid]))
    return plan

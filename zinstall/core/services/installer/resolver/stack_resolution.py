"""
L2 Resolver — Dependency stack resolution.

Turns requested targets (recipe ids or provided commands) into one
merged, duplicate-free stack where every recipe follows its
dependencies. Unknown references and cycles are hard errors.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from zinstall.core.services.installer.data.recipe_loader import RecipeIndex
from zinstall.core.services.installer.domain.dag import order_stack
from zinstall.core.services.installer.errors import CycleDetected, UnknownTarget

logger = logging.getLogger(__name__)


def build_graph(
    index: RecipeIndex,
    targets: Sequence[str],
) -> tuple[list[str], dict[str, tuple[str, ...]]]:
    """Resolve every reachable reference into an explicit id graph.

    Returns:
        ``(root_ids, graph)`` where ``graph`` maps each reachable recipe
        id to its dependency ids, in declaration order.

    Raises:
        UnknownTarget: If a target or dependency names no recipe.
    """
    roots: list[str] = []
    for target in targets:
        rid = index.resolve(target)
        if rid is None:
            raise UnknownTarget(target)
        roots.append(rid)

    graph: dict[str, tuple[str, ...]] = {}
    todo = list(roots)
    while todo:
        rid = todo.pop()
        if rid in graph:
            continue
        recipe = index.get(rid)
        deps: list[str] = []
        for ref in recipe.depends if recipe else ():
            dep_id = index.resolve(ref)
            if dep_id is None:
                raise UnknownTarget(ref, required_by=rid)
            deps.append(dep_id)
        graph[rid] = tuple(deps)
        todo.extend(d for d in deps if d not in graph)

    return roots, graph


def resolve_stack(index: RecipeIndex, targets: Sequence[str]) -> list[str]:
    """Merged dependency stack for *targets*.

    Raises:
        UnknownTarget: If any reference cannot be resolved.
        CycleDetected: If the dependency graph loops.
    """
    roots, graph = build_graph(index, targets)
    result = order_stack(graph, roots)
    if not result.ok:
        raise CycleDetected(result.cycle or [])
    logger.debug("Stack for %s: %s", ", ".join(targets), " ".join(result.stack))
    return result.stack

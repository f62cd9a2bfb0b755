"""
L1 Domain — Dependency stack ordering (pure).

Three-colour depth-first traversal over an explicit graph
(recipe id → dependency ids). Dependencies are appended before their
dependents (post-order); several roots merge first-seen-wins so shared
dependencies appear once.
No I/O, no subprocess.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

WHITE, GRAY, BLACK = 0, 1, 2


@dataclass
class StackResult:
    """Ordered stack, or the cyclic path that prevented one."""

    stack: list[str] = field(default_factory=list)
    cycle: list[str] | None = None

    @property
    def ok(self) -> bool:
        return self.cycle is None


def order_stack(
    graph: Mapping[str, Sequence[str]],
    roots: Sequence[str],
) -> StackResult:
    """Post-order union of the dependency closure of *roots*.

    Args:
        graph: Every reachable node → its dependency ids. Nodes missing
            from the mapping are treated as leaves.
        roots: Root ids, in request order.

    Returns:
        ``StackResult`` whose ``stack`` lists every dependency before its
        dependents with no duplicates, or whose ``cycle`` holds the loop,
        e.g. ``["P", "Q", "P"]``.
    """
    color: dict[str, int] = {}
    stack: list[str] = []
    path: list[str] = []

    def visit(node: str) -> list[str] | None:
        state = color.get(node, WHITE)
        if state == BLACK:
            return None
        if state == GRAY:
            return path[path.index(node):] + [node]

        color[node] = GRAY
        path.append(node)
        for dep in graph.get(node, ()):
            cycle = visit(dep)
            if cycle is not None:
                return cycle
        path.pop()
        color[node] = BLACK
        stack.append(node)
        return None

    for root in roots:
        cycle = visit(root)
        if cycle is not None:
            return StackResult(stack=[], cycle=cycle)

    return StackResult(stack=stack)


def is_topological(stack: Sequence[str], graph: Mapping[str, Sequence[str]]) -> bool:
    """True when every node of *stack* comes after all of its dependencies."""
    position = {node: i for i, node in enumerate(stack)}
    if len(position) != len(stack):
        return False
    for node in stack:
        for dep in graph.get(node, ()):
            if dep not in position or position[dep] > position[node]:
                return False
    return True

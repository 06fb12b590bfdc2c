"""Depth-first post-order traversal over graphs with re-convergent paths."""

from __future__ import annotations

from typing import Callable, Hashable, Iterable, List, Set, TypeVar

T = TypeVar("T", bound=Hashable)


def postorder_depth_first(
    starts: Iterable[T],
    neighbors: Callable[[T], Iterable[T]],
    visited: Set[T] | None = None,
) -> List[T]:
    """Return vertices reachable from ``starts`` in depth-first post-order.

    A vertex is emitted only after every neighbor reachable through it has
    been emitted. ``visited`` is shared across all start points (and may be
    passed in to share it across calls), so each vertex is emitted once even
    when several paths lead to it. Uses an explicit stack, so depth is not
    limited by the recursion limit.
    """
    if visited is None:
        visited = set()
    order: List[T] = []
    for start in starts:
        if start in visited:
            continue
        visited.add(start)
        stack = [(start, iter(neighbors(start)))]
        while stack:
            vertex, pending = stack[-1]
            for nbr in pending:
                if nbr not in visited:
                    visited.add(nbr)
                    stack.append((nbr, iter(neighbors(nbr))))
                    break
            else:
                stack.pop()
                order.append(vertex)
    return order

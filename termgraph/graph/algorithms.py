"""
Generic graph walks that only need a way to enumerate the neighbours of a
vertex.
"""

import logging
from collections import deque
from typing import Callable, Dict, Hashable, Iterable, List

logger = logging.getLogger(__name__)


def bfs(
    starts: Iterable[Hashable],
    grab_neighbours: Callable[[Hashable], Iterable[Hashable]],
    visitor: Callable[[Hashable], bool],
) -> None:
    """
    Breadth-first walk from several start vertices.

    Every discovered vertex (the start vertices included, in the given order)
    is passed to ``visitor`` exactly once. The walk stops as soon as the
    visitor returns False.

    Args:
        starts: Vertices to start from
        grab_neighbours: Returns the vertices reachable in one step
        visitor: Called once per vertex, returns whether to continue
    """
    visited = set()
    queue = deque()

    for vertex in starts:
        if vertex in visited:
            continue
        visited.add(vertex)
        if not visitor(vertex):
            return
        queue.append(vertex)

    while queue:
        vertex = queue.popleft()
        for neighbour in grab_neighbours(vertex):
            if neighbour in visited:
                continue
            visited.add(neighbour)
            if not visitor(neighbour):
                return
            queue.append(neighbour)


def topological_order(
    vertices: Iterable[Hashable],
    in_degree: Callable[[Hashable], int],
    grab_children: Callable[[Hashable], Iterable[Hashable]],
) -> List[Hashable]:
    """
    Kahn's algorithm. Returns the vertices so that every vertex precedes its
    children. Returns a shorter list than the number of vertices if the
    graph has a cycle; callers decide how to treat that.
    """
    remaining: Dict[Hashable, int] = {}
    queue = deque()
    for vertex in vertices:
        remaining[vertex] = in_degree(vertex)
        if remaining[vertex] == 0:
            queue.append(vertex)

    order = []
    while queue:
        vertex = queue.popleft()
        order.append(vertex)
        for child in grab_children(vertex):
            remaining[child] -= 1
            if remaining[child] == 0:
                queue.append(child)

    if len(order) != len(remaining):
        logger.debug(f"Topological sort stopped after {len(order)} of {len(remaining)} vertices")
    return order

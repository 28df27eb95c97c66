"""
Read-only, index based view of a directed graph for tight loops.

Each vertex is identified by its position. Parents, children, ancestors and
descendants are stored as sorted numpy arrays of positions, so the inner loops
of enrichment scoring can work on plain integers.
"""

import logging
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

import numpy as np

from .directed import DirectedGraph
from ..instrumentation import timed

logger = logging.getLogger(__name__)

T = TypeVar("T")

_INDEX_DTYPE = np.int32


def _index_array(indices: Iterable[int]) -> np.ndarray:
    return np.array(sorted(indices), dtype=_INDEX_DTYPE)


class SlimDirectedGraphView(Generic[T]):
    """
    Flattened adjacency structure derived from a DirectedGraph.

    Attributes:
        vertices: The (mapped) vertex objects, position is the index
        vertex_parents: Per vertex, the indices of its parents
        vertex_children: Per vertex, the indices of its children
        vertex_ancestors: Per vertex, the indices of its ancestors (itself included)
        vertex_descendants: Per vertex, the indices of its descendants (itself included)
    """

    def __init__(self):
        self.vertices: List[T] = []
        self.vertex_to_index: Dict[T, int] = {}
        self.vertex_parents: List[np.ndarray] = []
        self.vertex_children: List[np.ndarray] = []
        self.vertex_ancestors: List[np.ndarray] = []
        self.vertex_descendants: List[np.ndarray] = []

    @classmethod
    @timed("SlimDirectedGraphView.create")
    def create(
        cls, graph: DirectedGraph, mapper: Optional[Callable[[Any], T]] = None
    ) -> "SlimDirectedGraphView[T]":
        """
        Build the view.

        Args:
            graph: The graph to flatten
            mapper: Maps each graph vertex to the object stored in the view,
                the identity by default
        """
        view = cls()
        graph_vertices = graph.vertices
        graph_index = {v: i for i, v in enumerate(graph_vertices)}

        for vertex in graph_vertices:
            mapped = mapper(vertex) if mapper is not None else vertex
            view.vertex_to_index[mapped] = len(view.vertices)
            view.vertices.append(mapped)

        for vertex in graph_vertices:
            view.vertex_parents.append(
                _index_array(graph_index[p] for p in graph.get_parent_nodes(vertex))
            )
            view.vertex_children.append(
                _index_array(graph_index[c] for c in graph.get_child_nodes(vertex))
            )

            ancestors = []
            graph.bfs([vertex], lambda v: ancestors.append(graph_index[v]) or True, against_flow=True)
            view.vertex_ancestors.append(_index_array(ancestors))

            descendants = []
            graph.bfs([vertex], lambda v: descendants.append(graph_index[v]) or True)
            view.vertex_descendants.append(_index_array(descendants))

        logger.debug(f"Created slim view with {len(view.vertices)} vertices")
        return view

    def __len__(self) -> int:
        return len(self.vertices)

    @property
    def number_of_vertices(self) -> int:
        return len(self.vertices)

    def get_vertex(self, index: int) -> T:
        return self.vertices[index]

    def get_vertex_index(self, vertex: T) -> int:
        """Return the index of the vertex or -1 if it is not part of the view."""
        return self.vertex_to_index.get(vertex, -1)

    def vertex_indices(self, vertices: Iterable[T]) -> np.ndarray:
        """Indices of the given vertices; unknown vertices are skipped."""
        indices = [self.vertex_to_index[v] for v in vertices if v in self.vertex_to_index]
        return np.array(indices, dtype=_INDEX_DTYPE)

    def is_ancestor(self, i: int, j: int) -> bool:
        """Whether vertex i is an ancestor of vertex j (or the same vertex)."""
        return _contains(self.vertex_ancestors[j], i)

    def is_descendant(self, i: int, j: int) -> bool:
        """Whether vertex i is a descendant of vertex j (or the same vertex)."""
        return _contains(self.vertex_descendants[j], i)

    def _map(self, indices: np.ndarray) -> List[T]:
        return [self.vertices[i] for i in indices]

    def get_parents(self, vertex: T) -> List[T]:
        return self._map(self.vertex_parents[self.vertex_to_index[vertex]])

    def get_children(self, vertex: T) -> List[T]:
        return self._map(self.vertex_children[self.vertex_to_index[vertex]])

    def get_ancestors(self, vertex: T) -> List[T]:
        return self._map(self.vertex_ancestors[self.vertex_to_index[vertex]])

    def get_descendants(self, vertex: T) -> List[T]:
        return self._map(self.vertex_descendants[self.vertex_to_index[vertex]])


def _contains(sorted_indices: np.ndarray, index: int) -> bool:
    position = np.searchsorted(sorted_indices, index)
    return bool(position < len(sorted_indices) and sorted_indices[position] == index)

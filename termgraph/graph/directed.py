# termgraph/graph/directed.py
"""
Directed graph engine used as the substrate of the ontology.

Vertices are arbitrary hashable values. Every vertex keeps an ordered list of
incoming and outgoing edges, so iteration order is deterministic. No
multi-edges are allowed, but adding a duplicate is the caller's problem: the
engine does not check for it on insertion.
"""

import heapq
import itertools
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Set,
    TypeVar,
)

from . import algorithms
from ..instrumentation import timed

logger = logging.getLogger(__name__)

V = TypeVar("V", bound=Hashable)

# (vertex) -> continue?
Visitor = Callable[[Any], bool]
# (vertex, path, distance) -> continue?
DistanceVisitor = Callable[[Any, List[Any], int], bool]
# (source, dest, data) -> weight
EdgeWeighter = Callable[[Any, Any, Any], int]
# [data, ...] -> merged data
EdgeDataMerger = Callable[[List[Any]], Any]


class GraphError(Exception):
    """Base class of all graph engine errors."""


class VertexNotFoundError(GraphError, KeyError):
    """A vertex was referenced that is not part of the graph."""

    def __init__(self, vertex):
        super().__init__(vertex)
        self.vertex = vertex

    def __str__(self):
        return f"Vertex {self.vertex!r} not contained within the graph"


class GraphConsistencyError(GraphError, RuntimeError):
    """The stored edge lists violate the no-multi-edge invariant."""


class GraphCycleError(GraphError, ValueError):
    """The operation requires an acyclic graph."""


class NegativeCycleError(GraphCycleError):
    """Bellman-Ford relaxation still changed distances after |V| rounds."""


class Edge(NamedTuple):
    """A directed edge and the data attached to it."""
    source: Any
    dest: Any
    data: Any = None


class _VertexAttributes:
    __slots__ = ("in_edges", "out_edges")

    def __init__(self):
        # edges where the vertex is the dest
        self.in_edges: List[Edge] = []
        # edges where the vertex is the source
        self.out_edges: List[Edge] = []


class DirectedGraph(Generic[V]):
    """
    A directed graph without multi-edges.

    Example:
        graph = DirectedGraph()
        graph.add_vertex("a")
        graph.add_vertex("b")
        graph.add_edge("a", "b", "payload")
        graph.exists_path("a", "b")  # True
    """

    def __init__(self):
        self._vertices: Dict[V, _VertexAttributes] = {}

    # ------------------------------------------------------------------
    # Vertices
    # ------------------------------------------------------------------

    def add_vertex(self, vertex: V) -> None:
        """Add the vertex. Nothing happens if it is already present."""
        if vertex not in self._vertices:
            self._vertices[vertex] = _VertexAttributes()

    def remove_vertex(self, vertex: V) -> None:
        """Remove the vertex and all edges incident to it. No-op if absent."""
        attributes = self._vertices.get(vertex)
        if attributes is None:
            return

        while attributes.in_edges:
            last = attributes.in_edges[-1]
            self.remove_connections(last.source, last.dest)

        while attributes.out_edges:
            last = attributes.out_edges[-1]
            self.remove_connections(last.source, last.dest)

        del self._vertices[vertex]

    def remove_vertex_maintain_connectivity(
        self, vertex: V, merger: Optional[EdgeDataMerger] = None
    ) -> None:
        """
        Remove the vertex but connect each of its parents to each of its
        children, so reachability among the remaining vertices is unchanged.

        Args:
            vertex: The vertex to remove
            merger: Receives the data of the in-edge, the out-edge and, if
                present, the already existing bypass edge and returns the data
                of the new bypass edge. Without a merger the data is None.
        """
        attributes = self._attributes(vertex)

        for in_edge in list(attributes.in_edges):
            for out_edge in list(attributes.out_edges):
                source, dest = in_edge.source, out_edge.dest
                if source == dest:
                    continue

                current = self.get_edge(source, dest)
                if merger is not None:
                    datas = [in_edge.data, out_edge.data]
                    if current is not None:
                        datas.append(current.data)
                    data = merger(datas)
                else:
                    data = None

                if current is not None:
                    self.remove_connections(source, dest)
                self.add_edge(source, dest, data)

        self.remove_vertex(vertex)

    @property
    def vertices(self) -> List[V]:
        """The vertices in insertion order."""
        return list(self._vertices)

    def __iter__(self) -> Iterator[V]:
        return iter(list(self._vertices))

    def __len__(self) -> int:
        return len(self._vertices)

    def __contains__(self, vertex) -> bool:
        return vertex in self._vertices

    def contains_vertex(self, vertex) -> bool:
        return vertex in self._vertices

    @property
    def number_of_vertices(self) -> int:
        return len(self._vertices)

    @property
    def number_of_edges(self) -> int:
        return sum(len(a.out_edges) for a in self._vertices.values())

    def arbitrary_vertex(self) -> V:
        """Return the first vertex of the graph."""
        if not self._vertices:
            raise GraphError("Graph has no vertices")
        return next(iter(self._vertices))

    def _attributes(self, vertex) -> _VertexAttributes:
        attributes = self._vertices.get(vertex)
        if attributes is None:
            raise VertexNotFoundError(vertex)
        return attributes

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, source: V, dest: V, data: Any = None) -> None:
        """
        Add an edge going from source to dest with the associated data.

        Raises:
            VertexNotFoundError: If one of the endpoints is not in the graph
        """
        source_attributes = self._attributes(source)
        dest_attributes = self._attributes(dest)

        edge = Edge(source, dest, data)
        source_attributes.out_edges.append(edge)
        dest_attributes.in_edges.append(edge)

    def has_edge(self, source: V, dest: V) -> bool:
        """Whether there is a directed edge from source to dest."""
        return any(e.dest == dest for e in self._attributes(source).out_edges)

    def get_edge(self, source: V, dest: V) -> Optional[Edge]:
        """Return the edge from source to dest or None."""
        for edge in self._attributes(source).out_edges:
            if edge.dest == dest:
                return edge
        return None

    def remove_connections(self, source: V, dest: V) -> None:
        """
        Remove the edges between source and dest in both directions.

        Raises:
            VertexNotFoundError: If one of the endpoints is not in the graph
            GraphConsistencyError: If more than one edge runs in the same
                direction, which means the graph was corrupted
        """
        source_attributes = self._attributes(source)
        dest_attributes = self._attributes(dest)

        _remove_matching(source_attributes.out_edges, lambda e: e.dest == dest)
        _remove_matching(source_attributes.in_edges, lambda e: e.source == dest)
        _remove_matching(dest_attributes.out_edges, lambda e: e.dest == source)
        _remove_matching(dest_attributes.in_edges, lambda e: e.source == source)

    def in_degree(self, vertex: V) -> int:
        return len(self._attributes(vertex).in_edges)

    def out_degree(self, vertex: V) -> int:
        return len(self._attributes(vertex).out_edges)

    def get_in_edges(self, vertex: V) -> List[Edge]:
        """Edges where the vertex is the dest."""
        return list(self._attributes(vertex).in_edges)

    def get_out_edges(self, vertex: V) -> List[Edge]:
        """Edges where the vertex is the source."""
        return list(self._attributes(vertex).out_edges)

    def get_parent_nodes(self, vertex: V) -> List[V]:
        return [e.source for e in self._attributes(vertex).in_edges]

    def get_child_nodes(self, vertex: V) -> List[V]:
        return [e.dest for e in self._attributes(vertex).out_edges]

    def are_neighbors(self, vertex1: V, vertex2: V) -> bool:
        """Whether the vertices are equal or connected by an edge in any direction."""
        if vertex1 == vertex2:
            return True
        attributes = self._attributes(vertex1)
        if any(e.source == vertex2 for e in attributes.in_edges):
            return True
        return any(e.dest == vertex2 for e in attributes.out_edges)

    def copy_graph(self) -> "DirectedGraph[V]":
        """
        Return a structural copy. Vertices and edge data are shared, changes
        to the structure of the copy do not affect this graph.
        """
        copy = DirectedGraph()
        for vertex in self._vertices:
            copy.add_vertex(vertex)
        for attributes in self._vertices.values():
            for edge in attributes.out_edges:
                copy.add_edge(edge.source, edge.dest, edge.data)
        return copy

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def bfs(
        self,
        starts: Iterable[V],
        visitor: Visitor,
        against_flow: bool = False,
        edge_filter: Optional[Callable[[Edge], bool]] = None,
    ) -> None:
        """
        Breadth-first walk starting at the given vertices.

        Args:
            starts: The start vertices (they are visited as well)
            visitor: Called once per discovered vertex; returning False
                aborts the walk
            against_flow: Walk from dest to source instead
            edge_filter: If given, only edges for which it returns True are
                followed
        """
        starts = list(starts)
        for vertex in starts:
            self._attributes(vertex)

        if against_flow:
            def grab(vertex):
                return [e.source for e in self._vertices[vertex].in_edges
                        if edge_filter is None or edge_filter(e)]
        else:
            def grab(vertex):
                return [e.dest for e in self._vertices[vertex].out_edges
                        if edge_filter is None or edge_filter(e)]

        algorithms.bfs(starts, grab, visitor)

    def exists_path(self, source: V, dest: V) -> bool:
        """Whether a directed path leads from source to dest."""
        self._attributes(source)
        found = [False]

        def visit(vertex):
            if vertex != source:
                return True
            found[0] = True
            return False

        self.bfs([dest], visit, against_flow=True)
        return found[0]

    def topological_order(self) -> List[V]:
        """
        Return the vertices so that each vertex precedes its children.

        Raises:
            GraphCycleError: If the graph contains a cycle
        """
        order = algorithms.topological_order(
            self._vertices, self.in_degree, self.get_child_nodes
        )
        if len(order) != len(self._vertices):
            raise GraphCycleError("Graph contains a cycle, no topological order exists")
        return order

    def number_of_paths(self, source: V, dest: V) -> int:
        """Return the number of distinct directed paths from source to dest."""
        self._attributes(dest)
        counts: Dict[V, int] = {}

        def count(vertex):
            if vertex == dest:
                return 1
            if vertex not in counts:
                counts[vertex] = 0
                counts[vertex] = sum(count(child) for child in self.get_child_nodes(vertex))
            return counts[vertex]

        return count(source)

    # ------------------------------------------------------------------
    # Weighted paths
    # ------------------------------------------------------------------

    @staticmethod
    def _weight_of(edge: Edge, weighter: Optional[EdgeWeighter]) -> int:
        if weighter is None:
            return 1
        return weighter(edge.source, edge.dest, edge.data)

    @staticmethod
    def _report_paths(distances, parents, visitor: DistanceVisitor) -> None:
        for vertex, distance in distances.items():
            path = [vertex]
            parent = parents[vertex]
            while parent is not None:
                path.append(parent)
                parent = parents[parent]
            path.reverse()
            if not visitor(vertex, path, distance):
                return

    def single_source_shortest_path(
        self,
        vertex: V,
        visitor: DistanceVisitor,
        weighter: Optional[EdgeWeighter] = None,
        against_flow: bool = False,
    ) -> None:
        """
        Dijkstra's algorithm from the given vertex. Negative weights are not
        supported.

        Args:
            vertex: The source
            visitor: Called with (vertex, path, distance) for every reachable
                vertex; returning False stops the reporting
            weighter: Maps (source, dest, data) to a non-negative weight.
                All weights are 1 without a weighter.
            against_flow: Walk the edges from dest to source

        Raises:
            ValueError: If the weighter returns a negative weight
        """
        self._attributes(vertex)

        distances: Dict[V, int] = {vertex: 0}
        parents: Dict[V, Optional[V]] = {vertex: None}
        settled: Set[V] = set()
        counter = itertools.count()
        queue = [(0, next(counter), vertex)]

        while queue:
            distance, _, current = heapq.heappop(queue)
            if current in settled:
                continue
            settled.add(current)

            attributes = self._vertices[current]
            edges = attributes.in_edges if against_flow else attributes.out_edges
            for edge in edges:
                weight = self._weight_of(edge, weighter)
                if weight < 0:
                    raise ValueError(f"Negative weight {weight} on edge {edge.source!r} -> {edge.dest!r}")
                neighbour = edge.source if against_flow else edge.dest

                candidate = distance + weight
                if neighbour not in distances or candidate < distances[neighbour]:
                    distances[neighbour] = candidate
                    parents[neighbour] = current
                    heapq.heappush(queue, (candidate, next(counter), neighbour))

        self._report_paths(distances, parents, visitor)

    def bellman_ford(
        self,
        source: V,
        visitor: DistanceVisitor,
        weighter: Optional[EdgeWeighter] = None,
        weight_multiplier: int = 1,
    ) -> None:
        """
        Bellman-Ford single source shortest paths. Supports negative weights.

        Args:
            source: The source vertex
            visitor: Called with (vertex, path, distance) for every reachable
                vertex; returning False stops the reporting
            weighter: Maps (source, dest, data) to a weight, 1 by default
            weight_multiplier: Every weight is multiplied by this factor

        Raises:
            NegativeCycleError: If a negative cycle is reachable from source
        """
        self._attributes(source)

        distances: Dict[V, int] = {source: 0}
        parents: Dict[V, Optional[V]] = {source: None}

        rounds = len(self._vertices)
        for round_number in range(1, rounds + 1):
            changed = False

            for u, attributes in self._vertices.items():
                if u not in distances:
                    continue
                for edge in attributes.out_edges:
                    candidate = distances[u] + self._weight_of(edge, weighter) * weight_multiplier
                    if edge.dest not in distances or distances[edge.dest] > candidate:
                        distances[edge.dest] = candidate
                        parents[edge.dest] = u
                        changed = True

            # no change means the next round won't change anything either
            if not changed:
                break
            if round_number == rounds:
                raise NegativeCycleError(
                    f"Distances from {source!r} still change after {rounds} rounds"
                )

        self._report_paths(distances, parents, visitor)

    def single_source_shortest_path_bf(
        self, source: V, visitor: DistanceVisitor, weighter: Optional[EdgeWeighter] = None
    ) -> None:
        """Shortest paths via Bellman-Ford, so negative weights are fine."""
        self.bellman_ford(source, visitor, weighter, 1)

    def single_source_longest_path(
        self, source: V, visitor: DistanceVisitor, weighter: Optional[EdgeWeighter] = None
    ) -> None:
        """Longest paths from source, computed on negated weights."""
        self.bellman_ford(
            source,
            lambda vertex, path, distance: visitor(vertex, path, -distance),
            weighter,
            -1,
        )

    # ------------------------------------------------------------------
    # Subgraphs
    # ------------------------------------------------------------------

    def _ordered_subset(self, vertices: Iterable[V]) -> List[V]:
        wanted = set(vertices)
        for vertex in wanted:
            self._attributes(vertex)
        return [v for v in self._vertices if v in wanted]

    def sub_graph(
        self,
        vertices: Iterable[V],
        leave_out: Optional[Callable[[Any], bool]] = None,
    ) -> "DirectedGraph[V]":
        """
        Return the subgraph spanned by the given vertices. An edge is kept if
        both endpoints are included and ``leave_out`` (if given) returns False
        for its data.
        """
        included = self._ordered_subset(vertices)
        included_set = set(included)

        graph = DirectedGraph()
        for vertex in included:
            graph.add_vertex(vertex)

        for vertex in included:
            for edge in self._vertices[vertex].in_edges:
                if leave_out is not None and leave_out(edge.data):
                    continue
                if edge.source in included_set:
                    graph.add_edge(edge.source, edge.dest, edge.data)

        return graph

    def transitive_closure_of_sub_graph(self, vertices: Iterable[V]) -> "DirectedGraph[V]":
        """
        Return a graph over the given vertices with an edge u -> v (data None)
        for each pair where v is reachable from u in this graph.
        """
        included = self._ordered_subset(vertices)
        included_set = set(included)

        graph = DirectedGraph()
        for vertex in included:
            graph.add_vertex(vertex)

        for vertex in included:
            def visit(reached, start=vertex):
                if reached != start and reached in included_set:
                    graph.add_edge(start, reached, None)
                return True

            self.bfs([vertex], visit)

        return graph

    def _compacted_sub_graph(
        self, vertices: Set[V], merger: Optional[EdgeDataMerger]
    ) -> "DirectedGraph[V]":
        graph = self.copy_graph()
        # iterate over our own vertices, the copy shrinks meanwhile
        for vertex in self._vertices:
            if vertex not in vertices:
                graph.remove_vertex_maintain_connectivity(vertex, merger)
        return graph

    @timed("DirectedGraph.path_maintaining_sub_graph")
    def path_maintaining_sub_graph(
        self, vertices: Iterable[V], merger: Optional[EdgeDataMerger] = None
    ) -> "DirectedGraph[V]":
        """
        Return the transitive reduction of this graph restricted to the given
        vertices: u reaches v in the result iff it does here, and no edge of
        the result can be implied by a longer path.

        Removed vertices are bypassed first, with ``merger`` combining the
        data along the merged paths. Then, until a full pass removes nothing,
        every edge p -> v is tested by collecting the ancestors of the other
        parents of v. The edge is redundant exactly when this union misses
        only v itself.
        """
        included = self._ordered_subset(vertices)
        reduced = self._compacted_sub_graph(set(included), merger)

        while True:
            removed_in_pass = 0
            ancestors: Dict[V, Set[V]] = {}

            def upper(vertex, graph):
                if vertex not in ancestors:
                    ancestors[vertex] = graph.get_vertices_of_upper_induced_graph(None, vertex)
                return ancestors[vertex]

            next_graph = DirectedGraph()
            for vertex in included:
                next_graph.add_vertex(vertex)

            for vertex in included:
                vertex_upper = upper(vertex, reduced)
                parents = reduced.get_in_edges(vertex)

                for edge in parents:
                    others_upper: Set[V] = set()
                    for other in parents:
                        if other.source != edge.source:
                            others_upper |= upper(other.source, reduced)

                    if len(others_upper) != len(vertex_upper) - 1:
                        next_graph.add_edge(edge.source, vertex, edge.data)
                    else:
                        removed_in_pass += 1

            reduced = next_graph
            logger.debug(f"Transitive reduction pass removed {removed_in_pass} edges")
            if not removed_in_pass:
                break

        return reduced

    def get_vertices_of_upper_induced_graph(self, root: Optional[V], vertex: V) -> Set[V]:
        """
        Return the vertex and all its ancestors. If root is given, only those
        reachable from root (root included) are returned.
        """
        upper: Set[V] = set()

        def visit(v):
            upper.add(v)
            return True

        self.bfs([vertex], visit, against_flow=True)

        if root is None:
            return upper

        below_root: Set[V] = set()

        def visit_below(v):
            below_root.add(v)
            return True

        self.bfs([root], visit_below)
        return upper & below_root

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    def merge_vertices(self, representative: V, equivalents: Iterable[V]) -> None:
        """
        Merge equivalent vertices into the representative, which inherits all
        their edges. If the representative is already connected to a
        neighbour the existing edge is kept, otherwise the first edge seen
        provides the data. Edges between the merged vertices vanish.
        """
        self._attributes(representative)

        for vertex in equivalents:
            if vertex == representative:
                continue
            attributes = self._attributes(vertex)

            new_ingoing: Dict[V, List[Any]] = {}
            new_outgoing: Dict[V, List[Any]] = {}

            for edge in attributes.in_edges:
                if edge.source != vertex:
                    _remove_identical(self._vertices[edge.source].out_edges, edge)
                new_ingoing.setdefault(edge.source, []).append(edge.data)

            for edge in attributes.out_edges:
                if edge.dest != vertex:
                    _remove_identical(self._vertices[edge.dest].in_edges, edge)
                new_outgoing.setdefault(edge.dest, []).append(edge.data)

            del self._vertices[vertex]

            for source, datas in new_ingoing.items():
                if source in (representative, vertex):
                    continue
                if self.has_edge(source, representative):
                    continue
                self.add_edge(source, representative, datas[0])

            for dest, datas in new_outgoing.items():
                if dest in (representative, vertex):
                    continue
                if self.has_edge(representative, dest):
                    continue
                self.add_edge(representative, dest, datas[0])


def _remove_matching(edges: List[Edge], predicate: Callable[[Edge], bool]) -> None:
    matches = [i for i, e in enumerate(edges) if predicate(e)]
    if len(matches) > 1:
        raise GraphConsistencyError(
            f"Found more than one edge to delete ({len(matches)}) --> {[edges[i] for i in matches]}"
        )
    for i in matches:
        del edges[i]


def _remove_identical(edges: List[Edge], edge: Edge) -> None:
    for i, candidate in enumerate(edges):
        if candidate is edge:
            del edges[i]
            return

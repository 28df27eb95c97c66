# tests/test_slim_view.py
"""
Tests for termgraph.graph.SlimDirectedGraphView.
"""

import numpy as np

from termgraph.graph import SlimDirectedGraphView
from termgraph.instrumentation import timings


class TestSlimDirectedGraphView:

    def test_indices_follow_graph_order(self, diamond_graph):
        """Vertex positions match the graph's vertex order."""
        view = SlimDirectedGraphView.create(diamond_graph)
        assert view.vertices == ["a", "b", "c", "d"]
        assert [view.get_vertex_index(v) for v in "abcd"] == [0, 1, 2, 3]
        assert len(view) == 4
        assert view.number_of_vertices == 4

    def test_unknown_vertex_index(self, diamond_graph):
        """Unknown vertices have index -1."""
        view = SlimDirectedGraphView.create(diamond_graph)
        assert view.get_vertex_index("z") == -1

    def test_adjacency_arrays(self, diamond_graph):
        """Parent and child arrays are sorted integer arrays."""
        view = SlimDirectedGraphView.create(diamond_graph)
        d = view.get_vertex_index("d")
        np.testing.assert_array_equal(view.vertex_parents[d], [0, 1, 2])
        np.testing.assert_array_equal(view.vertex_children[0], [1, 2, 3])
        assert view.vertex_parents[0].dtype == np.int32

    def test_ancestors_and_descendants_include_vertex(self, diamond_graph):
        """Closures contain the vertex itself."""
        view = SlimDirectedGraphView.create(diamond_graph)
        np.testing.assert_array_equal(view.vertex_ancestors[3], [0, 1, 2, 3])
        np.testing.assert_array_equal(view.vertex_descendants[1], [1, 3])
        np.testing.assert_array_equal(view.vertex_ancestors[0], [0])

    def test_is_ancestor(self, diamond_graph):
        """Ancestry queries work on indices."""
        view = SlimDirectedGraphView.create(diamond_graph)
        assert view.is_ancestor(0, 3)
        assert view.is_ancestor(3, 3)
        assert not view.is_ancestor(1, 2)
        assert not view.is_ancestor(3, 0)

    def test_is_descendant(self, diamond_graph):
        """Descendant queries are the mirror of ancestry."""
        view = SlimDirectedGraphView.create(diamond_graph)
        assert view.is_descendant(3, 0)
        assert not view.is_descendant(0, 3)
        assert not view.is_descendant(2, 1)

    def test_object_accessors(self, diamond_graph):
        """Accessors map indices back to vertices."""
        view = SlimDirectedGraphView.create(diamond_graph)
        assert view.get_parents("d") == ["a", "b", "c"]
        assert view.get_children("a") == ["b", "c", "d"]
        assert view.get_ancestors("b") == ["a", "b"]
        assert view.get_descendants("c") == ["c", "d"]

    def test_mapper(self, chain_graph):
        """The mapper decides what is stored per vertex."""
        view = SlimDirectedGraphView.create(chain_graph, str.upper)
        assert view.vertices == ["A", "B", "C", "D"]
        assert view.get_vertex_index("C") == 2
        assert view.get_descendants("B") == ["B", "C", "D"]

    def test_vertex_indices_skip_unknown(self, chain_graph):
        """Unknown vertices are skipped when mapping many."""
        view = SlimDirectedGraphView.create(chain_graph)
        np.testing.assert_array_equal(view.vertex_indices(["d", "x", "a"]), [3, 0])

    def test_view_is_detached(self, chain_graph):
        """Later graph changes do not affect the view."""
        view = SlimDirectedGraphView.create(chain_graph)
        chain_graph.remove_vertex("b")
        assert view.get_children("a") == ["b"]

    def test_records_timing(self, chain_graph):
        """View creation is timed."""
        SlimDirectedGraphView.create(chain_graph)
        assert timings.get("SlimDirectedGraphView.create").calls == 1

    def test_agrees_with_exists_path(self, diamond_graph):
        """Ancestry in the view matches reachability in the graph."""
        view = SlimDirectedGraphView.create(diamond_graph)
        for u in diamond_graph:
            for v in diamond_graph:
                i, j = view.get_vertex_index(u), view.get_vertex_index(v)
                assert view.is_ancestor(i, j) == diamond_graph.exists_path(u, v)

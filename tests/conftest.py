#!/usr/bin/env python3
"""
Pytest configuration file with shared graph and ontology fixtures
"""

import os
import sys
import pytest

# Add the parent directory to sys.path to ensure the module can be imported
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from termgraph.graph import DirectedGraph
from termgraph.instrumentation import timings
from termgraph.ontology import Ontology, RelationType, Term, TermContainer


def make_graph(vertices, edges):
    """Build a graph from vertex and (source, dest[, data]) lists."""
    graph = DirectedGraph()
    for vertex in vertices:
        graph.add_vertex(vertex)
    for edge in edges:
        graph.add_edge(*edge)
    return graph


@pytest.fixture(autouse=True)
def reset_timings():
    """Start every test with an empty timing registry"""
    timings.reset()
    yield
    timings.reset()


@pytest.fixture
def chain_graph():
    """a -> b -> c -> d"""
    return make_graph("abcd", [("a", "b"), ("b", "c"), ("c", "d")])


@pytest.fixture
def diamond_graph():
    """a -> b -> d, a -> c -> d plus the shortcut a -> d"""
    return make_graph(
        "abcd",
        [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"), ("a", "d")],
    )


@pytest.fixture
def weighted_graph():
    """Edge data is used as weight"""
    return make_graph(
        "abcde",
        [("a", "b", 1), ("b", "c", 1), ("a", "c", 5), ("c", "d", 2), ("a", "e", 7)],
    )


@pytest.fixture
def go_terms():
    """A small Gene Ontology like catalog with the usual anomalies"""
    return [
        Term(id="GO:0008150", name="biological_process", namespace="biological_process",
             subsets=["goslim_generic"]),
        Term(id="GO:0003674", name="molecular_function", namespace="molecular_function",
             subsets=["goslim_generic"]),
        Term(id="GO:0005575", name="cellular_component", namespace="cellular_component"),
        Term(id="GO:0000001", name="cellular process", parents=["GO:0008150"]),
        Term(id="GO:0000002", name="metabolic process", parents=["GO:0008150"]),
        Term(id="GO:0000003", name="cellular metabolic process",
             parents=["GO:0000001", "GO:0000002"], subsets=["goslim_generic"]),
        Term(id="GO:0000004", name="glucose metabolic process",
             parents=["GO:0000003", "GO:0008150"], alternatives=["GO:0000099"]),
        Term(id="GO:0000005", name="binding", parents=["GO:0003674"],
             alternatives=["GO:0000098"], subsets=["goslim_generic"]),
        Term(id="GO:0000006", name="organelle", parents=[("GO:0005575", "part_of")]),
        Term(id="GO:0000007", name="obsolete process", obsolete=True),
        Term(id="GO:0000008", name="self referencing process",
             parents=["GO:0000008", "GO:0000001"]),
        Term(id="GO:0000009", name="orphaned process", parents=["GO:0001234", "GO:0000001"]),
    ]


@pytest.fixture
def go_container(go_terms):
    return TermContainer(go_terms, format_version="1.2", date="2024-01-01")


@pytest.fixture
def go_ontology(go_container):
    return Ontology.create(go_container)


@pytest.fixture
def single_root_ontology():
    """A is the only root, B and C are its children"""
    terms = [
        Term(id="HP:0000001", name="A"),
        Term(id="HP:0000002", name="B", parents=["HP:0000001"]),
        Term(id="HP:0000003", name="C", parents=[("HP:0000001", RelationType.PART_OF_A)]),
    ]
    return Ontology.create(TermContainer(terms))

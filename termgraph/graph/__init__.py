# termgraph/graph/__init__.py
"""
Generic directed graph engine.
"""

from .directed import (
    DirectedGraph,
    Edge,
    GraphError,
    VertexNotFoundError,
    GraphConsistencyError,
    GraphCycleError,
    NegativeCycleError,
)
from .slim import SlimDirectedGraphView

__all__ = [
    'DirectedGraph',
    'Edge',
    'GraphError',
    'VertexNotFoundError',
    'GraphConsistencyError',
    'GraphCycleError',
    'NegativeCycleError',
    'SlimDirectedGraphView',
]

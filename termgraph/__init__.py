"""
termgraph: Directed graph engine and ontology layer for term enrichment analysis.
"""

__version__ = '0.1.0'

from .graph import DirectedGraph, SlimDirectedGraphView
from .ontology import Ontology, Term, TermContainer, TermID

__all__ = ['DirectedGraph', 'SlimDirectedGraphView', 'Ontology', 'Term', 'TermContainer', 'TermID']

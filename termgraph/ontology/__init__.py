"""
Ontology layer: terms, term catalogs and the ontology graph built from them.
"""

from .terms import TermID, RelationType, RelationMeaning, ParentTermID, Subset, Term, as_term_id
from .container import TermContainer
from .property_map import TermPropertyMap, term_to_alternatives
from .ontology import Ontology, TermLevels, BuildReport, merge_relations

__all__ = [
    'TermID',
    'RelationType',
    'RelationMeaning',
    'ParentTermID',
    'Subset',
    'Term',
    'as_term_id',
    'TermContainer',
    'TermPropertyMap',
    'term_to_alternatives',
    'Ontology',
    'TermLevels',
    'BuildReport',
    'merge_relations',
]

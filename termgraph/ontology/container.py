"""
In-memory term catalog handed over by the parser.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .terms import Term, TermID

logger = logging.getLogger(__name__)


class TermContainer:
    """
    Ordered collection of terms with lookup by id, id string and position.

    The container usually holds more terms than an ontology graph built from
    it, e.g. after an induced subgraph has been extracted.
    """

    def __init__(self, terms: Iterable[Term], format_version: str = "", date: str = ""):
        self.format_version = format_version
        self.date = date
        self._terms: List[Term] = []
        self._index: Dict[TermID, int] = {}

        for term in terms:
            if term.id in self._index:
                logger.warning(f"Duplicate definition of term {term.id}, keeping the first one")
                continue
            self._index[term.id] = len(self._terms)
            self._terms.append(term)

    def get(self, term_id: Union[TermID, str]) -> Optional[Term]:
        """Return the term with the given id (or id string), None if unknown."""
        if isinstance(term_id, str):
            try:
                term_id = TermID.parse(term_id)
            except ValueError:
                return None
        index = self._index.get(term_id)
        if index is None:
            return None
        return self._terms[index]

    def get_by_index(self, index: int) -> Term:
        return self._terms[index]

    def index_of(self, term_id: TermID) -> int:
        """Position of the term within the container or -1."""
        return self._index.get(term_id, -1)

    def get_name(self, term_id: Union[TermID, str]) -> Optional[str]:
        term = self.get(term_id)
        return term.name if term is not None else None

    def __contains__(self, term_id) -> bool:
        return self.get(term_id) is not None

    def __iter__(self) -> Iterator[Term]:
        return iter(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

"""
Maps an arbitrary per-term property (e.g. alternative ids) to terms.
"""

import logging
from typing import Callable, Dict, Generic, Hashable, Iterable, Optional, TypeVar

from .container import TermContainer
from .terms import Term, TermID

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


def term_to_alternatives(term: Term) -> Iterable[TermID]:
    """Extractor mapping a term to its alternative ids."""
    return term.alternatives or ()


class TermPropertyMap(Generic[K]):
    """
    Index from keys extracted per term to the term's position in the
    container. If several terms share a key, only the first one is tracked
    and the clash is counted as an ambiguity.
    """

    def __init__(self, term_container: TermContainer, extractor: Callable[[Term], Iterable[K]]):
        """
        Args:
            term_container: The terms to index
            extractor: Returns the keys under which a term shall be found
        """
        self.term_container = term_container
        self._key_map: Dict[K, int] = {}
        self.ambiguities = 0

        for index, term in enumerate(term_container):
            for key in extractor(term):
                existing = self._key_map.setdefault(key, index)
                if existing != index:
                    self.ambiguities += 1

        if self.ambiguities:
            logger.info(f"Property map contains {self.ambiguities} ambiguous keys")

    def get(self, key: K) -> Optional[TermID]:
        """The id of the term associated with the key or None."""
        index = self.get_index(key)
        if index == -1:
            return None
        return self.term_container.get_by_index(index).id

    def get_index(self, key: K) -> int:
        """The container position of the term associated with the key or -1."""
        return self._key_map.get(key, -1)

    def __len__(self) -> int:
        return len(self._key_map)

    def __contains__(self, key) -> bool:
        return key in self._key_map

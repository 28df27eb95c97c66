# termgraph/ontology/terms.py
"""
Value types of the ontology: term identifiers, relations, subsets and terms.
"""

import logging
from enum import Enum
from functools import total_ordering
from typing import Any, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


@total_ordering
class TermID:
    """
    Identifier of a term: a namespace prefix plus a non-negative integer,
    written as ``GO:0000001``.
    """

    __slots__ = ("prefix", "id")

    def __init__(self, prefix: str, id: int):
        if id < 0:
            raise ValueError(f"Term ids must not be negative: {id}")
        self.prefix = prefix
        self.id = id

    @classmethod
    def parse(cls, term_id: str) -> "TermID":
        """
        Parse an identifier string.

        Raises:
            ValueError: If the string is not of the form PREFIX:NUMBER
        """
        prefix, sep, local = term_id.strip().partition(":")
        if not sep or not prefix or not local.isdigit():
            raise ValueError(f"Invalid term id: {term_id!r}")
        return cls(prefix, int(local))

    def __eq__(self, other):
        if not isinstance(other, TermID):
            return NotImplemented
        return self.id == other.id and self.prefix == other.prefix

    def __lt__(self, other):
        if not isinstance(other, TermID):
            return NotImplemented
        return (self.prefix, self.id) < (other.prefix, other.id)

    def __hash__(self):
        return hash((self.prefix, self.id))

    def __str__(self):
        return f"{self.prefix}:{self.id:07d}"

    def __repr__(self):
        return f"TermID('{self}')"


def as_term_id(value: Any) -> TermID:
    """Accept a TermID or its string form."""
    if isinstance(value, TermID):
        return value
    if isinstance(value, str):
        return TermID.parse(value)
    raise TypeError(f"Cannot interpret {value!r} as a term id")


class RelationMeaning(Enum):
    """Coarse category of a relation, used to select edges during walks."""
    IS_A = "is_a"
    PART_OF_A = "part_of"
    REGULATES = "regulates"
    POSITIVELY_REGULATES = "positively_regulates"
    NEGATIVELY_REGULATES = "negatively_regulates"
    UNKNOWN = "unknown"


class RelationType(Enum):
    """Kind of a parent relation as declared in the ontology."""
    IS_A = "is_a"
    PART_OF_A = "part_of"
    REGULATES = "regulates"
    POSITIVELY_REGULATES = "positively_regulates"
    NEGATIVELY_REGULATES = "negatively_regulates"
    UNKNOWN = "unknown"

    def meaning(self) -> RelationMeaning:
        return _MEANINGS[self]

    @classmethod
    def from_name(cls, name: str) -> "RelationType":
        """Map a relation name such as ``part_of`` to its type, UNKNOWN if unrecognised."""
        normalized = name.strip().lower().replace(" ", "_")
        relation = _ALIASES.get(normalized)
        if relation is None:
            logger.debug(f"Unrecognised relation {name!r}, treating it as unknown")
            return cls.UNKNOWN
        return relation


_MEANINGS = {
    RelationType.IS_A: RelationMeaning.IS_A,
    RelationType.PART_OF_A: RelationMeaning.PART_OF_A,
    RelationType.REGULATES: RelationMeaning.REGULATES,
    RelationType.POSITIVELY_REGULATES: RelationMeaning.POSITIVELY_REGULATES,
    RelationType.NEGATIVELY_REGULATES: RelationMeaning.NEGATIVELY_REGULATES,
    RelationType.UNKNOWN: RelationMeaning.UNKNOWN,
}

_ALIASES = {
    "is_a": RelationType.IS_A,
    "isa": RelationType.IS_A,
    "part_of": RelationType.PART_OF_A,
    "part_of_a": RelationType.PART_OF_A,
    "regulates": RelationType.REGULATES,
    "positively_regulates": RelationType.POSITIVELY_REGULATES,
    "negatively_regulates": RelationType.NEGATIVELY_REGULATES,
}


class ParentTermID(NamedTuple):
    """A declared parent of a term and the relation to it."""
    related: TermID
    relation: RelationType = RelationType.IS_A


class Subset(NamedTuple):
    """A named subset (slim) of the ontology."""
    name: str
    description: str = ""


class Term(BaseModel):
    """
    A single ontology term as delivered by the parser.

    Terms are identified by their id: two terms with the same id compare
    equal and hash alike.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: TermID = Field(..., description="Primary identifier of the term")
    name: str = Field("", description="Human readable name")
    namespace: Optional[str] = Field(None, description="Namespace, e.g. biological_process")
    definition: Optional[str] = Field(None, description="Textual definition")
    parents: List[ParentTermID] = Field(default_factory=list, description="Declared parent relations")
    subsets: List[Subset] = Field(default_factory=list, description="Subsets the term belongs to")
    alternatives: List[TermID] = Field(default_factory=list, description="Alternative identifiers")
    obsolete: bool = Field(False, description="Whether the term is flagged obsolete")

    @field_validator("id", mode="before")
    @classmethod
    def _parse_id(cls, value):
        return as_term_id(value)

    @field_validator("alternatives", mode="before")
    @classmethod
    def _parse_alternatives(cls, value):
        return [as_term_id(v) for v in value or []]

    @field_validator("parents", mode="before")
    @classmethod
    def _parse_parents(cls, value):
        parents = []
        for parent in value or []:
            if isinstance(parent, ParentTermID):
                parents.append(parent)
            elif isinstance(parent, (str, TermID)):
                parents.append(ParentTermID(as_term_id(parent)))
            else:
                related, relation = parent
                if isinstance(relation, str):
                    relation = RelationType.from_name(relation)
                parents.append(ParentTermID(as_term_id(related), relation))
        return parents

    @field_validator("subsets", mode="before")
    @classmethod
    def _parse_subsets(cls, value):
        return [Subset(s) if isinstance(s, str) else s for s in value or []]

    def __eq__(self, other):
        if not isinstance(other, Term):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __str__(self):
        return f"{self.name} ({self.id})"

    def add_alternative_id(self, term_id: TermID) -> None:
        self.alternatives.append(as_term_id(term_id))

# termgraph/ontology/ontology.py
"""
The ontology graph: terms linked by their declared parent relations, with a
single (possibly artificial) root.

Note that "parents" are the more general terms. Edges run from parent to
child, so walking "to the source" visits the ancestors of a term.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union

import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from ..config import get_config
from ..graph import DirectedGraph, SlimDirectedGraphView
from ..instrumentation import timed
from .container import TermContainer
from .property_map import TermPropertyMap, term_to_alternatives
from .terms import ParentTermID, RelationMeaning, RelationType, Subset, Term, TermID, as_term_id

logger = logging.getLogger(__name__)

# Names of the three Gene Ontology namespaces, used to name the artificial root
LEVEL1_TERM_NAMES = frozenset(["molecular_function", "biological_process", "cellular_component"])

# Marks arguments that default to the currently selected relevance filter
_CURRENT = object()

TermIDVisitor = Callable[[TermID], bool]


def merge_relations(relations: List[Optional[RelationType]]) -> RelationType:
    """
    Combine the relations of edges that are replaced by a single edge.

    IS_A is neutral, a single other kind of relation wins, conflicting kinds
    give UNKNOWN.
    """
    kinds = {r for r in relations if r is not None and r is not RelationType.IS_A}
    if not kinds:
        return RelationType.IS_A
    if len(kinds) == 1:
        return kinds.pop()
    return RelationType.UNKNOWN


@dataclass
class BuildReport:
    """Diagnostics collected while building an ontology from a term container."""
    self_loops: List[TermID] = field(default_factory=list)
    skipped_edges: List[Tuple[TermID, TermID]] = field(default_factory=list)
    duplicate_relations: List[Tuple[TermID, TermID]] = field(default_factory=list)
    level1_terms: List[TermID] = field(default_factory=list)
    artificial_root: Optional[TermID] = None
    number_of_terms: int = 0
    number_of_edges: int = 0

    @property
    def skipped_edge_count(self) -> int:
        return len(self.skipped_edges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "self_loops": [str(t) for t in self.self_loops],
            "skipped_edges": [(str(t), str(p)) for t, p in self.skipped_edges],
            "duplicate_relations": [(str(t), str(p)) for t, p in self.duplicate_relations],
            "level1_terms": [str(t) for t in self.level1_terms],
            "artificial_root": str(self.artificial_root) if self.artificial_root else None,
            "number_of_terms": self.number_of_terms,
            "number_of_edges": self.number_of_edges,
        }


class TermLevels:
    """Levels (longest distance from the root) of a set of terms."""

    def __init__(self):
        self._level_to_terms: Dict[int, Set[TermID]] = {}
        self._term_to_level: Dict[TermID, int] = {}
        self.max_level = -1

    def put_level(self, term_id: TermID, distance: int) -> None:
        self._level_to_terms.setdefault(distance, set()).add(term_id)
        self._term_to_level[term_id] = distance
        if distance > self.max_level:
            self.max_level = distance

    def get_term_level(self, term_id: TermID) -> int:
        """The level of the term or -1 if it is not included."""
        return self._term_to_level.get(term_id, -1)

    def get_level_term_set(self, level: int) -> Set[TermID]:
        return self._level_to_terms.get(level, set())

    def __len__(self) -> int:
        return len(self._term_to_level)

    def to_dataframe(self) -> pd.DataFrame:
        rows = [{"term_id": str(t), "level": level} for t, level in self._term_to_level.items()]
        df = pd.DataFrame(rows, columns=["term_id", "level"])
        return df.sort_values(["level", "term_id"]).reset_index(drop=True)


class Ontology:
    """
    Represents the whole ontology.

    Build it with ``Ontology.create(term_container)``. Derived ontologies
    (induced graphs, relevant terms) are new instances sharing the term
    container. Only ``merge_terms`` changes an ontology after construction.
    """

    def __init__(self):
        self.graph: DirectedGraph = DirectedGraph()
        self.term_container: Optional[TermContainer] = None
        self.root_term: Optional[Term] = None
        self.level1_terms: List[TermID] = []
        self.available_subsets: Set[Subset] = set()
        self.relevant_subset: Optional[Subset] = None
        self.relevant_subontology: Optional[Term] = None
        self.build_report = BuildReport()
        self.n_jobs = 1
        self.show_progress = False

        # Terms often have alternative ids (mostly from term merges). Built on first use.
        self._alternative_map: Optional[TermPropertyMap] = None
        self._alternative_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    @timed("Ontology.create")
    def create(cls, term_container: TermContainer) -> "Ontology":
        """
        Create an ontology from a term container.

        Self-loops and links to parents missing from the container are
        skipped; they are logged and listed in ``build_report``.
        """
        ontology = cls()
        ontology.term_container = term_container
        graph = ontology.graph
        report = ontology.build_report

        for term in term_container:
            graph.add_vertex(term.id)

        for term in term_container:
            ontology.available_subsets.update(term.subsets)

            for parent in term.parents:
                related = parent.related
                if related == term.id:
                    logger.info(
                        f"Detected self-loop in the definition of the ontology (term {term.id}). "
                        "This link has been ignored."
                    )
                    report.self_loops.append(term.id)
                    continue
                if related not in term_container:
                    logger.info(
                        f"Could not add a link from term {term} to {related} as the latter's "
                        "definition is missing."
                    )
                    report.skipped_edges.append((term.id, related))
                    continue
                if graph.has_edge(related, term.id):
                    logger.debug(f"Term {term.id} declares {related} as parent more than once")
                    report.duplicate_relations.append((term.id, related))
                    continue
                graph.add_edge(related, term.id, parent.relation)

        if report.skipped_edges:
            logger.info(f"A total of {report.skipped_edge_count} edges were skipped.")

        ontology._assign_level1_terms_and_fix_root()

        report.level1_terms = list(ontology.level1_terms)
        report.number_of_terms = len(graph)
        report.number_of_edges = graph.number_of_edges
        return ontology

    def _derive(self, graph: DirectedGraph) -> "Ontology":
        derived = Ontology()
        derived.graph = graph
        derived.term_container = self.term_container
        derived.available_subsets = set(self.available_subsets)
        derived.n_jobs = self.n_jobs
        derived.show_progress = self.show_progress
        return derived

    def _assign_level1_terms_and_fix_root(self, inherited_root: Optional[Term] = None) -> None:
        """
        Find the terms without parents and make sure there is a single root.
        Several such terms get an artificial root as common parent.
        """
        def lookup(term_id):
            term = self.term_container.get(term_id) if self.term_container is not None else None
            if term is None and inherited_root is not None and inherited_root.id == term_id:
                term = inherited_root
            return term

        self.level1_terms = []
        for term_id in self.graph:
            if self.graph.in_degree(term_id) != 0:
                continue
            term = lookup(term_id)
            if term is not None and term.obsolete:
                continue
            self.level1_terms.append(term_id)

        if len(self.level1_terms) > 1:
            names = []
            for term_id in self.level1_terms:
                term = lookup(term_id)
                names.append(term.name if term is not None else "")

            root_name = "root"
            if len(names) == 3 and {n.lower() for n in names} == LEVEL1_TERM_NAMES:
                root_name = "Gene Ontology"

            root_id = TermID(self.level1_terms[0].prefix, 0)
            self.root_term = Term(id=root_id, name=root_name, subsets=list(self.available_subsets))

            logger.info(
                "Ontology contains multiple level-one terms: "
                + ", ".join(f'"{n}"' for n in names)
                + f'. Adding artificial root term "{root_id}".'
            )

            self.graph.add_vertex(root_id)
            for level1 in self.level1_terms:
                if level1 != root_id:
                    self.graph.add_edge(root_id, level1, RelationType.UNKNOWN)
            self.build_report.artificial_root = root_id
        elif self.root_term is None and len(self.level1_terms) == 1:
            # a derived ontology may already have its root
            self.root_term = lookup(self.level1_terms[0])
            logger.info(f"Ontology contains a single level-one term ({self.root_term})")

    def apply_config(self, config: Union[Dict[str, Any], str, None] = None) -> "Ontology":
        """
        Apply the relevance filters and parallelism settings of a
        configuration dictionary. A path (or None) is resolved through
        ``termgraph.config.get_config`` first.
        """
        if not isinstance(config, dict):
            config = get_config(config)
        if config.get("relevant_subset"):
            self.set_relevant_subset(config["relevant_subset"])
        if config.get("relevant_subontology"):
            self.set_relevant_subontology(config["relevant_subontology"])
        self.n_jobs = config.get("n_jobs", self.n_jobs)
        self.show_progress = config.get("show_progress", self.show_progress)
        return self

    # ------------------------------------------------------------------
    # Root and level-1 terms
    # ------------------------------------------------------------------

    def is_root_term(self, term_id: TermID) -> bool:
        """Whether the id is the id of the (possibly artificial) root term."""
        return self.root_term is not None and term_id == self.root_term.id

    def is_artificial_root_term(self, term_id: TermID) -> bool:
        return self.is_root_term(term_id) and term_id not in self.level1_terms

    def get_root_term(self) -> Optional[Term]:
        return self.root_term

    def get_level1_terms(self) -> List[Term]:
        return self.term_ids_to_terms(self.level1_terms)

    def term_ids_to_terms(self, term_ids: Iterable[TermID]) -> List[Term]:
        """Map ids to their terms, raising ValueError for unknown ids."""
        terms = []
        for term_id in term_ids:
            term = self.get_term(term_id)
            if term is None:
                raise ValueError(f'"{term_id}" could not be mapped to a known term!')
            terms.append(term)
        return terms

    # ------------------------------------------------------------------
    # Term lookup
    # ------------------------------------------------------------------

    def get_term(self, term_id: Union[TermID, str]) -> Optional[Term]:
        """
        Return the term with the given id if it is part of this ontology's
        graph, None otherwise.
        """
        if isinstance(term_id, str):
            try:
                term_id = TermID.parse(term_id)
            except ValueError:
                return None

        if self.is_root_term(term_id):
            return self.root_term
        if term_id not in self.graph:
            return None
        return self.term_container.get(term_id)

    def get_term_including_alternatives(self, term_id: Union[TermID, str]) -> Optional[Term]:
        """
        Like ``get_term`` but falls back to the alternative ids of all terms
        if no term has the given primary id.
        """
        term = self.get_term(term_id)
        if term is not None:
            return term

        try:
            term_id = as_term_id(term_id)
        except ValueError:
            return None

        index = self._alternatives().get_index(term_id)
        if index == -1:
            return None
        return self.term_container.get_by_index(index)

    def _alternatives(self) -> TermPropertyMap:
        alternative_map = self._alternative_map
        if alternative_map is None:
            with self._alternative_lock:
                if self._alternative_map is None:
                    self._alternative_map = TermPropertyMap(self.term_container, term_to_alternatives)
                alternative_map = self._alternative_map
        return alternative_map

    def term_exists(self, term_id: TermID) -> bool:
        """Whether the term is part of the graph."""
        return term_id in self.graph

    def term_set(self, term_ids: Iterable[TermID]) -> Set[Term]:
        return {self.get_term(t) for t in term_ids}

    @staticmethod
    def term_id_list(terms: Iterable[Term]) -> List[TermID]:
        return [t.id for t in terms]

    @staticmethod
    def term_id_set(terms: Iterable[Term]) -> Set[TermID]:
        return {t.id for t in terms}

    def __iter__(self) -> Iterator[Term]:
        for term_id in self.graph:
            term = self.get_term(term_id)
            if term is not None:
                yield term

    def __len__(self) -> int:
        return len(self.graph)

    @property
    def number_of_terms(self) -> int:
        return len(self.graph)

    def maximum_term_id(self) -> int:
        """The highest numeric term id used in the container."""
        return max((t.id.id for t in self.term_container), default=0)

    # ------------------------------------------------------------------
    # Neighbourhood
    # ------------------------------------------------------------------

    def get_term_children(self, term_id: TermID) -> Set[TermID]:
        return set(self.graph.get_child_nodes(term_id))

    def get_term_parents(self, term_id: TermID) -> Set[TermID]:
        return set(self.graph.get_parent_nodes(term_id))

    def get_term_parents_with_relation(self, term_id: TermID) -> Set[ParentTermID]:
        return {ParentTermID(e.source, e.data) for e in self.graph.get_in_edges(term_id)}

    def get_direct_relation(self, parent: TermID, term_id: TermID) -> Optional[RelationType]:
        """The relation of the term to the parent, None if parent is no direct parent."""
        edge = self.graph.get_edge(parent, term_id)
        return edge.data if edge is not None else None

    def get_terms_siblings(self, term_id: TermID) -> Set[TermID]:
        """Terms that share a parent with the given term."""
        siblings: Set[TermID] = set()
        for parent in self.get_term_parents(term_id):
            siblings.update(self.get_term_children(parent))
        siblings.discard(term_id)
        return siblings

    def get_parent_nodes(self, term_id: TermID) -> List[TermID]:
        return self.graph.get_parent_nodes(term_id)

    def get_child_nodes(self, term_id: TermID) -> List[TermID]:
        return self.graph.get_child_nodes(term_id)

    def get_leaf_term_ids(self) -> List[TermID]:
        """Ids of the terms without descendants."""
        return [t for t in self.graph if self.graph.out_degree(t) == 0]

    def get_leaf_terms(self) -> List[Term]:
        return [self.get_term(t) for t in self.get_leaf_term_ids()]

    def get_terms_in_topological_order(self) -> List[TermID]:
        return self.graph.topological_order()

    # ------------------------------------------------------------------
    # Walks and paths
    # ------------------------------------------------------------------

    def exists_path(self, source_id: TermID, dest_id: TermID) -> bool:
        """Whether a directed path leads from source to dest (source is more general)."""
        if self.is_root_term(dest_id):
            return self.is_root_term(source_id)
        if source_id not in self.graph:
            return False
        return self.graph.exists_path(source_id, dest_id)

    @staticmethod
    def _start_ids(term_ids) -> List[TermID]:
        if isinstance(term_ids, (TermID, str)):
            return [as_term_id(term_ids)]
        return [as_term_id(t) for t in term_ids]

    @staticmethod
    def _relation_filter(relations_to_follow: Optional[Set[RelationMeaning]]):
        if relations_to_follow is None:
            return None
        return lambda edge: edge.data is not None and edge.data.meaning() in relations_to_follow

    def walk_to_source(
        self,
        term_ids: Union[TermID, Iterable[TermID]],
        visitor: TermIDVisitor,
        relations_to_follow: Optional[Set[RelationMeaning]] = None,
    ) -> None:
        """
        Walk from the given terms towards the root, calling ``visitor`` for
        each term reached (the start terms included) until it returns False.
        With ``relations_to_follow`` only edges of those meanings are used.
        """
        self.graph.bfs(
            self._start_ids(term_ids),
            visitor,
            against_flow=True,
            edge_filter=self._relation_filter(relations_to_follow),
        )

    def walk_to_sinks(
        self,
        term_ids: Union[TermID, Iterable[TermID]],
        visitor: TermIDVisitor,
        relations_to_follow: Optional[Set[RelationMeaning]] = None,
    ) -> None:
        """Walk from the given terms towards the leaves, see ``walk_to_source``."""
        self.graph.bfs(
            self._start_ids(term_ids),
            visitor,
            against_flow=False,
            edge_filter=self._relation_filter(relations_to_follow),
        )

    def _collect(self, walk, term_ids) -> Set[TermID]:
        collected: Set[TermID] = set()

        def visit(term_id):
            collected.add(term_id)
            return True

        walk(term_ids, visit)
        return collected

    def get_ancestors(self, term_id: TermID) -> Set[TermID]:
        """The term and all of its ancestors."""
        return self._collect(self.walk_to_source, term_id)

    def get_descendants(self, term_id: TermID) -> Set[TermID]:
        """The term and all of its descendants."""
        return self._collect(self.walk_to_sinks, term_id)

    def get_terms_of_induced_graph(self, root_id: Optional[TermID], term_id: TermID) -> Set[TermID]:
        """
        Return the terms of the graph induced by term_id, i.e. the term and
        its ancestors. If root_id is given (and is not the ontology root) only
        terms that are reachable from root_id are included.
        """
        terms = self.get_ancestors(term_id)
        if root_id is not None and not self.is_root_term(root_id):
            terms &= self.get_descendants(root_id)
        return terms

    def get_shared_parents(self, term1: TermID, term2: TermID) -> List[TermID]:
        """Ancestors shared by both terms, in walk order from term2."""
        ancestors1 = self.get_terms_of_induced_graph(None, term1)
        shared: List[TermID] = []

        def visit(term_id):
            if term_id in ancestors1:
                shared.append(term_id)
            return True

        self.walk_to_source(term2, visit)
        return shared

    def get_induced_graph(self, term_ids: Iterable[TermID]) -> "Ontology":
        """Return the ontology made of the given terms and all their ancestors."""
        all_terms: Set[TermID] = set()
        for term_id in term_ids:
            all_terms |= self.get_terms_of_induced_graph(None, term_id)

        induced = self._derive(self.graph.sub_graph(all_terms))
        induced._assign_level1_terms_and_fix_root(inherited_root=self.root_term)
        return induced

    def get_term_levels(self, term_ids: Iterable[TermID]) -> TermLevels:
        """
        Return the levels of the given terms, i.e. the length of the longest
        path from the root. Only the relevant terms are considered.
        """
        wanted = set(term_ids)

        if (
            self.relevant_subontology is not None
            and not self.is_root_term(self.relevant_subontology.id)
        ) or self.relevant_subset is not None:
            relevant = self.get_ontology_of_relevant_terms()
            graph, root = relevant.graph, relevant.root_term
        else:
            graph, root = self.graph, self.root_term

        levels = TermLevels()
        if root is None:
            return levels

        def visit(vertex, path, distance):
            if vertex in wanted:
                levels.put_level(vertex, distance)
            return True

        graph.single_source_longest_path(root.id, visit)
        return levels

    # ------------------------------------------------------------------
    # Slim views
    # ------------------------------------------------------------------

    def get_slim_graph_view(self) -> SlimDirectedGraphView:
        """A slim representation with terms as vertices."""
        return SlimDirectedGraphView.create(self.graph, self.get_term)

    def get_term_id_slim_graph_view(self) -> SlimDirectedGraphView:
        """A slim representation with term ids as vertices."""
        return SlimDirectedGraphView.create(self.graph)

    # ------------------------------------------------------------------
    # Relevance
    # ------------------------------------------------------------------

    def set_relevant_subset(self, subset_name: Optional[str]) -> None:
        """
        Restrict the analysis to terms of the named subset (None clears it).

        Raises:
            ValueError: If no such subset is available
        """
        if subset_name is None:
            self.relevant_subset = None
            return

        for subset in self.available_subsets:
            if subset.name == subset_name:
                self.relevant_subset = subset
                return

        self.relevant_subset = None
        raise ValueError(f'Subset "{subset_name}" couldn\'t be found!')

    def set_relevant_subontology(self, subontology: Optional[str]) -> None:
        """
        Restrict the analysis to the terms below the term with the given name
        or id (None clears it).

        Raises:
            ValueError: If no such term exists
        """
        if subontology is None:
            self.relevant_subontology = None
            return

        for term in self:
            if term.name == subontology:
                self.relevant_subontology = term
                return

        term = self.get_term(subontology)
        if term is not None:
            self.relevant_subontology = term
            return

        raise ValueError(f'Subontology "{subontology}" couldn\'t be found!')

    def get_relevant_subontology(self) -> Optional[TermID]:
        """The id of the relevant subontology, the root id if none is set."""
        if self.relevant_subontology is not None:
            return self.relevant_subontology.id
        return self.root_term.id if self.root_term is not None else None

    def is_relevant_term(self, term: Term, relevant_subset=_CURRENT, relevant_subontology=_CURRENT) -> bool:
        """
        Whether the term belongs to the relevant subset and lies within the
        relevant subontology. Both filters default to the current selection.
        """
        if relevant_subset is _CURRENT:
            relevant_subset = self.relevant_subset
        if relevant_subontology is _CURRENT:
            relevant_subontology = self.relevant_subontology

        if relevant_subset is not None:
            if not any(s.name == relevant_subset.name for s in term.subsets):
                return False

        if relevant_subontology is not None:
            if term.id != relevant_subontology.id and not self.exists_path(relevant_subontology.id, term.id):
                return False

        return True

    def is_relevant_term_id(self, term_id: TermID) -> bool:
        term = self.get_term(term_id)
        if term is None:
            return False
        return self.is_relevant_term(term)

    def filter_relevant(self, term_ids: Iterable[TermID]) -> List[TermID]:
        """Return those of the given terms that are relevant."""
        return [t for t in term_ids if self.is_relevant_term_id(t)]

    def get_ontology_of_relevant_terms(self, relevant_subset=_CURRENT, relevant_subontology=_CURRENT) -> "Ontology":
        """
        Return the ontology of the relevant terms. Its graph keeps exactly the
        ancestor relation between relevant terms, with redundant edges removed.
        """
        terms = [
            t.id for t in self
            if self.is_relevant_term(t, relevant_subset, relevant_subontology)
        ]
        reduced = self.graph.path_maintaining_sub_graph(terms, merge_relations)

        relevant = self._derive(reduced)
        if self.root_term is not None and self.root_term.id in reduced:
            relevant.root_term = self.root_term
        relevant._assign_level1_terms_and_fix_root(inherited_root=self.root_term)
        return relevant

    # ------------------------------------------------------------------
    # Redundancy and merging
    # ------------------------------------------------------------------

    def find_a_redundant_isa_relation(self, term: Union[Term, TermID]) -> Optional[TermID]:
        """
        Return a parent of the term whose relation is redundant, i.e. which
        can be removed without changing the set of ancestors. None if there
        is no such parent.
        """
        term_id = term.id if isinstance(term, Term) else term
        parents = self.graph.get_parent_nodes(term_id)
        all_induced = self.get_terms_of_induced_graph(None, term_id)

        for parent in parents:
            others_induced: Set[TermID] = set()
            for other in parents:
                if other == parent:
                    continue
                others_induced |= self.get_terms_of_induced_graph(None, other)

            if len(others_induced) == len(all_induced) - 1:
                return parent

        return None

    @timed("Ontology.find_redundant_isa_relations")
    def find_redundant_isa_relations(
        self, n_jobs: Optional[int] = None, show_progress: Optional[bool] = None
    ) -> pd.DataFrame:
        """
        Check every term for a redundant relation and report the findings.

        Args:
            n_jobs: Number of worker threads (joblib semantics), the
                configured value by default
            show_progress: Whether to show a progress bar

        Returns:
            DataFrame with one row per term that has a redundant relation
        """
        n_jobs = self.n_jobs if n_jobs is None else n_jobs
        show_progress = self.show_progress if show_progress is None else show_progress

        terms = list(self)
        progress = tqdm(terms, desc="Checking relations", disable=not show_progress)

        def check(term):
            return term, self.find_a_redundant_isa_relation(term)

        if n_jobs == 1:
            results = [check(term) for term in progress]
        else:
            results = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(check)(term) for term in progress
            )

        rows = []
        for term, redundant in results:
            if redundant is None:
                continue
            parent = self.get_term(redundant)
            parent_name = parent.name if parent is not None else ""
            logger.info(f"{term.name} ({term.id}) -> {parent_name} ({redundant})")
            rows.append({
                "term_id": str(term.id),
                "term_name": term.name,
                "redundant_parent_id": str(redundant),
                "redundant_parent_name": parent_name,
            })

        logger.info(f"Found {len(rows)} terms with a redundant relation")
        return pd.DataFrame(
            rows, columns=["term_id", "term_name", "redundant_parent_id", "redundant_parent_name"]
        )

    def merge_terms(self, representative: Term, equivalents: Iterable[Term]) -> None:
        """
        Merge equivalent terms into the representative. The ids of the
        equivalent terms become alternative ids of the representative, which
        inherits all their relations.
        """
        equivalents = list(equivalents)
        existing = set(representative.alternatives)
        for term in equivalents:
            if term.id in existing or term.id == representative.id:
                continue
            representative.add_alternative_id(term.id)
            existing.add(term.id)

        self.graph.merge_vertices(representative.id, self.term_id_list(equivalents))

        # new alternatives must become visible to later lookups
        with self._alternative_lock:
            self._alternative_map = None

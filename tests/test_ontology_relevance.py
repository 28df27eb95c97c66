# tests/test_ontology_relevance.py
"""
Tests for relevant subsets, relevant subontologies and the ontology of
relevant terms.
"""

import pytest

from termgraph.ontology import RelationType, TermID, merge_relations


def go(number):
    return TermID("GO", number)


ROOT = go(0)


def edge_set(ontology):
    graph = ontology.graph
    return {(e.source, e.dest) for v in graph for e in graph.get_out_edges(v)}


class TestRelevanceSelection:

    def test_set_relevant_subset(self, go_ontology):
        """Known subsets can be selected and cleared."""
        go_ontology.set_relevant_subset("goslim_generic")
        assert go_ontology.relevant_subset.name == "goslim_generic"
        go_ontology.set_relevant_subset(None)
        assert go_ontology.relevant_subset is None

    def test_unknown_subset(self, go_ontology):
        """Unknown subsets are rejected and leave no subset selected."""
        go_ontology.set_relevant_subset("goslim_generic")
        with pytest.raises(ValueError, match="couldn't be found"):
            go_ontology.set_relevant_subset("goslim_unknown")
        assert go_ontology.relevant_subset is None

    def test_set_relevant_subontology_by_name(self, go_ontology):
        """Subontologies are selected by term name."""
        go_ontology.set_relevant_subontology("biological_process")
        assert go_ontology.get_relevant_subontology() == go(8150)

    def test_set_relevant_subontology_by_id(self, go_ontology):
        """Subontologies can also be selected by id."""
        go_ontology.set_relevant_subontology("GO:0003674")
        assert go_ontology.get_relevant_subontology() == go(3674)

    def test_unknown_subontology(self, go_ontology):
        """Unknown subontologies are rejected."""
        with pytest.raises(ValueError):
            go_ontology.set_relevant_subontology("no such process")

    def test_default_subontology_is_root(self, go_ontology):
        """Without a selection the root is the relevant subontology."""
        assert go_ontology.get_relevant_subontology() == ROOT

    def test_apply_config(self, go_ontology):
        """Configuration values select filters and parallelism."""
        go_ontology.apply_config({
            "relevant_subset": "goslim_generic",
            "relevant_subontology": None,
            "n_jobs": 2,
            "show_progress": False,
        })
        assert go_ontology.relevant_subset.name == "goslim_generic"
        assert go_ontology.relevant_subontology is None
        assert go_ontology.n_jobs == 2

    def test_apply_config_from_file(self, go_ontology, tmp_path):
        """A configuration file path is loaded before it is applied."""
        config_path = tmp_path / "termgraph.yaml"
        config_path.write_text("relevant_subset: goslim_generic\nn_jobs: 2\n")
        go_ontology.apply_config(str(config_path))
        assert go_ontology.relevant_subset.name == "goslim_generic"
        assert go_ontology.n_jobs == 2

    def test_subontology_outside_induced_graph(self, go_ontology):
        """Only terms of the ontology's own graph can be selected."""
        induced = go_ontology.get_induced_graph([go(3)])
        with pytest.raises(ValueError):
            induced.set_relevant_subontology("molecular_function")
        assert induced.relevant_subontology is None
        assert induced.filter_relevant([go(3)]) == [go(3)]

    def test_subontology_inside_induced_graph(self, go_ontology):
        """Ancestors kept by the induced graph remain selectable."""
        induced = go_ontology.get_induced_graph([go(3)])
        induced.set_relevant_subontology("biological_process")
        assert induced.get_relevant_subontology() == go(8150)
        assert induced.is_relevant_term_id(go(3))


class TestIsRelevant:

    def test_everything_relevant_by_default(self, go_ontology):
        """Without filters every term is relevant."""
        assert all(go_ontology.is_relevant_term(t) for t in go_ontology)

    def test_subset_filter(self, go_ontology):
        """Only members of the subset are relevant."""
        go_ontology.set_relevant_subset("goslim_generic")
        assert go_ontology.is_relevant_term_id(go(3))
        assert not go_ontology.is_relevant_term_id(go(1))
        assert go_ontology.is_relevant_term_id(ROOT)
        assert go_ontology.filter_relevant([go(1), go(3), go(5), go(1234)]) == [go(3), go(5)]

    def test_subontology_filter(self, go_ontology):
        """Only the subontology term and its descendants are relevant."""
        go_ontology.set_relevant_subontology("biological_process")
        assert go_ontology.is_relevant_term_id(go(8150))
        assert go_ontology.is_relevant_term_id(go(4))
        assert not go_ontology.is_relevant_term_id(go(5))
        assert not go_ontology.is_relevant_term_id(ROOT)

    def test_explicit_filters(self, go_ontology, go_container):
        """Filters can be passed explicitly instead of using the selection."""
        go_ontology.set_relevant_subset("goslim_generic")
        term = go_container.get(go(1))
        assert not go_ontology.is_relevant_term(term)
        assert go_ontology.is_relevant_term(term, None, None)


class TestOntologyOfRelevantTerms:

    def test_subset_ontology(self, go_ontology):
        """The relevant ontology keeps ancestry among subset members only."""
        go_ontology.set_relevant_subset("goslim_generic")
        relevant = go_ontology.get_ontology_of_relevant_terms()
        assert set(relevant.graph) == {ROOT, go(8150), go(3674), go(3), go(5)}
        assert edge_set(relevant) == {
            (ROOT, go(8150)), (ROOT, go(3674)), (go(8150), go(3)), (go(3674), go(5))
        }
        assert relevant.root_term is go_ontology.root_term

    def test_bypass_relations(self, go_ontology):
        """Bypass edges combine the relations they replace."""
        go_ontology.set_relevant_subset("goslim_generic")
        relevant = go_ontology.get_ontology_of_relevant_terms()
        assert relevant.get_direct_relation(go(8150), go(3)) is RelationType.IS_A
        assert relevant.get_direct_relation(ROOT, go(8150)) is RelationType.UNKNOWN

    def test_subontology_ontology(self, go_ontology, go_container):
        """Below a subontology its term becomes the root."""
        go_ontology.set_relevant_subontology("biological_process")
        relevant = go_ontology.get_ontology_of_relevant_terms()
        assert set(relevant.graph) == {go(8150), go(1), go(2), go(3), go(4), go(8), go(9)}
        assert relevant.root_term is go_container.get(go(8150))
        # the shortcut to the glucose term is implied by the longer path
        assert not relevant.graph.has_edge(go(8150), go(4))

    def test_derived_ontology_shares_context(self, go_ontology):
        """Container and subsets are carried over."""
        go_ontology.set_relevant_subset("goslim_generic")
        relevant = go_ontology.get_ontology_of_relevant_terms()
        assert relevant.term_container is go_ontology.term_container
        assert relevant.available_subsets == go_ontology.available_subsets
        assert relevant.available_subsets is not go_ontology.available_subsets

    def test_explicit_filters(self, go_ontology):
        """Filters passed explicitly override the selection."""
        go_ontology.set_relevant_subset("goslim_generic")
        relevant = go_ontology.get_ontology_of_relevant_terms(None, None)
        assert len(relevant) == len(go_ontology)

    def test_source_untouched(self, go_ontology):
        """The source ontology is not changed."""
        go_ontology.set_relevant_subset("goslim_generic")
        go_ontology.get_ontology_of_relevant_terms()
        assert len(go_ontology) == 13
        assert go_ontology.graph.has_edge(go(1), go(3))


class TestRelevantLevels:

    def test_levels_within_subset(self, go_ontology):
        """Levels are measured in the ontology of relevant terms."""
        assert go_ontology.get_term_levels([go(3)]).get_term_level(go(3)) == 3
        go_ontology.set_relevant_subset("goslim_generic")
        levels = go_ontology.get_term_levels([go(3), go(4), go(5)])
        assert levels.get_term_level(go(3)) == 2
        assert levels.get_term_level(go(5)) == 2
        assert levels.get_term_level(go(4)) == -1

    def test_levels_within_subontology(self, go_ontology):
        """The subontology term is level zero."""
        go_ontology.set_relevant_subontology("biological_process")
        levels = go_ontology.get_term_levels([go(8150), go(1), go(3), go(4)])
        assert levels.get_term_level(go(8150)) == 0
        assert levels.get_term_level(go(1)) == 1
        assert levels.get_term_level(go(3)) == 2
        assert levels.get_term_level(go(4)) == 3

    def test_root_subontology_uses_full_graph(self, go_ontology):
        """Selecting the root as subontology changes nothing."""
        go_ontology.set_relevant_subontology("GO:0000000")
        assert go_ontology.get_term_levels([go(4)]).get_term_level(go(4)) == 4


class TestMergeRelations:

    def test_is_a_is_neutral(self):
        """Chains of is_a with one other relation keep that relation."""
        assert merge_relations([RelationType.IS_A, RelationType.IS_A]) is RelationType.IS_A
        assert merge_relations([RelationType.IS_A, RelationType.PART_OF_A]) is RelationType.PART_OF_A
        assert merge_relations([None, RelationType.IS_A]) is RelationType.IS_A

    def test_conflicts_are_unknown(self):
        """Different non is_a relations cannot be combined."""
        assert merge_relations([RelationType.PART_OF_A, RelationType.REGULATES]) is RelationType.UNKNOWN
        assert merge_relations([RelationType.UNKNOWN, RelationType.IS_A]) is RelationType.UNKNOWN

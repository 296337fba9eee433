import io
from io import StringIO
import numpy as np
import pytest
from Bio import Phylo
from TransNet.Alphabet import MISSING
from TransNet.Ancestral import ASRFailureError
from TransNet.Matrix import MatrixError
from TransNet.MetadataParser import (MetadataParser, DimensionMismatchError,
                                     UnknownTaxonError, UnsupportedGapError)
from TransNet.Parsimony import AncestralReconstruction
from TransNet.Pipeline import (build_transmission_network,
                               transmission_network, select_character)
from TransNet.Transitions import Transition
from TransNet.TreeParser import from_biopython


NEXUS = """#NEXUS
BEGIN TAXA;
    DIMENSIONS NTAX=4;
    TAXLABELS
        t1 t2 t3 t4
    ;
END;

BEGIN CHARACTERS;
    DIMENSIONS NCHAR=2;
    FORMAT DATATYPE=STANDARD GAP=- MISSING=? SYMBOLS="0 1 2";
    CHARSTATELABELS
        1 state / A B,
        2 location / Asia Europe Africa
    ;
    MATRIX
        t1 {t1}
        t2 00
        t3 11
        t4 11
    ;
END;

BEGIN TREES;
    tree tree1 = ((t1:1,t2:1):1,(t3:1,t4:1):1);
END;
"""


def write(tmp_path, t1 : str = "00") -> str:
    path = tmp_path / "transnet.nex"
    path.write_text(NEXUS.format(t1 = t1), encoding = "utf-8")
    return str(path)


def metadata(t1 : str = "00"):
    return MetadataParser(io.StringIO(NEXUS.format(t1 = t1))).metadata()


def newick(text : str):
    return from_biopython(Phylo.read(StringIO(text), "newick"))


def fixed_asr(rows):
    """
    Stand-in reconstruction routine that always returns 'rows'.
    """
    def asr(tree, tips, num_states):
        return AncestralReconstruction(np.array(rows, dtype = float), True)
    return asr


######################
#### END TO END ######
######################

def test_two_clades_give_a_single_transition(tmp_path):
    result = build_transmission_network(write(tmp_path), character = 1)
    graph = result.graph

    assert graph.labels() == ["A", "B"]
    assert result.transitions == (Transition(1, 2, 1),)
    assert graph.weight(1, 2) == 1
    assert graph.total_weight() == 1
    # root (id 4) is tied between A and B and resolves to A
    assert result.assignment.states == (1, 1, 2, 2, 1, 1, 2)


def test_character_selected_by_name(tmp_path):
    result = build_transmission_network(write(tmp_path),
                                        character = "location")

    assert result.character_index == 2
    assert len(result.graph.nodes) == 3
    assert result.graph.edge_table() == [{"from" : 1, "to" : 2,
                                          "weight" : 1}]


def test_graph_keeps_states_without_transitions():
    result = transmission_network(metadata(), newick("((t1,t2),(t3,t4));"),
                                  character = 2)

    # Africa is never observed
    assert result.graph.labels() == ["Asia", "Europe", "Africa"]


def test_leaf_edges_without_change_are_not_counted():
    # root = A, (t1,t2) = A, (t3,t4) = B
    asr = fixed_asr([[1.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    result = transmission_network(metadata(), newick("((t1,t2),(t3,t4));"),
                                  character = 1, asr = asr)

    assert result.transitions == (Transition(1, 2, 1),)


def test_missing_leaf_state(tmp_path):
    with pytest.warns(UserWarning):
        result = build_transmission_network(write(tmp_path, t1 = "?0"))

    assert result.assignment.state_of(0) == MISSING
    assert sum(t.weight for t in result.transitions) == 1


####################
#### FAILURES ######
####################

def test_failed_reconstruction_is_fatal():
    def asr(tree, tips, num_states):
        return AncestralReconstruction(np.zeros((3, 2)), False)

    with pytest.raises(ASRFailureError):
        transmission_network(metadata(), newick("((t1,t2),(t3,t4));"),
                             asr = asr)


def test_unknown_character():
    with pytest.raises(MatrixError):
        select_character(metadata(), 3)
    with pytest.raises(MatrixError):
        select_character(metadata(), "host")


def test_tree_with_unknown_leaf():
    with pytest.raises(UnknownTaxonError):
        transmission_network(metadata(), newick("((t1,t2),(t3,t9));"))


def test_tree_with_too_few_leaves():
    with pytest.raises(DimensionMismatchError):
        transmission_network(metadata(), newick("((t1,t2),t3);"))


def test_parse_errors_propagate(tmp_path):
    with pytest.raises(UnsupportedGapError):
        build_transmission_network(write(tmp_path, t1 = "-0"))

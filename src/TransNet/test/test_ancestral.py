import numpy as np
import pytest
from TransNet.Alphabet import MISSING
from TransNet.Ancestral import (AncestralAssigner, ASRFailureError,
                                StateAssignment, leaf_states,
                                most_likely_state)
from TransNet.TreeParser import PhyloTree


def test_unique_maximum():
    assert most_likely_state(np.array([0.1, 0.7, 0.2])) == 2


def test_ties_go_to_the_lowest_state():
    assert most_likely_state(np.array([0.2, 0.4, 0.4])) == 2
    assert most_likely_state(np.array([0.5, 0.5])) == 1


def test_internal_rows_follow_the_leaves():
    assigner = AncestralAssigner(num_leaves = 3, num_internal = 2)
    assignment = assigner.assign([1, 2, MISSING],
                                 [[0.9, 0.1],
                                  [0.5, 0.5]])

    assert assignment.states == (1, 2, MISSING, 1, 1)
    assert assigner.node_id(1) == 4
    assert assignment.state_of(3) == 1
    assert assignment.is_missing(2)
    assert len(assignment) == 5


def test_state_by_node_id():
    assignment = StateAssignment((2, 1, 2), num_leaves = 2)
    assert assignment.state_by_node_id() == {0 : 2, 1 : 1, 2 : 2}


def test_for_tree():
    tree = PhyloTree(((2, 0), (2, 1)), ("a", "b"), 1)
    assigner = AncestralAssigner.for_tree(tree)
    assert assigner.num_leaves == 2
    assert assigner.num_internal == 1


def test_leaf_states_follow_tip_order():
    tree = PhyloTree(((2, 0), (2, 1)), ("b", "a"), 1)
    assert leaf_states(tree, {"a" : 1, "b" : 2}) == [2, 1]


def test_wrong_number_of_rows():
    assigner = AncestralAssigner(num_leaves = 2, num_internal = 1)
    with pytest.raises(ASRFailureError):
        assigner.assign([1, 2], [[0.5, 0.5], [0.5, 0.5]])


def test_wrong_number_of_leaves():
    assigner = AncestralAssigner(num_leaves = 2, num_internal = 1)
    with pytest.raises(ASRFailureError):
        assigner.assign([1], [[0.5, 0.5]])

import pytest
from TransNet.Alphabet import MISSING
from TransNet.Ancestral import StateAssignment
from TransNet.Transitions import Transition, aggregate_transitions

# ((0,1)5,(2,3)6)4
EDGES = [(4, 5), (4, 6), (5, 0), (5, 1), (6, 2), (6, 3)]


def test_no_state_changes():
    assignment = StateAssignment((1, 1, 1, 1, 1, 1, 1), num_leaves = 4)
    assert aggregate_transitions(EDGES, assignment) == []


def test_single_change_between_ancestors():
    assignment = StateAssignment((1, 1, 2, 2, 1, 1, 2), num_leaves = 4)
    assert aggregate_transitions(EDGES, assignment) == [Transition(1, 2, 1)]


def test_weights_count_edges_and_keep_direction():
    #           leaves        root (4)  5  6
    states = (1, 3, 1, 2,     1,        2, 1)
    assignment = StateAssignment(states, num_leaves = 4)
    transitions = aggregate_transitions(EDGES, assignment)

    assert transitions == [Transition(1, 2, 2),
                           Transition(2, 1, 1),
                           Transition(2, 3, 1)]
    changed = sum(1 for parent, child in EDGES
                  if states[parent] != states[child])
    assert sum(t.weight for t in transitions) == changed


def test_edges_touching_missing_states_are_skipped():
    assignment = StateAssignment((MISSING, 1, 2, 2, 1, 1, 1), num_leaves = 4)
    with pytest.warns(UserWarning):
        transitions = aggregate_transitions(EDGES, assignment)
    assert transitions == [Transition(1, 2, 2)]

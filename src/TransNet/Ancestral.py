#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- TransNet --
##  Pathogen Transmission Networks from Trait-Annotated Phylogenies
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##  If you use this work or any portion thereof in published work,
##  please cite it as:
##
##     Mark Kessler, Luay Nakhleh. 2025.
##
##############################################################################

"""
Author : Mark Kessler
Last Edit : 11/7/25
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]
"""

from __future__ import annotations
from dataclasses import dataclass
import numpy as np
import numpy.typing as npt
from .Alphabet import MISSING
from .TreeParser import PhyloTree


#########################
#### EXCEPTION CLASS ####
#########################

class ASRFailureError(Exception):
    """
    Raised when ancestral state reconstruction reports failure, or hands back
    a likelihood matrix whose shape does not fit the tree.
    """
    def __init__(self, message : str = "Ancestral state reconstruction \
                                        failed") -> None:
        self.message = message
        super().__init__(self.message)


##########################
#### HELPER FUNCTIONS ####
##########################

def leaf_states(tree : PhyloTree, leaf_state_by_taxon : dict[str, int]) -> list[int]:
    """
    Order the states of a character by leaf node id.

    Args:
        tree (PhyloTree): the tree whose leaves are being assigned
        leaf_state_by_taxon (dict[str, int]): taxon name -> state (or MISSING)
    Returns:
        list[int]: the state of leaf i at index i
    Raises:
        KeyError: if a leaf label has no state
    """
    return [leaf_state_by_taxon[label] for label in tree.tip_labels]


def most_likely_state(row : npt.NDArray[np.float64]) -> int:
    """
    1-based index of the largest value in 'row'. If several values tie for
    the maximum the lowest index wins.
    """
    return int(np.argmax(row)) + 1


##########################
#### STATE ASSIGNMENT ####
##########################

@dataclass(frozen = True)
class StateAssignment:
    """
    One state per tree node for a single character. states[node_id] is the
    state of that node; leaves come first, then internal nodes.
    """
    states : tuple[int, ...]
    num_leaves : int

    def state_of(self, node : int) -> int:
        return self.states[node]

    def __len__(self) -> int:
        return len(self.states)

    def is_missing(self, node : int) -> bool:
        return self.states[node] == MISSING

    def state_by_node_id(self) -> dict[int, int]:
        return dict(enumerate(self.states))


class AncestralAssigner:
    """
    Turns externally computed ancestral likelihoods into a concrete state per
    internal node, and combines them with the observed leaf states.
    """

    def __init__(self, num_leaves : int, num_internal : int) -> None:
        """
        Args:
            num_leaves (int): number of leaves in the tree
            num_internal (int): number of internal nodes in the tree
        Returns:
            N/A
        """
        self.num_leaves : int = num_leaves
        self.num_internal : int = num_internal

    @classmethod
    def for_tree(cls, tree : PhyloTree) -> AncestralAssigner:
        return cls(tree.num_leaves(), tree.num_internal)

    def node_id(self, row : int) -> int:
        """
        Global node id of internal node row 'row' of the likelihood matrix.
        """
        return self.num_leaves + row

    def assign(self,
               leaf_states : list[int],
               likelihoods : npt.ArrayLike) -> StateAssignment:
        """
        Build the StateAssignment for every node of the tree.

        Raises:
            ASRFailureError: if the number of leaf states or the number of
                             likelihood rows does not match the tree.
        Args:
            leaf_states (list[int]): state of leaf i at index i (may contain
                                     MISSING)
            likelihoods (npt.ArrayLike): internal node x state matrix
        Returns:
            StateAssignment: leaves first, then internal nodes
        """
        if len(leaf_states) != self.num_leaves:
            raise ASRFailureError(f"Got {len(leaf_states)} leaf states for a \
                                    tree with {self.num_leaves} leaves")

        matrix = np.asarray(likelihoods, dtype = np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != self.num_internal \
                or matrix.shape[1] == 0:
            raise ASRFailureError(f"Likelihood matrix has shape \
                                    {matrix.shape}, expected \
                                    ({self.num_internal}, n_states)")

        states = list(leaf_states)
        for row in range(self.num_internal):
            states.append(most_likely_state(matrix[row]))

        return StateAssignment(tuple(states), self.num_leaves)

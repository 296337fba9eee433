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
Design - [ ]

Maximum parsimony ancestral state reconstruction (Sankoff's algorithm) for a
single discrete character on a rooted tree.

For every internal node the routine reports, per state, the fraction of all
maximum parsimony reconstructions of the whole tree that put the node in that
state. The rows play the part of ancestral "likelihoods" for the
AncestralAssigner.

Costs are computed with an upward (post-order) pass and a downward
(pre-order) pass. Alongside each cost the number of optimal assignments that
achieve it is carried, rescaled at every node so the counts never overflow;
rescaling a subtree's counts by a constant rescales every total by the same
constant, so the fractions are unaffected.
"""

from __future__ import annotations
from dataclasses import dataclass
import numpy as np
import numpy.typing as npt
from .Alphabet import MISSING
from .TreeParser import PhyloTree


@dataclass(frozen = True)
class AncestralReconstruction:
    """
    Output of an ancestral state reconstruction routine.

    likelihoods[i, k] is the weight of state k + 1 at internal node i (global
    node id num_leaves + i). 'success' is False when the reconstruction could
    not be carried out.
    """
    likelihoods : npt.NDArray[np.float64]
    success : bool
    total_cost : float = float("nan")


def transition_costs(num_states : int) -> npt.NDArray[np.float64]:
    """
    Unit cost for any change of state, no cost for staying put.
    """
    return 1.0 - np.eye(num_states)


def _best(costs : np.ndarray,
          counts : np.ndarray,
          transition : np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    For each state s of the near end of an edge, minimise
    transition[s, t] + costs[t] over the far end state t.

    Returns:
        tuple[np.ndarray, np.ndarray]: the minimum cost per s, and the summed
                                       counts of every t attaining it.
    """
    total = transition + costs[np.newaxis, :]
    low = total.min(axis = 1)
    hits = np.isclose(total, low[:, np.newaxis]) & np.isfinite(total)
    return low, (hits * counts[np.newaxis, :]).sum(axis = 1)


def _rescale(counts : np.ndarray) -> np.ndarray:
    peak = counts.max()
    return counts / peak if peak > 0 else counts


def asr_max_parsimony(tree : PhyloTree,
                      tip_states : list[int],
                      num_states : int) -> AncestralReconstruction:
    """
    Reconstruct ancestral states of one discrete character by maximum
    parsimony.

    Args:
        tree (PhyloTree): a rooted tree
        tip_states (list[int]): the 1-based state of leaf i at index i, or
                                MISSING, which places no constraint on the leaf
        num_states (int): number of possible states of the character
    Returns:
        AncestralReconstruction: one row per internal node, plus a success
                                 flag that is False for unusable input.
    """
    n = tree.num_leaves()
    failed = AncestralReconstruction(np.zeros((tree.num_internal,
                                               max(num_states, 0))),
                                     False)
    if num_states < 1 or len(tip_states) != n:
        return failed
    if any(state != MISSING and not 1 <= state <= num_states
           for state in tip_states):
        return failed

    cost = transition_costs(num_states)
    kids = tree.children()
    order = tree.preorder()
    total_nodes = tree.num_nodes()

    up = np.zeros((total_nodes, num_states))
    up_count = np.ones((total_nodes, num_states))

    # per (parent, child) contribution of the child's subtree
    edge_cost : dict[int, np.ndarray] = {}
    edge_count : dict[int, np.ndarray] = {}

    for leaf, state in enumerate(tip_states):
        if state != MISSING:
            up[leaf, :] = np.inf
            up[leaf, state - 1] = 0.0
            up_count[leaf, :] = 0.0
            up_count[leaf, state - 1] = 1.0

    for node in reversed(order):
        if not kids[node]:
            continue
        for child in kids[node]:
            low, hits = _best(up[child], up_count[child], cost)
            edge_cost[child] = low
            edge_count[child] = hits
            up[node] += low
            up_count[node] *= hits
        up_count[node] = _rescale(up_count[node])

    down = np.zeros((total_nodes, num_states))
    down_count = np.ones((total_nodes, num_states))

    for node in order:
        for child in kids[node]:
            # cost of everything outside child's subtree, by parent state
            outside = down[node] + up[node] - edge_cost[child]
            others = np.ones(num_states)
            for sibling in kids[node]:
                if sibling != child:
                    others = others * edge_count[sibling]
            outside_count = down_count[node] * others
            # transitions are symmetric, so cost[s, t] == cost[t, s]
            low, hits = _best(outside, outside_count, cost)
            down[child] = low
            down_count[child] = _rescale(hits)

    total = up + down
    weight = up_count * down_count
    likelihoods = np.zeros((tree.num_internal, num_states))
    for i in range(tree.num_internal):
        node = n + i
        best = total[node].min()
        optimal = np.isclose(total[node], best) & np.isfinite(total[node])
        row = np.where(optimal, weight[node], 0.0)
        if row.sum() <= 0 or not np.isfinite(best):
            return failed
        likelihoods[i] = row / row.sum()

    return AncestralReconstruction(likelihoods,
                                   True,
                                   float(total[tree.root()].min()))

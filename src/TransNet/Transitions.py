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
"""

from __future__ import annotations
import logging
import warnings
from collections import Counter
from dataclasses import dataclass
from typing import Iterable
from .Ancestral import StateAssignment

logger = logging.getLogger(__name__)


@dataclass(frozen = True, order = True)
class Transition:
    """
    An aggregated change of state: 'weight' tree edges went from state
    'source' (parent end) to state 'target' (child end).
    """
    source : int
    target : int
    weight : int


def aggregate_transitions(edges : Iterable[tuple[int, int]],
                          assignment : StateAssignment) -> list[Transition]:
    """
    Walk every (parent, child) edge and count the ordered state pairs of the
    edges whose endpoint states differ. A->B and B->A are separate buckets.

    Edges with a MISSING endpoint are not counted.

    Args:
        edges (Iterable[tuple[int, int]]): directed tree edges
        assignment (StateAssignment): the state of every node
    Returns:
        list[Transition]: one entry per observed ordered pair, sorted by
                          (source, target). Every weight is at least 1.
    """
    counts : Counter[tuple[int, int]] = Counter()
    skipped = 0

    for parent, child in edges:
        if assignment.is_missing(parent) or assignment.is_missing(child):
            skipped += 1
            continue
        source = assignment.state_of(parent)
        target = assignment.state_of(child)
        if source != target:
            counts[(source, target)] += 1

    if skipped:
        warnings.warn(f"{skipped} tree edge(s) touch a node with a missing \
                        state and were left out of the transition counts")

    logger.debug("%d state changes over %d distinct transitions",
                 sum(counts.values()), len(counts))

    return [Transition(source, target, weight)
            for (source, target), weight in sorted(counts.items())]

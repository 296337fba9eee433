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
Last Stable Edit : 11/7/25
First Included in Version : 1.0.0
Approved for Release : Yes.

Driver that takes a trait annotated nexus file all the way to a transmission
graph:

    file -> metadata -> character column -> leaf states -> ASR
         -> state per node -> transitions -> graph

Every step raises on bad input. This module is the only place failures are
reported (logged) before being passed up to the caller.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable
from .Alphabet import MISSING
from .Matrix import Character, MatrixError
from .MetadataParser import (NexusMetadata, MetadataParserError,
                             DimensionMismatchError, UnknownTaxonError,
                             read_metadata)
from .TreeParser import PhyloTree, TreeParserError, read_tree
from .Parsimony import AncestralReconstruction, asr_max_parsimony
from .Ancestral import (AncestralAssigner, ASRFailureError, StateAssignment,
                        leaf_states)
from .Transitions import Transition, aggregate_transitions
from .TransmissionGraph import (TransmissionGraph, TransmissionGraphError,
                                build_transmission_graph)

logger = logging.getLogger(__name__)

ASRRoutine = Callable[[PhyloTree, list[int], int], AncestralReconstruction]

_FATAL = (MetadataParserError, TreeParserError, MatrixError, ASRFailureError,
          TransmissionGraphError)


@dataclass(frozen = True)
class TransNetResult:
    """
    Everything produced on the way to a transmission graph.
    """
    metadata : NexusMetadata
    tree : PhyloTree
    character_index : int
    character : Character
    assignment : StateAssignment
    transitions : tuple[Transition, ...]
    graph : TransmissionGraph


def select_character(metadata : NexusMetadata,
                     character : int | str) -> tuple[int, Character]:
    """
    Resolve a character given either as a 1-based index or by name.

    Raises:
        MatrixError: if there is no such character
    Returns:
        tuple[int, Character]: the 1-based index and the character itself
    """
    if isinstance(character, str):
        index = metadata.characters.index_of(character)
    else:
        index = int(character)
    return index, metadata.characters.get(index)


def _check_tips(tree : PhyloTree, metadata : NexusMetadata) -> None:
    if tree.num_leaves() != len(metadata.taxa):
        raise DimensionMismatchError(f"Tree has {tree.num_leaves()} leaves but\
                                       the TAXA block declares \
                                       {len(metadata.taxa)} taxa")
    for label in tree.tip_labels:
        if label not in metadata.taxa:
            raise UnknownTaxonError(f"Tree leaf <{label}> is not declared in \
                                      the TAXA block")


def transmission_network(metadata : NexusMetadata,
                         tree : PhyloTree,
                         character : int | str = 1,
                         asr : ASRRoutine = asr_max_parsimony) \
                         -> TransNetResult:
    """
    Build the transmission graph of one character from already parsed
    metadata and tree.

    Raises:
        MatrixError: unknown character
        DimensionMismatchError, UnknownTaxonError: tree leaves do not match
                                                  the TAXA block
        ASRFailureError: the reconstruction routine reported failure
    Args:
        metadata (NexusMetadata): parsed TAXA/CHARACTERS blocks
        tree (PhyloTree): the tree the trait evolved on
        character (int | str, optional): 1-based character index or the
                                         character name. Defaults to 1.
        asr (ASRRoutine, optional): ancestral state reconstruction routine.
                                    Defaults to asr_max_parsimony.
    Returns:
        TransNetResult: graph plus the intermediate products
    """
    index, selected = select_character(metadata, character)
    _check_tips(tree, metadata)

    leaf_state_by_taxon = metadata.matrix.column(index)
    tips = leaf_states(tree, leaf_state_by_taxon)
    if MISSING in tips:
        logger.info("%d leaves have missing data for character %s",
                    tips.count(MISSING), selected.name)

    reconstruction = asr(tree, tips, selected.num_states())
    if not reconstruction.success:
        raise ASRFailureError(f"Ancestral state reconstruction of character \
                                {selected.name} did not succeed")

    assignment = AncestralAssigner.for_tree(tree).assign(
        tips, reconstruction.likelihoods)
    transitions = aggregate_transitions(tree.edges, assignment)
    graph = build_transmission_graph(selected.state_labels, transitions)

    logger.info("Character %s: %d states, %d transition edges, %d changes",
                selected.name, len(graph.nodes), len(graph.edges),
                graph.total_weight())

    return TransNetResult(metadata, tree, index, selected, assignment,
                          tuple(transitions), graph)


def build_transmission_network(filename : str,
                               character : int | str = 1,
                               tree_index : int = 0,
                               asr : ASRRoutine = asr_max_parsimony) \
                               -> TransNetResult:
    """
    Read a nexus file and build the transmission graph of one character.

    Args:
        filename (str): nexus file with TAXA, CHARACTERS and TREES blocks
        character (int | str, optional): 1-based character index or name.
                                         Defaults to 1.
        tree_index (int, optional): which tree of the TREES block to use.
                                    Defaults to 0.
        asr (ASRRoutine, optional): ancestral state reconstruction routine.
    Returns:
        TransNetResult: graph plus the intermediate products
    """
    try:
        metadata = read_metadata(filename)
        tree = read_tree(filename, tree_index)
        return transmission_network(metadata, tree, character, asr)
    except _FATAL as err:
        logger.error("%s: %s (%s)", filename, " ".join(err.message.split()),
                     type(err).__name__)
        raise

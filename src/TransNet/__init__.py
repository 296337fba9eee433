#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- TransNet --
##  Pathogen Transmission Networks from Trait-Annotated Phylogenies
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##############################################################################

"""
TransNet - pathogen transmission networks from phylogenies annotated with a
discrete trait such as sampling location.
"""

# Core data structures
from .Alphabet import SymbolTable, AlphabetError, MISSING
from .Matrix import (TaxonSet, Character, CharacterLabelSet, CharacterMatrix,
                     MatrixError)

# Parsing and I/O
from .MetadataParser import (MetadataParser, NexusMetadata, read_metadata,
                             MetadataParserError, DimensionMismatchError,
                             UnsupportedDataTypeError, IllegalSymbolError,
                             UnknownSymbolError, UnsupportedGapError,
                             OutOfBoundsError, UnknownTaxonError,
                             DuplicateTaxonError)
from .TreeParser import PhyloTree, TreeParser, TreeParserError, read_tree

# Reconstruction and graph assembly
from .Parsimony import AncestralReconstruction, asr_max_parsimony
from .Ancestral import (AncestralAssigner, StateAssignment, ASRFailureError,
                        leaf_states)
from .Transitions import Transition, aggregate_transitions
from .TransmissionGraph import (TransmissionGraph, StateNode,
                                TransmissionGraphError,
                                build_transmission_graph, centrality_metrics)
from .Pipeline import (TransNetResult, transmission_network,
                       build_transmission_network)

__version__ = "1.0.0"
__author__ = "Mark Kessler"

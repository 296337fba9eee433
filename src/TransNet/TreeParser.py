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
Approved for Release : Most Likely. Further Testing Needed. Fully Documented
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from io import StringIO
from typing import Any
from nexus import NexusReader
from Bio import Phylo
from .MetadataParser import tokenize

logger = logging.getLogger(__name__)


#####################
#### Error Class ####
#####################

class TreeParserError(Exception):
    """
    Error that is raised whenever the TREES block of a nexus file is missing
    or describes something other than a single rooted tree.
    """
    def __init__(self, message : str = "Something went wrong \
                                        parsing a tree") -> None:
        """
        Initialize the error with a message.

        Args:
            message (str, optional): Custom error message. Defaults to
                                     "Something went wrong parsing a tree".
        """
        self.message = message
        super().__init__(self.message)


_TREES_BLOCK = re.compile(r"BEGIN\s+TREES\s*;.*?END(BLOCK)?\s*;",
                          re.IGNORECASE | re.DOTALL)
_TRANSLATE = re.compile(r"^\s*TRANSLATE\b(.*?);",
                        re.IGNORECASE | re.DOTALL | re.MULTILINE)


####################
#### PHYLO TREE ####
####################

@dataclass(frozen = True)
class PhyloTree:
    """
    Rooted tree with integer node ids.

    Leaves are numbered 0..n-1 in the order their labels appear in
    'tip_labels'. The root is n and the remaining internal nodes follow in
    pre-order, so internal node i (0-based) has global id n + i.
    """
    edges : tuple[tuple[int, int], ...]
    tip_labels : tuple[str, ...]
    num_internal : int

    def num_leaves(self) -> int:
        return len(self.tip_labels)

    def num_nodes(self) -> int:
        return len(self.tip_labels) + self.num_internal

    def root(self) -> int:
        return len(self.tip_labels)

    def children(self) -> dict[int, list[int]]:
        """
        Returns:
            dict[int, list[int]]: map from each node id to its child ids, in
                                  edge order. Leaves map to empty lists.
        """
        kids : dict[int, list[int]] = {node : [] for node
                                       in range(self.num_nodes())}
        for parent, child in self.edges:
            kids[parent].append(child)
        return kids

    def preorder(self) -> list[int]:
        """
        Returns:
            list[int]: all node ids, every parent before its children.
        """
        kids = self.children()
        order : list[int] = []
        stack = [self.root()]
        while stack:
            node = stack.pop()
            order.append(node)
            stack.extend(reversed(kids[node]))
        return order

    def validate(self) -> None:
        """
        Check that the edges form a single rooted tree over every node id.

        Raises:
            TreeParserError: if a node has two parents, the root has a parent,
                             some node is unreachable from the root, or an id
                             is out of range.
        Args:
            N/A
        Returns:
            N/A
        """
        total = self.num_nodes()
        parent_of : dict[int, int] = {}
        for parent, child in self.edges:
            if not (0 <= parent < total and 0 <= child < total):
                raise TreeParserError(f"Edge ({parent}, {child}) refers to a \
                                        node outside 0..{total - 1}")
            if child in parent_of:
                raise TreeParserError(f"Node {child} has more than one parent")
            parent_of[child] = parent

        if self.root() in parent_of:
            raise TreeParserError("The root node has a parent")
        if len(parent_of) != total - 1:
            raise TreeParserError("Tree edges do not connect every node to \
                                   exactly one parent")
        if len(set(self.preorder())) != total:
            raise TreeParserError("Some nodes are not reachable from the root")


###########################
#### Nexus Tree Parser ####
###########################

def _trees_block(text : str) -> str:
    """
    Cut the TREES block (inclusive of BEGIN/END) out of a nexus file.
    """
    match = _TREES_BLOCK.search(text)
    if match is None:
        raise TreeParserError("There is no TREES block in the file")
    return "#NEXUS\n" + match.group(0) + "\n"


def _translate_table(block : str) -> dict[str, str]:
    """
    Read the TRANSLATE statement of a TREES block, if any, into a map from
    tree token to taxon label. Entries may share a line or sit one per line.

    Raises:
        TreeParserError: if an entry is not a "<token> <label>" pair, or a
                         token is listed twice.
    Args:
        block (str): nexus text holding a TREES block
    Returns:
        dict[str, str]: token -> taxon label. Empty if there is no TRANSLATE.
    """
    match = _TRANSLATE.search(block)
    if match is None:
        return {}

    table : dict[str, str] = {}
    entry : list[str] = []
    for token in tokenize(match.group(1)) + [","]:
        if token != ",":
            entry.append(token)
            continue
        if not entry:
            continue
        if len(entry) != 2:
            raise TreeParserError(f"TRANSLATE entry <{' '.join(entry)}> is \
                                    not a token followed by a taxon label")
        if entry[0] in table:
            raise TreeParserError(f"TRANSLATE lists <{entry[0]}> twice")
        table[entry[0]] = entry[1]
        entry = []
    return table


def from_biopython(tree : Any) -> PhyloTree:
    """
    Given a biopython Tree object (with nested clade objects), renumber its
    nodes into a PhyloTree.

    Args:
        tree (Any): the biopython library tree data structure
    Returns:
        PhyloTree: the same topology and tip names, with integer node ids.
    """
    clades = list(tree.find_clades(order = "preorder"))
    terminals = [clade for clade in clades if clade.is_terminal()]
    internals = [clade for clade in clades if not clade.is_terminal()]

    if not internals:
        raise TreeParserError("A tree needs at least one internal node")
    if tree.root.is_terminal():
        raise TreeParserError("The root of the tree is a leaf")

    ids : dict[int, int] = {}
    for index, clade in enumerate(terminals):
        ids[id(clade)] = index
    for index, clade in enumerate(internals):
        ids[id(clade)] = len(terminals) + index

    labels = []
    for clade in terminals:
        if not clade.name:
            raise TreeParserError("Every leaf of the tree must be named")
        labels.append(str(clade.name))
    if len(set(labels)) != len(labels):
        raise TreeParserError("Leaf names in the tree are not unique")

    edges = [(ids[id(clade)], ids[id(child)]) for clade in internals
             for child in clade]

    parsed = PhyloTree(tuple(edges), tuple(labels), len(internals))
    parsed.validate()
    return parsed


class TreeParser:
    """
    Class that reads the TREES block of a nexus file and exposes each tree as
    a PhyloTree. TRANSLATE tables are resolved so leaves carry taxon names.
    """

    def __init__(self, filename : str) -> None:
        """
        Initialize the parser with a nexus file and parse its trees.

        Raises:
            TreeParserError: If the NexusReader library cannot parse the
                             TREES block, or it has no trees.
        Args:
            filename (str): the path to the nexus file to be parsed.
        Returns:
            N/A
        """
        with open(filename, "r", encoding = "utf-8") as handle:
            text = handle.read()
        self.trees : list[PhyloTree] = []
        self.names : list[str] = []
        self.parse(_trees_block(text))

    def parse(self, block : str) -> None:
        """
        Using the reader object, iterate through each tree definition and
        store it as a PhyloTree.

        Args:
            block (str): nexus text holding a TREES block
        Returns:
            N/A
        """
        try:
            reader = NexusReader.from_string(block)
        except Exception as err:
            raise TreeParserError(f"NexusReader library could not parse the \
                                    TREES block: {err}") from err

        if reader.trees is None or len(reader.trees.trees) == 0:
            raise TreeParserError("There are no trees listed in the file")

        translate = _translate_table(block)

        for t in reader.trees.trees:
            # grab the right hand side of the tree definition for
            # the tree, and the left for the name
            definition = str(t)
            name = definition.split("=")[0].split()[-1]
            handle = StringIO("=".join(definition.split("=")[1:]))

            try:
                tree = Phylo.read(handle, "newick")
            except Exception as err:
                raise TreeParserError(f"Tree <{name}> is not valid newick: \
                                        {err}") from err

            for clade in tree.get_terminals():
                if clade.name is not None and str(clade.name) in translate:
                    clade.name = translate[str(clade.name)]

            self.trees.append(from_biopython(tree))
            self.names.append(name)
            logger.debug("Read tree %s with %d leaves", name,
                         self.trees[-1].num_leaves())

    def get_tree(self, index : int = 0) -> PhyloTree:
        """
        Retrieves the tree at index 'index'

        Raises:
            TreeParserError: if there is no such tree
        Args:
            index (int): 0-based position in the TREES block
        Returns:
            PhyloTree: a parsed tree
        """
        if not 0 <= index < len(self.trees):
            raise TreeParserError(f"Tree index {index} requested but the file \
                                    has {len(self.trees)} tree(s)")
        return self.trees[index]

    def get_all_trees(self) -> list[PhyloTree]:
        return self.trees


def read_tree(filename : str, index : int = 0) -> PhyloTree:
    """
    Read one tree from the TREES block of a nexus file.
    """
    return TreeParser(filename).get_tree(index)

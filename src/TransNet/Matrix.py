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
"""

from dataclasses import dataclass
import numpy as np
import numpy.typing as npt
from .Alphabet import MISSING


#########################
#### EXCEPTION CLASS ####
#########################

class MatrixError(Exception):
    """
    This exception is raised when a character matrix is assembled with
    inconsistent dimensions, or when a lookup into the matrix is invalid.
    """

    def __init__(self, message : str = "Matrix Error") -> None:
        """
        Create new MatrixError with custom message.

        Args:
            message (str, optional): Custom error message. Defaults to
                                     "Matrix Error".
        Returns:
            N/A
        """
        self.message = message
        super().__init__(self.message)


###################
#### TAXON SET ####
###################

@dataclass(frozen = True)
class TaxonSet:
    """
    Ordered, duplicate free list of taxon names, as declared in a TAXA block.
    """
    taxa : tuple[str, ...]
    expected_count : int

    def __len__(self) -> int:
        return len(self.taxa)

    def __contains__(self, name : object) -> bool:
        return name in self.taxa

    def __iter__(self):
        return iter(self.taxa)

    def index(self, name : str) -> int:
        """
        Args:
            name (str): a taxon name
        Returns:
            int: the 0-based position of 'name' in declaration order
        """
        return self.taxa.index(name)


###########################
#### CHARACTER LABELS  ####
###########################

@dataclass(frozen = True)
class Character:
    """
    One discrete trait, with its name and ordered state labels. The valid
    integer states of the character are 1..len(state_labels).
    """
    name : str
    state_labels : tuple[str, ...]

    def num_states(self) -> int:
        return len(self.state_labels)

    def in_range(self, state : int) -> bool:
        """
        Args:
            state (int): a mapped integer state
        Returns:
            bool: True if 'state' is a declared state of this character, or
                  is the MISSING sentinel.
        """
        return state == MISSING or 1 <= state <= len(self.state_labels)

    def label(self, state : int) -> str:
        """
        Raises:
            MatrixError: if 'state' is not a declared state.
        Args:
            state (int): a 1-based state code
        Returns:
            str: the human readable label of 'state'
        """
        if not 1 <= state <= len(self.state_labels):
            raise MatrixError(f"State {state} is not declared for character \
                                {self.name}")
        return self.state_labels[state - 1]


@dataclass(frozen = True)
class CharacterLabelSet:
    """
    Ordered characters declared in a CHARSTATELABELS statement. Character
    indices are 1-based to match the file.
    """
    characters : tuple[Character, ...]

    def __len__(self) -> int:
        return len(self.characters)

    def __iter__(self):
        return iter(self.characters)

    def get(self, index : int) -> Character:
        """
        Raises:
            MatrixError: if there is no character at 'index'
        Args:
            index (int): 1-based character index
        Returns:
            Character: the character declared with that index
        """
        if not 1 <= index <= len(self.characters):
            raise MatrixError(f"There is no character with index {index}. \
                                Valid indices are 1..{len(self.characters)}")
        return self.characters[index - 1]

    def index_of(self, name : str) -> int:
        """
        Raises:
            MatrixError: if no character is called 'name'
        Args:
            name (str): a character name, ie "location"
        Returns:
            int: the 1-based index of the character
        """
        for position, character in enumerate(self.characters):
            if character.name == name:
                return position + 1
        raise MatrixError(f"No character named <{name}>")

    def names(self) -> list[str]:
        return [character.name for character in self.characters]


##########################
#### CHARACTER MATRIX ####
##########################

class CharacterMatrix:
    """
    Integer coded taxon x character table. Rows follow TaxonSet order,
    columns follow character index order, and every cell is either a
    declared state of its character or MISSING.
    """

    def __init__(self,
                 taxa : TaxonSet,
                 characters : CharacterLabelSet,
                 rows : dict[str, list[int]]) -> None:
        """
        Assemble the matrix from mapped rows.

        Raises:
            MatrixError: if a taxon has no row or a row has the wrong length.
        Args:
            taxa (TaxonSet): row order
            characters (CharacterLabelSet): column metadata
            rows (dict[str, list[int]]): map from taxon names to mapped states
        Returns:
            N/A
        """
        self.taxa : TaxonSet = taxa
        self.characters : CharacterLabelSet = characters
        self.taxa_to_rows : dict[str, int] = {}

        self.data : npt.NDArray[np.int_] = np.full((len(taxa), len(characters)),
                                                   MISSING,
                                                   dtype = np.int64)

        for index, name in enumerate(taxa):
            if name not in rows:
                raise MatrixError(f"Taxon <{name}> has no row in the matrix")
            states = rows[name]
            if len(states) != len(characters):
                raise MatrixError(f"Row for <{name}> has {len(states)} states,\
                                    expected {len(characters)}")
            self.data[index, :] = states
            self.taxa_to_rows[name] = index

        self.data.setflags(write = False)

    def row_count(self) -> int:
        return self.data.shape[0]

    def column_count(self) -> int:
        return self.data.shape[1]

    def get_ij(self, i : int, j : int) -> int:
        """
        Returns the data point at row i, and column j (both 0-based).
        """
        return int(self.data[i][j])

    def row_given_name(self, label : str) -> int:
        """
        Retrieves the row index of the taxon that has name 'label'

        Raises:
            MatrixError: if the taxon has no row
        Args:
            label (str): name of a taxon.
        Returns:
            int: a row index
        """
        try:
            return self.taxa_to_rows[label]
        except KeyError:
            raise MatrixError(f"Taxon <{label}> is not in the matrix")

    def column(self, index : int) -> dict[str, int]:
        """
        Select one character (1-based 'index') as a map from taxon name to
        its integer state.

        Args:
            index (int): 1-based character index
        Returns:
            dict[str, int]: taxon name -> state (or MISSING)
        """
        self.characters.get(index)
        col = self.data[:, index - 1]
        return {name : int(col[row]) for name, row in self.taxa_to_rows.items()}

    def out_of_bounds(self) -> list[tuple[str, int, int]]:
        """
        Find every cell whose state is outside its character's declared range.

        Returns:
            list[tuple[str, int, int]]: (taxon, 1-based character index, state)
                                        for each offending cell.
        """
        bad = []
        for j, character in enumerate(self.characters):
            for name, row in self.taxa_to_rows.items():
                state = int(self.data[row, j])
                if not character.in_range(state):
                    bad.append((name, j + 1, state))
        return bad

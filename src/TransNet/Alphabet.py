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
Last Edit : 11/6/25
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]
"""

from dataclasses import dataclass, field


########################
### MODULE CONSTANTS ###
########################

# Sentinel stored in place of an integer state when the data is missing.
# State codes are 1-based, so the sentinel can never collide with one.
MISSING : int = -1

# The only character data type this package knows how to read.
STANDARD : str = "STANDARD"

DEFAULT_MISSING : str = "?"
DEFAULT_GAP : str = "-"
DEFAULT_SYMBOLS : tuple[str, ...] = ("0", "1")


#########################
#### EXCEPTION CLASS ####
#########################

class AlphabetError(Exception):
    """
    Error class for all errors relating to symbol table construction and
    symbol lookups.
    """
    def __init__(self, message : str = "Error during SymbolTable mapping\
                                        operation") -> None:
        """
        Initialize an AlphabetError with a message.

        Args:
            message (str): error message
        Returns:
            N/A
        """
        self.message = message
        super().__init__(self.message)


##########################
#### HELPER FUNCTIONS ####
##########################

def is_symbol_token(token : str) -> bool:
    """
    Check that every character of a token from a SYMBOLS list is alphanumeric.

    Args:
        token (str): a token pulled from the SYMBOLS="..." list
    Returns:
        bool: True if the token may be used as (a run of) state symbols.
    """
    return len(token) > 0 and token.isalnum()


############################
#### SYMBOL TABLE CLASS ####
############################

@dataclass(frozen = True)
class SymbolTable:
    """
    Ordered alphabet of single character state symbols for one parsed file,
    along with the designated missing and gap symbols.

    The integer code of a symbol is its 1-based position in 'symbols'. The
    missing symbol maps to the MISSING sentinel, and the gap symbol is
    recognized but never mapped (gapped data is not supported).

    Example:
        SymbolTable(("A", "B", "C"), missing = "?", gap = "-")

        A -> 1, B -> 2, C -> 3, ? -> MISSING, - -> error
    """

    symbols : tuple[str, ...] = DEFAULT_SYMBOLS
    missing : str = DEFAULT_MISSING
    gap : str = DEFAULT_GAP
    _codes : dict[str, int] = field(init = False,
                                    repr = False,
                                    compare = False)

    def __post_init__(self) -> None:
        """
        Check the invariants of the table and build the lookup dictionary.

        Raises:
            AlphabetError: if a symbol is not a single alphanumeric character,
                           if a symbol is repeated, or if the missing/gap
                           symbols collide with the alphabet.
        Args:
            N/A
        Returns:
            N/A
        """
        codes : dict[str, int] = {}
        for position, symbol in enumerate(self.symbols):
            if len(symbol) != 1 or not symbol.isalnum():
                raise AlphabetError(f"Symbol <{symbol}> is not a single \
                                      alphanumeric character")
            if symbol in codes:
                raise AlphabetError(f"Symbol <{symbol}> is declared twice")
            codes[symbol] = position + 1

        if self.missing in codes:
            raise AlphabetError(f"Missing symbol <{self.missing}> is also a \
                                  state symbol")
        if self.gap in codes:
            raise AlphabetError(f"Gap symbol <{self.gap}> is also a \
                                  state symbol")

        # frozen dataclass, so bypass the generated __setattr__
        object.__setattr__(self, "_codes", codes)

    def lookup(self, symbol : str) -> int | None:
        """
        First match lookup of a symbol in the alphabet.

        Args:
            symbol (str): a single matrix character
        Returns:
            int | None: the 1-based code, or None if 'symbol' is not one of
                        the state symbols.
        """
        return self._codes.get(symbol)

    def is_missing(self, symbol : str) -> bool:
        """
        Args:
            symbol (str): a single matrix character
        Returns:
            bool: True if 'symbol' is the designated missing data symbol.
        """
        return symbol == self.missing

    def is_gap(self, symbol : str) -> bool:
        """
        Args:
            symbol (str): a single matrix character
        Returns:
            bool: True if 'symbol' is the designated gap symbol.
        """
        return symbol == self.gap

    def reverse_map(self, state : int) -> str:
        """
        Get the symbol that maps to 'state'.

        Raises:
            AlphabetError: if the provided state is not a valid code
        Args:
            state (int): an integer code or the MISSING sentinel
        Returns:
            str: the symbol for 'state'
        """
        if state == MISSING:
            return self.missing
        if 1 <= state <= len(self.symbols):
            return self.symbols[state - 1]
        raise AlphabetError(f"State {state} does not exist in this alphabet")

    def size(self) -> int:
        """
        Returns:
            int: the number of state symbols (the largest valid code).
        """
        return len(self.symbols)

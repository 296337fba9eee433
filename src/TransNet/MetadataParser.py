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
Approved for Release : Yes. Fully Documented and Tested.

Reader for the metadata half of a trait annotated nexus file: the TAXA block
and a CHARACTERS block holding a single "standard" discrete character matrix
with CHARSTATELABELS. Reading stops at BEGIN TREES; the tree block belongs to
TreeParser.

The file is consumed one line at a time. All bookkeeping lives in a single
ParserState record that each block handler receives and returns, so a parse
is a fold of the handlers over the lines of the file.

Any structural problem is fatal. The parser raises as soon as the problem is
detected and never hands back a partially built matrix.
"""

from __future__ import annotations
import logging
import re
import warnings
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Iterable
from .Alphabet import (SymbolTable, AlphabetError, MISSING, STANDARD,
                       DEFAULT_GAP, DEFAULT_MISSING, DEFAULT_SYMBOLS,
                       is_symbol_token)
from .Matrix import TaxonSet, Character, CharacterLabelSet, CharacterMatrix

logger = logging.getLogger(__name__)


########################
#### ERROR CLASSES #####
########################

class MetadataParserError(Exception):
    """
    Base class for every error raised while reading nexus metadata.
    """
    def __init__(self, message : str = "Something went wrong parsing the \
                                        nexus metadata") -> None:
        """
        Initialize the error with a message.

        Args:
            message (str, optional): Custom error message.
        Returns:
            N/A
        """
        self.message = message
        super().__init__(self.message)


class DimensionMismatchError(MetadataParserError):
    """
    A declared dimension (NTAX, NCHAR) disagrees with the data that was read.
    """
    pass


class UnsupportedDataTypeError(MetadataParserError):
    """
    The CHARACTERS block declares a DATATYPE other than STANDARD.
    """
    pass


class IllegalSymbolError(MetadataParserError):
    """
    A non alphanumeric token was found where a state symbol was expected.
    """
    pass


class UnknownSymbolError(MetadataParserError):
    """
    A matrix symbol is neither a state symbol, the missing symbol, nor the gap
    symbol.
    """
    pass


class UnsupportedGapError(MetadataParserError):
    """
    A matrix symbol is the gap symbol. Gapped data is not supported.
    """
    pass


class OutOfBoundsError(MetadataParserError):
    """
    A mapped state is larger than the number of state labels declared for its
    character.
    """
    pass


class UnknownTaxonError(MetadataParserError):
    """
    A taxon name was used that the TAXA block never declared.
    """
    pass


class DuplicateTaxonError(MetadataParserError):
    """
    A taxon was declared, or given a matrix row, more than once.
    """
    pass


###################
#### CONSTANTS ####
###################

_COMMENT = re.compile(r"\[[^\]]*\]")

_TOKEN = re.compile(r"'((?:[^']|'')*)'|([,;])|([^\s,;']+)")

_BEGIN_TAXA = re.compile(r"^BEGIN\s+TAXA\s*;", re.IGNORECASE)
_BEGIN_CHARACTERS = re.compile(r"^BEGIN\s+CHARACTERS\s*;", re.IGNORECASE)
_BEGIN_TREES = re.compile(r"^BEGIN\s+TREES\s*;", re.IGNORECASE)
_BEGIN = re.compile(r"^BEGIN\s+(\w+)\s*;", re.IGNORECASE)
_END = re.compile(r"^END(BLOCK)?\s*;", re.IGNORECASE)

_DIMENSIONS = re.compile(r"^DIMENSIONS\b", re.IGNORECASE)
_NTAX = re.compile(r"\bNTAX\s*=\s*(\d+)", re.IGNORECASE)
_NCHAR = re.compile(r"\bNCHAR\s*=\s*(\d+)", re.IGNORECASE)

_TAXLABELS = re.compile(r"^TAXLABELS\b(.*)$", re.IGNORECASE)
_FORMAT = re.compile(r"^FORMAT\b(.*)$", re.IGNORECASE)
_CHARSTATELABELS = re.compile(r"^CHARSTATELABELS\b(.*)$", re.IGNORECASE)
_MATRIX = re.compile(r"^MATRIX\b(.*)$", re.IGNORECASE)

_FORMAT_PAIR = re.compile(r'(\w+)\s*=\s*(?:"([^"]*)"|([^\s"]+))')


##########################
#### HELPER FUNCTIONS ####
##########################

def _strip_comments(line : str) -> str:
    """
    Remove [bracketed] nexus comments that open and close on the same line.
    """
    return _COMMENT.sub("", line)


def tokenize(text : str) -> list[str]:
    """
    Split a line into nexus tokens. Single quoted words are kept whole (with
    '' unescaped to '), and the punctuation characters ',' and ';' are
    returned as tokens of their own.

    Example:
        "'North America' Asia, Europe;" -> ["North America", "Asia", ",",
                                           "Europe", ";"]

    Args:
        text (str): a line of a nexus file
    Returns:
        list[str]: the tokens, in order.
    """
    tokens : list[str] = []
    for quoted, punct, word in _TOKEN.findall(text):
        if punct:
            tokens.append(punct)
        elif word:
            tokens.append(word)
        else:
            tokens.append(quoted.replace("''", "'"))
    return tokens


def _declared_count(pattern : re.Pattern, line : str, what : str) -> int:
    """
    Pull an integer dimension such as NTAX=12 out of a DIMENSIONS line.

    Raises:
        DimensionMismatchError: if the dimension is absent.
    """
    match = pattern.search(line)
    if match is None:
        raise DimensionMismatchError(f"DIMENSIONS statement does not declare \
                                       {what}: <{line}>")
    return int(match.group(1))


def _statement_text(text : str) -> tuple[str, bool]:
    """
    Cut 'text' at the first ';' that is not inside double quotes.

    Returns:
        tuple[str, bool]: the statement text before the terminator, and
                          whether a terminator was found.
    """
    in_quotes = False
    for position, char in enumerate(text):
        if char == '"':
            in_quotes = not in_quotes
        elif char == ";" and not in_quotes:
            return text[:position], True
    return text, False


def map_states(symbols : str, table : SymbolTable) -> list[int]:
    """
    Map one matrix row of character symbols to integer states.

    Each symbol is looked up in the alphabet first. A symbol not in the
    alphabet must be the missing symbol, which maps to MISSING.

    Raises:
        UnsupportedGapError: if a symbol is the gap symbol.
        UnknownSymbolError: if a symbol is not a state, missing or gap symbol.
    Args:
        symbols (str): one symbol per character, ie "AB?A"
        table (SymbolTable): the alphabet declared in the FORMAT statement
    Returns:
        list[int]: mapped states, one per symbol.
    """
    mapped : list[int] = []
    for symbol in symbols:
        state = table.lookup(symbol)
        if state is None:
            if table.is_missing(symbol):
                state = MISSING
            elif table.is_gap(symbol):
                raise UnsupportedGapError(f"Gap symbol <{symbol}> found in the \
                                            character matrix. Gapped data is \
                                            not supported")
            else:
                raise UnknownSymbolError(f"Symbol <{symbol}> is not a state \
                                           symbol or the missing symbol")
        mapped.append(state)
    return mapped


######################
#### PARSER STATE ####
######################

class Phase(Enum):
    """
    Which part of the file the parser is in.
    """
    SCANNING = auto()
    TAXA = auto()
    CHARACTERS = auto()
    DONE = auto()


class Statement(Enum):
    """
    Multi-line statement currently open inside a block, if any.
    """
    NONE = auto()
    TAXLABELS = auto()
    FORMAT = auto()
    CHARSTATELABELS = auto()
    MATRIX = auto()


@dataclass
class ParserState:
    """
    Everything the parser knows at a given line. Handlers take a state and a
    line and return the (updated) state.
    """
    phase : Phase = Phase.SCANNING
    statement : Statement = Statement.NONE

    # TAXA block
    ntax : int | None = None
    taxlabels : list[str] = field(default_factory = list)
    taxa : TaxonSet | None = None

    # CHARACTERS block
    nchar : int | None = None
    data_type : str = STANDARD
    format_text : str = ""
    symbols : SymbolTable | None = None
    label_tokens : list[str] = field(default_factory = list)
    characters : dict[int, Character] = field(default_factory = dict)
    rows : dict[str, list[int]] = field(default_factory = dict)
    labels : CharacterLabelSet | None = None
    matrix : CharacterMatrix | None = None


@dataclass(frozen = True)
class NexusMetadata:
    """
    The complete, validated result of a metadata parse.
    """
    taxa : TaxonSet
    characters : CharacterLabelSet
    symbols : SymbolTable
    matrix : CharacterMatrix
    data_type : str = STANDARD


########################
#### BLOCK HANDLERS ####
########################

def _scan_top(state : ParserState, line : str) -> ParserState:
    if _BEGIN_TAXA.match(line):
        state.phase = Phase.TAXA
    elif _BEGIN_CHARACTERS.match(line):
        state.phase = Phase.CHARACTERS
    elif _BEGIN_TREES.match(line):
        state.phase = Phase.DONE
    return state


def _collect_taxlabels(state : ParserState, text : str) -> ParserState:
    for token in tokenize(text):
        if token == ";":
            state.statement = Statement.NONE
            break
        if token == ",":
            continue
        if token in state.taxlabels:
            raise DuplicateTaxonError(f"Taxon <{token}> is listed twice in \
                                        TAXLABELS")
        state.taxlabels.append(token)
    return state


def _close_taxa(state : ParserState) -> ParserState:
    if state.statement is not Statement.NONE:
        raise MetadataParserError("TAXLABELS statement was never terminated \
                                   with ;")
    if state.ntax is None:
        raise DimensionMismatchError("TAXA block has no DIMENSIONS NTAX=...")
    if len(state.taxlabels) != state.ntax:
        raise DimensionMismatchError(f"TAXA block declares NTAX={state.ntax} \
                                       but lists {len(state.taxlabels)} taxa")

    state.taxa = TaxonSet(tuple(state.taxlabels), state.ntax)
    logger.debug("Read %d taxa", len(state.taxa))
    state.phase = Phase.SCANNING
    return state


def _check_block_open(state : ParserState, line : str) -> None:
    """
    A new BEGIN inside an open block means its END; is missing.
    """
    if (match := _BEGIN.match(line)) is not None:
        raise MetadataParserError(f"{state.phase.name} block was never closed \
                                    with END; before BEGIN {match.group(1)}")


def _in_taxa(state : ParserState, line : str) -> ParserState:
    _check_block_open(state, line)
    if state.statement is Statement.TAXLABELS:
        return _collect_taxlabels(state, line)

    if _DIMENSIONS.match(line):
        state.ntax = _declared_count(_NTAX, line, "NTAX")
    elif (match := _TAXLABELS.match(line)) is not None:
        state.statement = Statement.TAXLABELS
        state = _collect_taxlabels(state, match.group(1))
    elif _END.match(line):
        state = _close_taxa(state)
    return state


def _apply_format(state : ParserState, text : str) -> ParserState:
    """
    Read the KEY=VALUE pairs of a complete FORMAT statement into the state
    and build its SymbolTable.
    """
    gap = DEFAULT_GAP
    missing = DEFAULT_MISSING
    symbols : list[str] | None = None

    for key, quoted, bare in _FORMAT_PAIR.findall(text):
        value = quoted if quoted else bare
        key = key.upper()
        if key == "DATATYPE":
            if value.upper() != STANDARD:
                raise UnsupportedDataTypeError(f"DATATYPE={value} is not \
                                                 supported. Only STANDARD \
                                                 data may be read")
            state.data_type = STANDARD
        elif key == "GAP":
            gap = value
        elif key == "MISSING":
            missing = value
        elif key == "SYMBOLS":
            symbols = []
            for token in value.split():
                if not is_symbol_token(token):
                    raise IllegalSymbolError(f"Illegal token <{token}> in the \
                                               SYMBOLS list. Use only \
                                               alphanumeric characters")
                symbols.extend(token)

    if symbols is None:
        warnings.warn("FORMAT statement has no SYMBOLS list, assuming \
                       SYMBOLS=\"01\"")
        symbols = list(DEFAULT_SYMBOLS)

    try:
        state.symbols = SymbolTable(tuple(symbols), missing, gap)
    except AlphabetError as err:
        raise IllegalSymbolError(err.message) from err

    logger.debug("Symbol alphabet: %s (missing=%s, gap=%s)",
                 "".join(symbols), missing, gap)
    state.statement = Statement.NONE
    return state


def _collect_format(state : ParserState, text : str) -> ParserState:
    state.format_text += " " + text
    statement, complete = _statement_text(state.format_text)
    if complete:
        state = _apply_format(state, statement)
    return state


def _close_label_record(state : ParserState) -> ParserState:
    """
    Turn the tokens gathered for one CHARSTATELABELS record,
    "<index> <name> [/] <label> <label> ...", into a Character.
    """
    tokens = state.label_tokens
    state.label_tokens = []
    if not tokens:
        return state

    if len(tokens) < 2:
        raise MetadataParserError(f"CHARSTATELABELS record <{' '.join(tokens)}>\
                                    has no character name")
    try:
        index = int(tokens[0])
    except ValueError:
        raise MetadataParserError(f"CHARSTATELABELS record must start with a \
                                    character index, found <{tokens[0]}>")

    if index < 1 or (state.nchar is not None and index > state.nchar):
        raise DimensionMismatchError(f"Character index {index} is outside \
                                       1..NCHAR ({state.nchar})")
    if index in state.characters:
        raise MetadataParserError(f"Character index {index} is labelled \
                                    twice")

    labels = tokens[2:]
    repeated = sorted({label for label in labels if labels.count(label) > 1})
    if repeated:
        raise MetadataParserError(f"Character {index} ({tokens[1]}) repeats \
                                    the state label(s) {repeated}")

    state.characters[index] = Character(tokens[1], tuple(labels))
    return state


def _collect_labels(state : ParserState, text : str) -> ParserState:
    tokens = tokenize(text)
    for token in tokens:
        if token == ";":
            state = _close_label_record(state)
            state.statement = Statement.NONE
            return state
        if token == ",":
            state = _close_label_record(state)
        elif token != "/":
            state.label_tokens.append(token)

    # a record also ends with its line, unless its labels wrap onto the next
    if tokens and tokens[-1] == "/":
        return state
    return _close_label_record(state)


def _matrix_row(state : ParserState, text : str) -> ParserState:
    tokens = tokenize(text)
    if ";" in tokens:
        tokens = tokens[:tokens.index(";")]
        state.statement = Statement.NONE
    tokens = [token for token in tokens if token != ","]
    if not tokens:
        return state

    if state.symbols is None:
        warnings.warn("MATRIX found before any FORMAT statement, using the \
                       default symbol table")
        state.symbols = SymbolTable()
    if state.taxa is None:
        raise MetadataParserError("CHARACTERS block MATRIX found before the \
                                   TAXA block")

    name = tokens[0]
    symbols = "".join(tokens[1:])
    mapped = map_states(symbols, state.symbols)

    if name not in state.taxa:
        raise UnknownTaxonError(f"Matrix row for <{name}>, which is not \
                                  declared in the TAXA block")
    if name in state.rows:
        raise DuplicateTaxonError(f"Taxon <{name}> has more than one matrix \
                                    row")
    if state.nchar is not None and len(mapped) != state.nchar:
        raise DimensionMismatchError(f"Matrix row for <{name}> has \
                                       {len(mapped)} symbols, NCHAR is \
                                       {state.nchar}")

    state.rows[name] = mapped
    return state


def _close_characters(state : ParserState) -> ParserState:
    if state.statement is not Statement.NONE:
        raise MetadataParserError(f"{state.statement.name} statement was never\
                                    terminated with ;")
    if state.nchar is None:
        raise DimensionMismatchError("CHARACTERS block has no DIMENSIONS \
                                      NCHAR=...")
    if state.taxa is None:
        raise MetadataParserError("CHARACTERS block found before the TAXA \
                                   block")

    unlabelled = [index for index in range(1, state.nchar + 1)
                  if index not in state.characters]
    if unlabelled:
        raise DimensionMismatchError(f"NCHAR={state.nchar} but no \
                                       CHARSTATELABELS record for character(s)\
                                       {unlabelled}")
    if len(state.rows) != len(state.taxa):
        raise DimensionMismatchError(f"Matrix has {len(state.rows)} rows, \
                                       expected {len(state.taxa)}")

    state.labels = CharacterLabelSet(tuple(state.characters[index] for index
                                           in range(1, state.nchar + 1)))
    matrix = CharacterMatrix(state.taxa, state.labels, state.rows)

    bad = matrix.out_of_bounds()
    if bad:
        taxon, index, value = bad[0]
        raise OutOfBoundsError(f"State {value} of taxon <{taxon}> is out of \
                                 bounds for character {index} \
                                 ({state.labels.get(index).name}), which has \
                                 {state.labels.get(index).num_states()} states")

    state.matrix = matrix
    logger.debug("Read %d x %d character matrix", matrix.row_count(),
                 matrix.column_count())
    state.phase = Phase.SCANNING
    return state


def _in_characters(state : ParserState, line : str) -> ParserState:
    _check_block_open(state, line)
    if state.statement is Statement.FORMAT:
        return _collect_format(state, line)
    if state.statement is Statement.CHARSTATELABELS:
        return _collect_labels(state, line)
    if state.statement is Statement.MATRIX:
        return _matrix_row(state, line)

    if _DIMENSIONS.match(line):
        state.nchar = _declared_count(_NCHAR, line, "NCHAR")
    elif (match := _FORMAT.match(line)) is not None:
        state.statement = Statement.FORMAT
        state.format_text = ""
        state = _collect_format(state, match.group(1))
    elif (match := _CHARSTATELABELS.match(line)) is not None:
        state.statement = Statement.CHARSTATELABELS
        state = _collect_labels(state, match.group(1))
    elif (match := _MATRIX.match(line)) is not None:
        state.statement = Statement.MATRIX
        state = _matrix_row(state, match.group(1))
    elif _END.match(line):
        state = _close_characters(state)
    return state


_HANDLERS : dict[Phase, Callable[[ParserState, str], ParserState]] = {
    Phase.SCANNING : _scan_top,
    Phase.TAXA : _in_taxa,
    Phase.CHARACTERS : _in_characters,
}


################
#### PARSER ####
################

class MetadataParser:
    """
    Parses the TAXA and CHARACTERS blocks of a nexus file. The parse happens
    on construction, so a MetadataParser only ever exists for valid input.

    Example:

        with open("flu.nex", encoding = "utf-8") as handle:
            metadata = MetadataParser(handle).metadata()
    """

    def __init__(self, lines : Iterable[str]) -> None:
        """
        Parse a stream of lines.

        Raises:
            MetadataParserError: (or one of its subclasses) on any
                                 structural problem in the input.
        Args:
            lines (Iterable[str]): the lines of a nexus file, ie an open file
                                   handle or an io.StringIO
        Returns:
            N/A
        """
        self.state : ParserState = ParserState()
        self.parse(lines)
        self._metadata : NexusMetadata = self._finish()

    def parse(self, lines : Iterable[str]) -> None:
        """
        Fold the block handlers over the lines until BEGIN TREES or the end of
        the input.

        Args:
            lines (Iterable[str]): nexus file lines
        Returns:
            N/A
        """
        state = self.state
        for raw in lines:
            line = _strip_comments(raw).strip()
            if not line:
                continue
            state = _HANDLERS[state.phase](state, line)
            if state.phase is Phase.DONE:
                break
        self.state = state

    def _finish(self) -> NexusMetadata:
        state = self.state
        if state.phase in (Phase.TAXA, Phase.CHARACTERS):
            raise MetadataParserError(f"Input ended inside the \
                                        {state.phase.name} block")
        if state.taxa is None:
            raise MetadataParserError("No TAXA block was found")
        if state.matrix is None or state.labels is None \
                or state.symbols is None:
            raise MetadataParserError("No CHARACTERS block with a MATRIX was \
                                       found")

        return NexusMetadata(state.taxa,
                             state.labels,
                             state.symbols,
                             state.matrix,
                             state.data_type)

    def metadata(self) -> NexusMetadata:
        return self._metadata

    def get_taxa(self) -> TaxonSet:
        return self._metadata.taxa

    def get_characters(self) -> CharacterLabelSet:
        return self._metadata.characters

    def get_symbols(self) -> SymbolTable:
        return self._metadata.symbols

    def get_matrix(self) -> CharacterMatrix:
        return self._metadata.matrix


def read_metadata(filename : str) -> NexusMetadata:
    """
    Parse the metadata blocks of the nexus file at 'filename'.

    Args:
        filename (str): path to a nexus file
    Returns:
        NexusMetadata: taxa, character labels, symbols and the matrix.
    """
    with open(filename, "r", encoding = "utf-8") as handle:
        return MetadataParser(handle).metadata()

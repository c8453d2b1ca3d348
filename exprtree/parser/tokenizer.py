"""
Lexical classification of expression text.

The scanner never mutates anything: every method takes the source position
to look at and reports what starts there. Classification depends on one bit
of parser state, whether an operand is expected, because "-2" is a negative
literal where a value may start and a subtraction followed by 2 elsewhere.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto

from .errors import LexError
from .grammar import Fixity, Grammar


class TokenType(Enum):
    """Token types for expressions."""

    NUMBER = auto()
    VARIABLE = auto()
    FUNCTION = auto()  # Identifier followed by (
    OPERATOR = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """
    A token recognized at some position.

    Attributes:
        type: The token type
        value: Token text (function name without the parenthesis)
        pos: Start position in the source string
        end: Position just past the token
    """

    type: TokenType
    value: str
    pos: int
    end: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, '{self.value}', pos={self.pos})"


class Scanner:
    """
    Recognizes whitespace, numbers, identifiers, function heads, operators,
    parentheses and argument separators in one source string.

    Operators are matched longest-first against the grammar.
    """

    WHITESPACE = " \t\r\n"

    PATTERNS = {
        "NUMBER": re.compile(r"-?[0-9][0-9.]*"),
        "IDENTIFIER": re.compile(r"[A-Za-z][A-Za-z0-9_]*"),
        "FUNCTION": re.compile(r"([A-Za-z][A-Za-z0-9_]*)[ \t\r\n]*\("),
    }

    def __init__(self, grammar: Grammar, text: str):
        self.grammar = grammar
        self.text = text

    def skip_whitespace(self, pos: int) -> int:
        while pos < len(self.text) and self.text[pos] in self.WHITESPACE:
            pos += 1
        return pos

    def is_number(self, pos: int, expect_operand: bool) -> bool:
        """
        True if a numeric literal starts at pos.

        A leading '-' only counts as part of the literal where an operand is
        expected; elsewhere it is an operator.
        """
        text = self.text
        if pos >= len(text):
            return False
        if text[pos].isascii() and text[pos].isdigit():
            return True
        return (
            expect_operand
            and text[pos] == "-"
            and pos + 1 < len(text)
            and text[pos + 1].isascii()
            and text[pos + 1].isdigit()
        )

    def starts_operand(self, pos: int) -> bool:
        """True if, after whitespace, something that can begin a value follows."""
        pos = self.skip_whitespace(pos)
        if pos >= len(self.text):
            return False
        return (
            self.is_number(pos, expect_operand=True)
            or self.text[pos] == "("
            or self.PATTERNS["IDENTIFIER"].match(self.text, pos) is not None
            or self.grammar.match_operator(self.text, pos, Fixity.PREFIX) is not None
        )

    def read_number(self, pos: int) -> Token:
        match = self.PATTERNS["NUMBER"].match(self.text, pos)
        value = match.group()
        first_dot = value.find(".")
        if first_dot != -1:
            second_dot = value.find(".", first_dot + 1)
            if second_dot != -1:
                raise LexError("Found second dot in a real number", self.text, pos + second_dot)
        return Token(TokenType.NUMBER, value, pos, match.end())

    def next_token(self, pos: int, expect_operand: bool) -> Token:
        """
        Classify the token starting at pos (after any whitespace).

        Args:
            pos: Position to scan from
            expect_operand: Whether the parser is waiting for a value

        Returns:
            The token found; EOF at end of input

        Raises:
            LexError: If no token starts at that position
        """
        text = self.text
        pos = self.skip_whitespace(pos)
        if pos >= len(text):
            return Token(TokenType.EOF, "", len(text), len(text))

        if self.is_number(pos, expect_operand):
            return self.read_number(pos)

        op = self.grammar.match_operator(text, pos)
        if op is not None:
            return Token(TokenType.OPERATOR, op.name, pos, pos + len(op.name))

        match = self.PATTERNS["FUNCTION"].match(text, pos)
        if match:
            return Token(TokenType.FUNCTION, match.group(1), pos, match.end())

        ch = text[pos]
        if ch == "(":
            return Token(TokenType.LPAREN, ch, pos, pos + 1)
        if ch == ")":
            return Token(TokenType.RPAREN, ch, pos, pos + 1)
        if ch == ",":
            return Token(TokenType.COMMA, ch, pos, pos + 1)

        match = self.PATTERNS["IDENTIFIER"].match(text, pos)
        if match:
            return Token(TokenType.VARIABLE, match.group(), pos, match.end())

        raise LexError(f"Unrecognized token '{ch}'", text, pos)

"""
Exceptions raised while building, parsing and evaluating expressions.

Every error carries the offending source text and a character offset into it
so callers can point at the problem:

    >>> err.caret()
    Mismatched parentheses
    (1+2
    ^
"""

from __future__ import annotations


class ExpressionError(Exception):
    """Base class for all expression errors."""

    def __init__(self, message: str, source: str | None = None, offset: int | None = None):
        self.message = message
        self.source = source
        self.offset = offset
        if offset is not None:
            super().__init__(f"{message} at position {offset}")
        else:
            super().__init__(message)

    def caret(self) -> str:
        """Render the message, the source line and a caret under the offset."""
        lines = [self.message]
        if self.source is not None:
            lines.append(self.source)
            if self.offset is not None:
                lines.append(" " * self.offset + "^")
        return "\n".join(lines)


class GrammarError(ExpressionError):
    """Raised for an invalid operator/function registry."""


# Parsing


class ParseError(ExpressionError):
    """Raised when text cannot be turned into an expression tree."""


class LexError(ParseError):
    """Unrecognized character or malformed token."""


class ExpressionSyntaxError(ParseError):
    """Tokens are valid but do not form an expression."""


class MismatchedParenthesesError(ExpressionSyntaxError):
    pass


class UnfinishedExpressionError(ExpressionSyntaxError):
    """A hole was left unfilled: missing operand, empty argument, open call."""


class MissingOperatorError(ExpressionSyntaxError):
    """Two values follow each other with no operator between them."""


class UndefinedFunctionError(ExpressionSyntaxError):
    pass


class UnknownOperatorError(ExpressionSyntaxError):
    """Operator text has no spec of the fixity required at that position."""


class ArityError(ExpressionSyntaxError):
    """A function received the wrong number of arguments."""


class ExcessArgumentError(ArityError):
    pass


class NestingDepthError(ExpressionSyntaxError):
    """Parentheses, calls or prefix operators nested deeper than the parser allows."""


# Evaluation


class EvalError(ExpressionError):
    """Raised when a parsed tree cannot be evaluated."""


class UnboundVariableError(EvalError):
    def __init__(self, name: str, source: str | None = None, offset: int | None = None):
        self.name = name
        super().__init__(f"Unbound variable: {name}", source, offset)


class DomainError(EvalError):
    """An evaluation rule rejected its arguments (division by zero, acos(2), ...)."""


class IncompleteNodeError(EvalError):
    """
    An unfinished placeholder node survived construction.

    This is an internal invariant violation, not a user input problem, so it
    is never a ParseError.
    """

"""exprtree - parse, evaluate and compare arithmetic expression trees.

Submodules:
- exprtree.parser: Grammar registry, scanner, precedence parser, AST
- exprtree.expression: Expression facade and functional interface
- exprtree.core: Settings and logging
"""

from .expression import (
    Expression,
    canonicalize,
    combine,
    equals,
    evaluate,
    is_subexpression,
    parse,
)
from .parser.errors import EvalError, ExpressionError, ParseError
from .parser.grammar import Grammar

__version__ = "0.1.0"

__all__ = [
    "Expression",
    "canonicalize",
    "combine",
    "equals",
    "evaluate",
    "is_subexpression",
    "parse",
    "EvalError",
    "ExpressionError",
    "ParseError",
    "Grammar",
]

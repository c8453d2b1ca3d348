"""
Expression Parser Package

Lexical classification, operator-precedence parsing, and the AST algorithms
(evaluation, canonicalization, equality, sub-expression search).
"""

from .ast import Apply, ASTNode, Constant, Incomplete, Variable
from .errors import (
    ArityError,
    DomainError,
    EvalError,
    ExcessArgumentError,
    ExpressionError,
    ExpressionSyntaxError,
    GrammarError,
    IncompleteNodeError,
    LexError,
    MismatchedParenthesesError,
    MissingOperatorError,
    NestingDepthError,
    ParseError,
    UnboundVariableError,
    UndefinedFunctionError,
    UnfinishedExpressionError,
    UnknownOperatorError,
)
from .grammar import Fixity, FunctionSpec, Grammar, OperatorSpec, get_default_grammar
from .matching import is_subexpression
from .parser import Parser
from .tokenizer import Scanner, Token, TokenType
from .visitors import EvalVisitor, SExpressionVisitor, StringVisitor

__all__ = [
    "Apply",
    "ASTNode",
    "Constant",
    "Incomplete",
    "Variable",
    "ArityError",
    "DomainError",
    "EvalError",
    "ExcessArgumentError",
    "ExpressionError",
    "ExpressionSyntaxError",
    "GrammarError",
    "IncompleteNodeError",
    "LexError",
    "MismatchedParenthesesError",
    "MissingOperatorError",
    "NestingDepthError",
    "ParseError",
    "UnboundVariableError",
    "UndefinedFunctionError",
    "UnfinishedExpressionError",
    "UnknownOperatorError",
    "Fixity",
    "FunctionSpec",
    "Grammar",
    "OperatorSpec",
    "get_default_grammar",
    "is_subexpression",
    "Parser",
    "Scanner",
    "Token",
    "TokenType",
    "EvalVisitor",
    "SExpressionVisitor",
    "StringVisitor",
]

"""
Expression: a parsed tree together with its variables and their values.

    >>> e = Expression("x * 2 + 1")
    >>> e.evaluate(x=5)
    11.0
    >>> Expression("1 + 2") == Expression("2 + 1")
    True
    >>> (Expression("a") + Expression("b")).to_sexpr()
    '(+ a b)'
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .parser.ast import Apply, ASTNode
from .parser.errors import GrammarError
from .parser.grammar import Fixity, Grammar, get_default_grammar
from .parser.matching import is_subexpression as _tree_contains
from .parser.parser import Parser
from .parser.visitors import EvalVisitor, SExpressionVisitor, StringVisitor

logger = logging.getLogger(__name__)

COMBINING_OPERATORS = ("+", "-", "*", "/")


class Expression:
    """
    Owns one expression tree and a name -> value binding map.

    Attributes:
        source: Text the tree was parsed from. Composed expressions get
            "(a) op (b)", so node offsets keep pointing into it.
        variables: Variable names in order of first appearance
        bindings: Values used for variables at evaluation time
        grammar: Registry the tree was parsed with
    """

    def __init__(
        self,
        text: str,
        grammar: Grammar | None = None,
        bindings: Mapping[str, float] | None = None,
    ):
        """
        Parse an expression.

        Args:
            text: Expression source
            grammar: Operators and functions (defaults to the shared grammar)
            bindings: Initial variable values

        Raises:
            ParseError: If the text is not a valid expression
        """
        self.grammar = grammar or get_default_grammar()
        self.source = text
        self.variables: list[str] = []
        self.root: ASTNode = Parser(self.grammar).parse(text, self.variables)
        self.bindings: dict[str, float] = dict(bindings or {})

    @classmethod
    def _from_tree(
        cls,
        root: ASTNode,
        source: str,
        grammar: Grammar,
        variables: list[str],
        bindings: Mapping[str, float],
    ) -> "Expression":
        expr = cls.__new__(cls)
        expr.grammar = grammar
        expr.source = source
        expr.variables = list(variables)
        expr.root = root
        expr.bindings = dict(bindings)
        return expr

    def copy(self) -> "Expression":
        """Deep copy; the copy shares no nodes with the original."""
        return self._from_tree(
            self.root.copy(), self.source, self.grammar, self.variables, self.bindings
        )

    __copy__ = copy

    def __deepcopy__(self, memo: dict) -> "Expression":
        return self.copy()

    # Variables

    def get_variable(self, index: int) -> str:
        """Name of the index-th distinct variable, in order of appearance."""
        return self.variables[index]

    def bind(self, **values: float) -> "Expression":
        self.bindings.update(values)
        return self

    # Evaluation

    def evaluate(self, bindings: Mapping[str, float] | None = None, **values: float) -> float:
        """
        Evaluate the expression.

        Explicit bindings override the stored ones for this call only.

        Args:
            bindings: Variable name -> value mappings
            **values: More bindings, as keywords

        Returns:
            The value as a float

        Raises:
            UnboundVariableError: If a variable has no value
            DomainError: If an operator or function rejects its arguments
        """
        merged = {**self.bindings, **(bindings or {}), **values}
        return self.root.accept(EvalVisitor(merged, self.source))

    eval = evaluate

    # Canonical form and comparison

    def canonicalize(self) -> "Expression":
        """Sort commutative operands in place."""
        self.root.sort()
        return self

    def _canonical_tree(self) -> ASTNode:
        tree = self.root.copy()
        tree.sort()
        return tree

    def equals(self, other: "Expression") -> bool:
        """Structural equality, ignoring the order of commutative operands."""
        return self._canonical_tree() == other._canonical_tree()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Expression):
            return NotImplemented
        return self.equals(other)

    def __ne__(self, other: object) -> bool:
        if not isinstance(other, Expression):
            return NotImplemented
        return not self.equals(other)

    __hash__ = None  # type: ignore[assignment]

    def is_subexpression(self, other: "Expression") -> bool:
        """True if other's tree occurs inside this expression's tree."""
        return _tree_contains(self._canonical_tree(), other._canonical_tree())

    def __contains__(self, other: object) -> bool:
        if not isinstance(other, Expression):
            return False
        return self.is_subexpression(other)

    # Composition

    def _compose(self, op: str, other: "Expression") -> tuple[ASTNode, str]:
        if op not in COMBINING_OPERATORS:
            raise ValueError(f"Cannot combine expressions with '{op}'")
        spec = self.grammar.find_operator(op, Fixity.INFIX)
        if spec is None:
            raise GrammarError(f"Grammar has no infix operator '{op}'")

        source = f"({self.source}) {op} ({other.source})"
        right_shift = len(self.source) + len(op) + 5
        # copy the right side first so that a.combine(op, a) works
        right = other.root.copy(shift=right_shift)
        left = self.root.copy(shift=1)
        root = Apply(spec, [left, right], offset=len(self.source) + 3)
        return root, source

    def _merge_variables(self, other: "Expression") -> list[str]:
        return self.variables + [name for name in other.variables if name not in self.variables]

    def combine(self, op: str, other: "Expression") -> "Expression":
        """
        New expression `self op other`.

        Both trees are deep copied; neither operand is modified.

        Args:
            op: One of + - * /
            other: Right operand
        """
        root, source = self._compose(op, other)
        logger.debug("Combined %r %s %r", self.source, op, other.source)
        return self._from_tree(
            root,
            source,
            self.grammar,
            self._merge_variables(other),
            {**other.bindings, **self.bindings},
        )

    def combine_inplace(self, op: str, other: "Expression") -> "Expression":
        """Replace this expression by `self op other`."""
        root, source = self._compose(op, other)
        self.variables = self._merge_variables(other)
        self.bindings = {**other.bindings, **self.bindings}
        self.root = root
        self.source = source
        return self

    def __add__(self, other: Any) -> "Expression":
        if not isinstance(other, Expression):
            return NotImplemented
        return self.combine("+", other)

    def __sub__(self, other: Any) -> "Expression":
        if not isinstance(other, Expression):
            return NotImplemented
        return self.combine("-", other)

    def __mul__(self, other: Any) -> "Expression":
        if not isinstance(other, Expression):
            return NotImplemented
        return self.combine("*", other)

    def __truediv__(self, other: Any) -> "Expression":
        if not isinstance(other, Expression):
            return NotImplemented
        return self.combine("/", other)

    def __iadd__(self, other: Any) -> "Expression":
        if not isinstance(other, Expression):
            return NotImplemented
        return self.combine_inplace("+", other)

    def __isub__(self, other: Any) -> "Expression":
        if not isinstance(other, Expression):
            return NotImplemented
        return self.combine_inplace("-", other)

    def __imul__(self, other: Any) -> "Expression":
        if not isinstance(other, Expression):
            return NotImplemented
        return self.combine_inplace("*", other)

    def __itruediv__(self, other: Any) -> "Expression":
        if not isinstance(other, Expression):
            return NotImplemented
        return self.combine_inplace("/", other)

    # Output

    def to_string(self) -> str:
        """Infix form; parsing it again gives an equal expression."""
        return self.root.accept(StringVisitor())

    def to_sexpr(self) -> str:
        """Prefix form, e.g. (+ 1 (* 2 x))."""
        return self.root.accept(SExpressionVisitor())

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Expression({self.to_string()!r})"


# Functional interface


def parse(text: str, grammar: Grammar | None = None) -> Expression:
    return Expression(text, grammar)


def evaluate(expression: Expression, bindings: Mapping[str, float] | None = None) -> float:
    return expression.evaluate(bindings)


def canonicalize(expression: Expression) -> Expression:
    return expression.canonicalize()


def equals(a: Expression, b: Expression) -> bool:
    return a.equals(b)


def is_subexpression(a: Expression, b: Expression) -> bool:
    """True if b occurs inside a."""
    return a.is_subexpression(b)


def combine(a: Expression, op: str, b: Expression) -> Expression:
    return a.combine(op, b)

"""
AST Visitor implementations.

- EvalVisitor: Evaluate a tree against variable bindings
- StringVisitor: Infix text that parses back to the same tree
- SExpressionVisitor: Prefix notation, e.g. (+ 1 (* 2 x))
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from .ast import Apply, ASTNode, Constant, Incomplete, Variable
from .errors import DomainError, IncompleteNodeError, UnboundVariableError
from .grammar import Fixity, OperatorSpec


def format_number(value: float) -> str:
    """
    Render a float the way the scanner reads it back: plain decimal
    digits, no exponent, no trailing '.0' for integers.
    """
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _fixity(node: ASTNode) -> Fixity | None:
    """Fixity of an operator node, None for functions and leaves."""
    if isinstance(node, Apply) and isinstance(node.spec, OperatorSpec):
        return node.spec.fixity
    return None


class EvalVisitor:
    """
    Evaluate an AST to a float.

    Variables missing from the bindings raise UnboundVariableError; they are
    never defaulted.

    Args:
        bindings: Variable name -> value mappings
        source: Source text, attached to raised errors
    """

    def __init__(self, bindings: Mapping[str, float] | None = None, source: str | None = None):
        self.bindings = bindings or {}
        self.source = source

    def visit_constant(self, node: Constant) -> float:
        return node.value

    def visit_variable(self, node: Variable) -> float:
        if node.name in self.bindings:
            return float(self.bindings[node.name])
        raise UnboundVariableError(node.name, self.source, node.offset)

    def visit_apply(self, node: Apply, args: list[float]) -> float:
        try:
            return float(node.spec.rule(args))
        except (ArithmeticError, ValueError) as exc:
            raise DomainError(f"Cannot evaluate {node.name}: {exc}", self.source, node.offset) from exc

    def visit_incomplete(self, node: Incomplete) -> float:
        raise IncompleteNodeError("Attempt to evaluate an unfinished node", self.source, node.offset)


class StringVisitor:
    """
    Convert AST to infix text.

    Parentheses are only added where re-parsing would otherwise group
    differently:
    - 2 + (3 * x) -> "2 + 3 * x"
    - x - (y - z) keeps its parentheses
    - neg(3) -> "-(3)", since "-3" reads as a negative literal
    """

    def visit_constant(self, node: Constant) -> str:
        return format_number(node.value)

    def visit_variable(self, node: Variable) -> str:
        return node.name

    def visit_incomplete(self, node: Incomplete) -> str:
        return "?"

    def visit_apply(self, node: Apply, args: list[str]) -> str:
        fixity = _fixity(node)

        if fixity is None:
            return f"{node.name}({', '.join(args)})"

        if fixity is Fixity.PREFIX:
            operand = node.args[0]
            operand_str = args[0]
            if isinstance(operand, Constant) or _fixity(operand) is not None:
                operand_str = f"({operand_str})"
            return f"{node.name}{operand_str}"

        precedence = node.spec.precedence

        if fixity is Fixity.POSTFIX:
            operand = node.args[0]
            operand_str = args[0]
            if _fixity(operand) is Fixity.INFIX and operand.spec.precedence < precedence:
                operand_str = f"({operand_str})"
            return f"{operand_str}{node.name}"

        left, right = node.args
        left_str, right_str = args

        if _fixity(left) is Fixity.INFIX and left.spec.precedence < precedence:
            left_str = f"({left_str})"

        if _fixity(right) in (Fixity.INFIX, Fixity.POSTFIX) and right.spec.precedence <= precedence:
            right_str = f"({right_str})"

        return f"{left_str} {node.name} {right_str}"


class SExpressionVisitor:
    """
    Convert AST to a fully parenthesized prefix form.

    Examples:
    - 1 + 2 * x -> "(+ 1 (* 2 x))"
    - max(a, -b) -> "(max a (- b))"
    """

    def visit_constant(self, node: Constant) -> str:
        return format_number(node.value)

    def visit_variable(self, node: Variable) -> str:
        return node.name

    def visit_incomplete(self, node: Incomplete) -> str:
        return "?"

    def visit_apply(self, node: Apply, args: list[str]) -> str:
        parts = [node.name] + args
        return "(" + " ".join(parts) + ")"

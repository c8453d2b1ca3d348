"""
Abstract Syntax Tree (AST) node definitions for parsed expressions.

A tree is made of Apply nodes (an operator or function applied to its
arguments), Constant and Variable leaves, and the Incomplete placeholder the
parser uses for a slot that has not been filled yet. Every node is owned by
exactly one parent; copy() is always deep.

Nodes carry the algorithms that only depend on tree shape:
- a total order used to canonicalize commutative operands
- structural equality
- in-place canonical sort
- pre-order traversal

A chain like 1+1+...+1 is as deep as it is long, so none of these recurse;
they all work from an explicit stack.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterator, Protocol, Union

from .errors import IncompleteNodeError
from .grammar import Fixity, FunctionSpec, OperatorSpec

Spec = Union[OperatorSpec, FunctionSpec]

# Rank of each node kind in the canonical order
_APPLY_RANK = 0
_VARIABLE_RANK = 1
_CONSTANT_RANK = 2
_INCOMPLETE_RANK = 3


class ASTVisitor(Protocol):
    """
    Visitor protocol for folding AST nodes bottom-up.

    visit_apply receives the node together with the results already
    computed for its arguments, in argument order.
    """

    def visit_apply(self, node: "Apply", args: list[Any]) -> Any:
        ...

    def visit_constant(self, node: "Constant") -> Any:
        ...

    def visit_variable(self, node: "Variable") -> Any:
        ...

    def visit_incomplete(self, node: "Incomplete") -> Any:
        ...


def compare(a: "ASTNode", b: "ASTNode") -> int:
    """
    Three-way comparison in the canonical order.

    Nodes are compared by order_key(); ties between Apply nodes are broken
    by their arguments, left to right. Returns 0 only for structurally
    equal trees.
    """
    stack = [(a, b)]
    while stack:
        x, y = stack.pop()
        kx, ky = x.order_key(), y.order_key()
        if kx != ky:
            return -1 if kx < ky else 1
        if isinstance(x, Apply):
            stack.extend(reversed(list(zip(x.args, y.args))))
    return 0


class ASTNode(ABC):
    """
    Base class for all AST nodes.

    Attributes:
        offset: Position in the source text the node came from (None for
            nodes built programmatically). Not part of equality.
    """

    offset: int | None

    @abstractmethod
    def dispatch(self, visitor: ASTVisitor, args: list[Any]) -> Any:
        """Call the visitor method for this node kind."""

    @abstractmethod
    def __repr__(self) -> str:
        pass

    @abstractmethod
    def order_key(self) -> tuple:
        """
        Key of this node in the canonical total order.

        Apply < Variable < Constant; Apply nodes by (name, arity), variables
        by name, constants by value. Only the node itself is compared, never
        its children.
        """

    def accept(self, visitor: ASTVisitor) -> Any:
        """Fold the subtree through the visitor, children before parents."""
        results: list[Any] = []
        stack: list[tuple[ASTNode, bool]] = [(self, False)]
        while stack:
            node, ready = stack.pop()
            if isinstance(node, Apply) and not ready:
                stack.append((node, True))
                stack.extend((arg, False) for arg in reversed(node.args))
                continue
            count = len(node.args) if isinstance(node, Apply) else 0
            args = results[len(results) - count:] if count else []
            del results[len(results) - count:]
            results.append(node.dispatch(visitor, args))
        return results[0]

    def copy(self, shift: int = 0) -> "ASTNode":
        """
        Deep copy of the subtree.

        Args:
            shift: Amount added to every source offset in the copy
        """
        return self.accept(_Copier(shift))

    def precedes(self, other: "ASTNode") -> bool:
        return compare(self, other) < 0

    def sort(self) -> None:
        """
        Order the operands of commutative infix operators, in place.

        Arguments are sorted before their parent, then the two operands of
        each commutative pair are swapped when the second precedes the
        first. Running it again on a sorted tree changes nothing.
        """
        for node in reversed(list(self.walk())):
            if isinstance(node, Apply) and node.is_commutative_pair:
                if compare(node.args[1], node.args[0]) < 0:
                    node.args[0], node.args[1] = node.args[1], node.args[0]

    def walk(self) -> Iterator["ASTNode"]:
        """Yield the subtree's nodes in pre-order (depth first)."""
        stack: list[ASTNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, Apply):
                stack.extend(reversed(node.args))

    def is_complete(self) -> bool:
        return all(not isinstance(node, Incomplete) for node in self.walk())

    def _shifted(self, shift: int) -> int | None:
        return None if self.offset is None else self.offset + shift


# Leaf Nodes


class Constant(ASTNode):
    """
    A numeric literal.

    Examples: 42, 3.14, -2
    """

    def __init__(self, value: float | int, offset: int | None = None):
        self.value = float(value)
        self.offset = offset

    def dispatch(self, visitor: ASTVisitor, args: list[Any]) -> Any:
        return visitor.visit_constant(self)

    def __repr__(self) -> str:
        return f"Constant({self.value})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Constant) and self.value == other.value

    __hash__ = None  # type: ignore[assignment]

    def order_key(self) -> tuple:
        return (_CONSTANT_RANK, self.value)


class Variable(ASTNode):
    """
    A named variable, resolved only at evaluation time.

    Examples: x, y1, rate_of_change
    """

    def __init__(self, name: str, offset: int | None = None):
        self.name = name
        self.offset = offset

    def dispatch(self, visitor: ASTVisitor, args: list[Any]) -> Any:
        return visitor.visit_variable(self)

    def __repr__(self) -> str:
        return f"Variable('{self.name}')"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Variable) and self.name == other.name

    __hash__ = None  # type: ignore[assignment]

    def order_key(self) -> tuple:
        return (_VARIABLE_RANK, self.name)


class Incomplete(ASTNode):
    """Placeholder for a slot still being parsed. Never part of a finished tree."""

    def __init__(self, offset: int | None = None):
        self.offset = offset

    def dispatch(self, visitor: ASTVisitor, args: list[Any]) -> Any:
        return visitor.visit_incomplete(self)

    def __repr__(self) -> str:
        return "Incomplete()"

    def __eq__(self, other: object) -> bool:
        return False

    __hash__ = None  # type: ignore[assignment]

    def order_key(self) -> tuple:
        return (_INCOMPLETE_RANK,)


# Composite Nodes


class Apply(ASTNode):
    """
    An operator or function applied to its arguments.

    Examples: 2 + 3, -x, max(a, b)

    The number of arguments always equals the operator or function arity
    once the tree is finished.
    """

    def __init__(self, spec: Spec, args: list[ASTNode], offset: int | None = None):
        self.spec = spec
        self.args = args
        self.offset = offset

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def is_operator(self) -> bool:
        return self.spec.is_operator

    @property
    def is_commutative_pair(self) -> bool:
        return (
            isinstance(self.spec, OperatorSpec)
            and self.spec.fixity is Fixity.INFIX
            and self.spec.commutative
            and len(self.args) == 2
        )

    def dispatch(self, visitor: ASTVisitor, args: list[Any]) -> Any:
        return visitor.visit_apply(self, args)

    def __repr__(self) -> str:
        return self.accept(_Repr())

    def __eq__(self, other: object) -> bool:
        stack: list[tuple[ASTNode, object]] = [(self, other)]
        while stack:
            x, y = stack.pop()
            if isinstance(x, Apply):
                if not (isinstance(y, Apply) and x.spec == y.spec and len(x.args) == len(y.args)):
                    return False
                stack.extend(zip(x.args, y.args))
            elif x != y:
                return False
        return True

    __hash__ = None  # type: ignore[assignment]

    def order_key(self) -> tuple:
        # fixity only separates same-name, same-arity specs (prefix/postfix)
        kind = self.spec.fixity.value if isinstance(self.spec, OperatorSpec) else "function"
        return (_APPLY_RANK, self.name, self.spec.arity, kind)


class _Copier:
    """Rebuilds a subtree with shifted offsets."""

    def __init__(self, shift: int):
        self.shift = shift

    def visit_apply(self, node: Apply, args: list[ASTNode]) -> Apply:
        return Apply(node.spec, args, node._shifted(self.shift))

    def visit_constant(self, node: Constant) -> Constant:
        return Constant(node.value, node._shifted(self.shift))

    def visit_variable(self, node: Variable) -> Variable:
        return Variable(node.name, node._shifted(self.shift))

    def visit_incomplete(self, node: Incomplete) -> Incomplete:
        raise IncompleteNodeError("Cannot copy an unfinished expression tree", offset=node.offset)


class _Repr:
    def visit_apply(self, node: Apply, args: list[str]) -> str:
        return f"Apply('{node.name}', [{', '.join(args)}])"

    def visit_constant(self, node: Constant) -> str:
        return repr(node)

    def visit_variable(self, node: Variable) -> str:
        return repr(node)

    def visit_incomplete(self, node: Incomplete) -> str:
        return repr(node)

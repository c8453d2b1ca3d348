"""
Sub-expression search.

b is a sub-expression of a when, after both trees are canonicalized:
- some node of a is structurally equal to b's root, or
- b's root is a commutative infix operator and the operands of b's chain
  of that operator form a sub-multiset of the operands of a chain of the
  same operator in a.

Commutative infix operators are treated as associative for the chain rule,
so 2 + 3 is found in 2 + 3 + 4 and in 3 + 4 + 2, while 2 - 3 is not found
in 5 - 2 - 3.
"""

from __future__ import annotations

from .ast import Apply, ASTNode


def flatten_chain(node: Apply) -> list[ASTNode]:
    """
    Operands of a run of the same operator.

    (a + b) + (c + d) -> [a, b, c, d]
    """
    operands: list[ASTNode] = []
    stack: list[ASTNode] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Apply) and current.spec == node.spec:
            stack.extend(reversed(current.args))
        else:
            operands.append(current)
    return operands


def contains_all(haystack: list[ASTNode], needles: list[ASTNode]) -> bool:
    """True if needles is a sub-multiset of haystack under structural equality."""
    remaining = list(haystack)
    for needle in needles:
        for i, candidate in enumerate(remaining):
            if candidate == needle:
                del remaining[i]
                break
        else:
            return False
    return True


def is_subexpression(tree: ASTNode, sub: ASTNode) -> bool:
    """
    Decide whether sub occurs inside tree.

    Both arguments must already be canonicalized; they are not modified.
    """
    for node in tree.walk():
        if node == sub:
            return True

    if not (isinstance(sub, Apply) and sub.is_commutative_pair):
        return False

    wanted = flatten_chain(sub)
    for node in tree.walk():
        if isinstance(node, Apply) and node.spec == sub.spec:
            if contains_all(flatten_chain(node), wanted):
                return True
    return False

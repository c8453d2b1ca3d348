"""
Operator-precedence parser for infix, prefix and postfix expressions.

Each parenthesis and each function argument is parsed in its own scope.
A scope holds the current hole (the operand being waited for) and the spine
of operator nodes still missing their right operand, ordered from the root
down. An incoming infix/postfix operator pops spine nodes of greater or equal
precedence, which makes operators of equal precedence group to the left:

    10 - 3 - 2      ->  (10 - 3) - 2
    2 + 3 * 4       ->  2 + (3 * 4)

Prefix operators consume the next operand immediately, so they bind tighter
than any infix operator: -a * b is (-a) * b.

Whether an operator is prefix, infix or postfix is decided by position: where
a value is expected it must be prefix; after a value it is infix when another
operand follows and postfix otherwise.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from .ast import Apply, ASTNode, Constant, Incomplete, Variable
from .errors import (
    ArityError,
    ExcessArgumentError,
    ExpressionSyntaxError,
    IncompleteNodeError,
    MismatchedParenthesesError,
    MissingOperatorError,
    NestingDepthError,
    UndefinedFunctionError,
    UnfinishedExpressionError,
    UnknownOperatorError,
)
from .grammar import Fixity, Grammar, OperatorSpec, get_default_grammar
from .tokenizer import Scanner, Token, TokenType

logger = logging.getLogger(__name__)


class ScopeKind(Enum):
    TOP = "top"
    PARENTHESIS = "parenthesis"
    FUNCTION_CALL = "function call"


@dataclass
class Scope:
    """
    Parsing state of one nesting level.

    Attributes:
        kind: What opened the scope
        start: Offset of the opening token ('(' or the function name)
        spine: Operator nodes whose last argument is still a hole
        operand: Value filling the current hole, None while unfilled
        last_operator: Offset of the most recent infix operator
    """

    kind: ScopeKind
    start: int
    spine: list[Apply] = field(default_factory=list)
    operand: ASTNode | None = None
    last_operator: int | None = None


class Parser:
    """
    Turns expression text into an AST.

    The parser is configured with a Grammar and records every variable name
    it sees, in order of first appearance, in the list passed to parse().

    Nesting (parentheses, calls, prefix operators) is parsed recursively and
    limited to MAX_DEPTH levels.
    """

    MAX_DEPTH = 200

    def __init__(self, grammar: Grammar | None = None):
        """
        Initialize parser with optional grammar.

        Args:
            grammar: Operator/function registry (defaults to the shared one)
        """
        self.grammar = grammar or get_default_grammar()
        self.text = ""
        self.pos = 0
        self.variables: list[str] = []
        self._scanner: Scanner | None = None
        self._depth = 0

    def parse(self, text: str, variables: list[str] | None = None) -> ASTNode:
        """
        Parse an expression string to a canonicalized AST.

        Args:
            text: The expression
            variables: Registry that receives newly seen variable names

        Returns:
            Root AST node

        Raises:
            ParseError: If the expression is invalid
        """
        self.text = text
        self.pos = 0
        self.variables = variables if variables is not None else []
        self._scanner = Scanner(self.grammar, text)
        self._depth = 0

        root = self._parse_sequence(Scope(ScopeKind.TOP, 0))
        if not root.is_complete():
            raise IncompleteNodeError("Parser left an unfilled slot in the tree", text)

        root.sort()
        logger.debug("Parsed %r -> %r", text, root)
        return root

    def _next(self, expect_operand: bool) -> Token:
        return self._scanner.next_token(self.pos, expect_operand)

    def _error(self, cls: type, message: str, offset: int | None):
        return cls(message, self.text, offset)

    @contextmanager
    def _nested(self, token: Token):
        if self._depth >= self.MAX_DEPTH:
            raise self._error(NestingDepthError, "Expression nested too deeply", token.pos)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _parse_sequence(self, scope: Scope) -> ASTNode:
        """
        Parse operands and operators until the scope's terminator.

        The terminator (')' or ',' for nested scopes, end of input for the
        top scope) is left for the caller to consume.
        """
        while True:
            token = self._next(expect_operand=scope.operand is None)

            if token.type is TokenType.EOF:
                if scope.kind is ScopeKind.PARENTHESIS:
                    raise self._error(MismatchedParenthesesError, "Mismatched parentheses", scope.start)
                if scope.kind is ScopeKind.FUNCTION_CALL:
                    raise self._error(UnfinishedExpressionError, "Unfinished function call", scope.start)
                break

            if token.type is TokenType.RPAREN:
                if scope.kind is ScopeKind.TOP:
                    raise self._error(MismatchedParenthesesError, "Mismatched parentheses", token.pos)
                break

            if token.type is TokenType.COMMA:
                if scope.kind is not ScopeKind.FUNCTION_CALL:
                    raise self._error(
                        ExpressionSyntaxError,
                        "Argument separator outside of a function call",
                        token.pos,
                    )
                break

            if scope.operand is None:
                scope.operand = self._parse_operand(token)
            elif token.type is TokenType.OPERATOR:
                self._parse_operator(scope, token)
            else:
                raise self._error(MissingOperatorError, "Expected operator between two values", token.pos)

        return self._close(scope, token)

    def _close(self, scope: Scope, terminator: Token) -> ASTNode:
        """Fold the spine of a finished scope into a single subtree."""
        if scope.operand is None:
            if scope.spine:
                raise self._error(
                    UnfinishedExpressionError,
                    "Right argument for operator not found",
                    scope.last_operator,
                )
            if scope.kind is ScopeKind.PARENTHESIS:
                message = "Empty parentheses"
            elif scope.kind is ScopeKind.FUNCTION_CALL:
                message = "Empty function argument"
            else:
                message = "Empty expression"
            raise self._error(UnfinishedExpressionError, message, terminator.pos)

        node = scope.operand
        while scope.spine:
            parent = scope.spine.pop()
            parent.args[-1] = node
            node = parent
        return node

    def _parse_operand(self, token: Token) -> ASTNode:
        """
        Parse one value: a literal, a variable, a parenthesized group, a
        function call, or a prefix operator applied to the next value.
        """
        if token.type is TokenType.NUMBER:
            self.pos = token.end
            return Constant(float(token.value), token.pos)

        if token.type is TokenType.VARIABLE:
            self.pos = token.end
            if token.value not in self.variables:
                self.variables.append(token.value)
            return Variable(token.value, token.pos)

        if token.type is TokenType.LPAREN:
            with self._nested(token):
                return self._parse_parenthesized(token)

        if token.type is TokenType.FUNCTION:
            with self._nested(token):
                return self._parse_function_call(token)

        if token.type is TokenType.OPERATOR:
            with self._nested(token):
                return self._parse_prefix(token)

        raise self._error(ExpressionSyntaxError, "Unexpected token", token.pos)

    def _parse_prefix(self, token: Token) -> Apply:
        spec = self.grammar.match_operator(self.text, token.pos, Fixity.PREFIX)
        if spec is None:
            raise self._error(UnknownOperatorError, "Expected prefix operator", token.pos)
        self.pos = token.pos + len(spec.name)

        operand_token = self._next(expect_operand=True)
        if operand_token.type in (TokenType.EOF, TokenType.RPAREN, TokenType.COMMA):
            raise self._error(
                UnfinishedExpressionError,
                "Argument for prefix operator not found",
                token.pos,
            )
        return Apply(spec, [self._parse_operand(operand_token)], token.pos)

    def _parse_operator(self, scope: Scope, token: Token) -> None:
        """Splice an infix or postfix operator into the scope's spine."""
        spec = self._resolve_trailing_operator(token)
        self.pos = token.pos + len(spec.name)

        operand = scope.operand
        while scope.spine and scope.spine[-1].spec.precedence >= spec.precedence:
            parent = scope.spine.pop()
            parent.args[-1] = operand
            operand = parent

        if spec.fixity is Fixity.INFIX:
            scope.spine.append(Apply(spec, [operand, Incomplete(self.pos)], token.pos))
            scope.operand = None
            scope.last_operator = token.pos
        else:
            scope.operand = Apply(spec, [operand], token.pos)

    def _resolve_trailing_operator(self, token: Token) -> OperatorSpec:
        """
        Pick the infix or postfix reading of an operator that follows a value.

        Infix when another operand follows the operator text, postfix
        otherwise; if the grammar only has one of the two, that one.
        """
        infix = self.grammar.match_operator(self.text, token.pos, Fixity.INFIX)
        postfix = self.grammar.match_operator(self.text, token.pos, Fixity.POSTFIX)

        if infix is not None and postfix is not None:
            if self._scanner.starts_operand(token.pos + len(infix.name)):
                return infix
            return postfix
        if infix is not None:
            return infix
        if postfix is not None:
            return postfix
        raise self._error(UnknownOperatorError, "Expected infix or postfix operator", token.pos)

    def _parse_parenthesized(self, token: Token) -> ASTNode:
        self.pos = token.end
        node = self._parse_sequence(Scope(ScopeKind.PARENTHESIS, token.pos))
        self.pos = self._next(expect_operand=False).end  # closing ')'
        return node

    def _parse_function_call(self, token: Token) -> Apply:
        """
        Parse a function call: name(arg1, arg2, ...).

        The number of arguments must equal the function's arity.
        """
        spec = self.grammar.find_function(token.value)
        if spec is None:
            raise self._error(UndefinedFunctionError, f"Undefined function: {token.value}", token.pos)
        self.pos = token.end

        args: list[ASTNode] = []
        closing = self._next(expect_operand=True)
        if closing.type is TokenType.RPAREN:
            raise self._error(
                ArityError,
                f"Invalid number of arguments: {spec.name} expects {spec.arity}, got 0",
                closing.pos,
            )

        while True:
            args.append(self._parse_sequence(Scope(ScopeKind.FUNCTION_CALL, token.pos)))
            closing = self._next(expect_operand=False)
            self.pos = closing.end
            if closing.type is TokenType.RPAREN:
                break
            if len(args) >= spec.arity:
                raise self._error(
                    ExcessArgumentError,
                    f"Too many arguments: {spec.name} expects {spec.arity}",
                    closing.pos,
                )

        if len(args) != spec.arity:
            raise self._error(
                ArityError,
                f"Invalid number of arguments: {spec.name} expects {spec.arity}, got {len(args)}",
                closing.pos,
            )
        return Apply(spec, args, token.pos)

"""
Shared pytest fixtures for the exprtree tests.

This module provides:
- The default grammar and a grammar with postfix/extra operators
- A helper that parses text straight to a (canonicalized) tree
- Isolation of cached settings between tests
"""

from typing import Callable

import pytest

from exprtree.core.config import get_settings
from exprtree.parser.ast import ASTNode
from exprtree.parser.grammar import Grammar, get_default_grammar
from exprtree.parser.parser import Parser


EXTENDED_GRAMMAR = {
    "operators": [
        {"name": "+", "precedence": 10, "fixity": "infix", "commutative": True, "rule": "add"},
        {"name": "-", "precedence": 10, "fixity": "infix", "rule": "sub"},
        {"name": "*", "precedence": 20, "fixity": "infix", "commutative": True, "rule": "mul"},
        {"name": "/", "precedence": 20, "fixity": "infix", "rule": "div"},
        {"name": "**", "precedence": 30, "fixity": "infix", "rule": "pow"},
        {"name": "-", "precedence": 40, "fixity": "prefix", "rule": "neg"},
        {"name": "!", "precedence": 50, "fixity": "postfix", "rule": "factorial"},
    ],
    "functions": [
        {"name": "max", "arity": 2},
        {"name": "abs"},
        {"name": "root", "arity": 1, "rule": "sqrt"},
    ],
}


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings and grammar so environment changes take effect."""
    get_settings.cache_clear()
    get_default_grammar.cache_clear()
    yield
    get_settings.cache_clear()
    get_default_grammar.cache_clear()


@pytest.fixture
def grammar() -> Grammar:
    return Grammar.default()


@pytest.fixture
def extended_grammar() -> Grammar:
    """Default arithmetic plus '**', postfix '!' and a few functions."""
    return Grammar.from_dict(EXTENDED_GRAMMAR)


@pytest.fixture
def parse_tree(grammar) -> Callable[..., ASTNode]:
    """Factory parsing text with the default grammar."""
    def _parse(text: str, variables: list[str] | None = None) -> ASTNode:
        return Parser(grammar).parse(text, variables)
    return _parse

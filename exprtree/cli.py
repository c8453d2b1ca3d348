"""Command line interface for exprtree."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .core.logging import setup_logging
from .expression import COMBINING_OPERATORS, Expression
from .parser.errors import ExpressionError
from .parser.grammar import Grammar, get_default_grammar

logger = logging.getLogger(__name__)


def _binding(text: str) -> tuple[str, float]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected name=value, got '{text}'")
    try:
        return name.strip(), float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a number") from None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare two expressions and show how they compose."
    )
    parser.add_argument("expression", help="Expression to search in and evaluate.")
    parser.add_argument(
        "subexpression",
        nargs="?",
        help="Expression to look for inside the first one.",
    )
    parser.add_argument(
        "--var",
        dest="bindings",
        type=_binding,
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Bind a variable of the first expression (repeatable).",
    )
    parser.add_argument(
        "--grammar",
        type=Path,
        help="YAML grammar to use instead of the default operators and functions.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: EXPRTREE_LOG_LEVEL or WARNING).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        grammar = Grammar.from_yaml(args.grammar) if args.grammar else get_default_grammar()
        first = Expression(args.expression, grammar, dict(args.bindings))
        print(first.to_sexpr())

        if args.subexpression is not None:
            second = Expression(args.subexpression, grammar)
            print(first.is_subexpression(second))
            for op in COMBINING_OPERATORS:
                print(second.combine(op, first).to_sexpr())

        if args.bindings or not first.variables:
            print(first.evaluate())
    except ExpressionError as exc:
        logger.debug("Failed: %s", exc)
        print(exc.caret(), file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

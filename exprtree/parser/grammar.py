"""
Grammar registry: the operators and functions an expression may use.

A Grammar is built once and never mutated afterwards. Parsed trees refer to
its OperatorSpec/FunctionSpec entries directly; the entries are frozen, so a
reference is a stable handle that can be shared by any number of parses.

The registry can be loaded from YAML:

    operators:
      - {name: "+", precedence: 10, fixity: infix, commutative: true, rule: add}
      - {name: "-", precedence: 40, fixity: prefix, rule: neg}
    functions:
      - {name: max, arity: 2, rule: max}
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Callable, Literal, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import GrammarError

logger = logging.getLogger(__name__)

Rule = Callable[[Sequence[float]], float]


class Fixity(Enum):
    """Where an operator sits relative to its operands."""

    PREFIX = "prefix"
    INFIX = "infix"
    POSTFIX = "postfix"


@dataclass(frozen=True)
class OperatorSpec:
    """
    An operator entry.

    Infix operators take two operands, prefix and postfix operators one.
    Higher precedence binds tighter.
    """

    name: str
    precedence: int
    fixity: Fixity
    rule: Rule = field(compare=False, repr=False)
    commutative: bool = False

    @property
    def arity(self) -> int:
        return 2 if self.fixity is Fixity.INFIX else 1

    @property
    def is_operator(self) -> bool:
        return True


@dataclass(frozen=True)
class FunctionSpec:
    """A named function with a fixed number of arguments."""

    name: str
    arity: int
    rule: Rule = field(compare=False, repr=False)

    @property
    def precedence(self) -> int:
        return 0

    @property
    def commutative(self) -> bool:
        return False

    @property
    def is_operator(self) -> bool:
        return False


def _ctg(x: float) -> float:
    return 1.0 / math.tan(x)


def _ctgh(x: float) -> float:
    return 1.0 / math.tanh(x)


def _actgh(x: float) -> float:
    return math.atanh(1.0 / x)


# Evaluation rules addressable by name from YAML grammars
RULES: dict[str, Rule] = {
    "add": lambda a: a[0] + a[1],
    "sub": lambda a: a[0] - a[1],
    "mul": lambda a: a[0] * a[1],
    "div": lambda a: a[0] / a[1],
    "pow": lambda a: math.pow(a[0], a[1]),
    "mod": lambda a: a[0] % a[1],
    "neg": lambda a: -a[0],
    "pos": lambda a: +a[0],
    "factorial": lambda a: float(math.factorial(int(a[0]))),
    "abs": lambda a: abs(a[0]),
    "ceil": lambda a: float(math.ceil(a[0])),
    "floor": lambda a: float(math.floor(a[0])),
    "max": lambda a: max(a[0], a[1]),
    "min": lambda a: min(a[0], a[1]),
    "sin": lambda a: math.sin(a[0]),
    "cos": lambda a: math.cos(a[0]),
    "tan": lambda a: math.tan(a[0]),
    "ctg": lambda a: _ctg(a[0]),
    "asin": lambda a: math.asin(a[0]),
    "acos": lambda a: math.acos(a[0]),
    "atan": lambda a: math.atan(a[0]),
    "atan2": lambda a: math.atan2(a[0], a[1]),
    "cosh": lambda a: math.cosh(a[0]),
    "sinh": lambda a: math.sinh(a[0]),
    "tanh": lambda a: math.tanh(a[0]),
    "ctgh": lambda a: _ctgh(a[0]),
    "acosh": lambda a: math.acosh(a[0]),
    "asinh": lambda a: math.asinh(a[0]),
    "atanh": lambda a: math.atanh(a[0]),
    "actgh": lambda a: _actgh(a[0]),
    "sqrt": lambda a: math.sqrt(a[0]),
    "exp": lambda a: math.exp(a[0]),
    "ln": lambda a: math.log(a[0]),
}


class OperatorEntry(BaseModel):
    """YAML schema for one operator."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    precedence: int
    fixity: Literal["prefix", "infix", "postfix"]
    commutative: bool = False
    rule: str

    @field_validator("rule")
    @classmethod
    def known_rule(cls, v: str) -> str:
        if v not in RULES:
            raise ValueError(f"unknown evaluation rule '{v}'")
        return v

    @model_validator(mode="after")
    def commutative_needs_infix(self) -> "OperatorEntry":
        if self.commutative and self.fixity != "infix":
            raise ValueError("only infix operators can be commutative")
        return self


class FunctionEntry(BaseModel):
    """YAML schema for one function."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(pattern=r"^[A-Za-z][A-Za-z0-9_]*$")
    arity: int = Field(default=1, gt=0)
    rule: str | None = None

    @field_validator("rule")
    @classmethod
    def known_rule(cls, v: str | None) -> str | None:
        if v is not None and v not in RULES:
            raise ValueError(f"unknown evaluation rule '{v}'")
        return v


class GrammarDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    operators: list[OperatorEntry] = Field(default_factory=list)
    functions: list[FunctionEntry] = Field(default_factory=list)


class Grammar:
    """
    Immutable registry of operators and functions.

    Attributes:
        operators: Operator specs in declaration order
        functions: Function specs in declaration order
    """

    __slots__ = ("_operators", "_functions", "_functions_by_name")

    def __init__(self, operators: Sequence[OperatorSpec], functions: Sequence[FunctionSpec]):
        self._operators = tuple(operators)
        self._functions = tuple(functions)
        self._functions_by_name: dict[str, FunctionSpec] = {}
        for func in self._functions:
            if func.name in self._functions_by_name:
                raise GrammarError(f"Duplicate function '{func.name}'")
            self._functions_by_name[func.name] = func

        seen: set[tuple[str, Fixity]] = set()
        for op in self._operators:
            if (op.name, op.fixity) in seen:
                raise GrammarError(f"Duplicate {op.fixity.value} operator '{op.name}'")
            seen.add((op.name, op.fixity))

    @property
    def operators(self) -> tuple[OperatorSpec, ...]:
        return self._operators

    @property
    def functions(self) -> tuple[FunctionSpec, ...]:
        return self._functions

    def __repr__(self) -> str:
        return f"Grammar(operators={len(self._operators)}, functions={len(self._functions)})"

    def match_operator(
        self, text: str, pos: int, fixity: Fixity | None = None
    ) -> OperatorSpec | None:
        """
        Longest operator whose name starts at text[pos].

        Args:
            text: Source text
            pos: Position to match at
            fixity: Only consider operators of this fixity (None = any)

        Returns:
            The matching spec, or None
        """
        best: OperatorSpec | None = None
        for op in self._operators:
            if fixity is not None and op.fixity is not fixity:
                continue
            if text.startswith(op.name, pos) and (best is None or len(op.name) > len(best.name)):
                best = op
        return best

    def find_function(self, name: str) -> FunctionSpec | None:
        return self._functions_by_name.get(name)

    def find_operator(self, name: str, fixity: Fixity) -> OperatorSpec | None:
        for op in self._operators:
            if op.name == name and op.fixity is fixity:
                return op
        return None

    @classmethod
    def default(cls) -> "Grammar":
        """
        The standard arithmetic grammar.

        Binary + - * / with the usual precedence, unary minus binding tighter
        than all of them, and the common one- and two-argument math functions.
        """
        operators = [
            OperatorSpec("+", 10, Fixity.INFIX, RULES["add"], commutative=True),
            OperatorSpec("-", 10, Fixity.INFIX, RULES["sub"]),
            OperatorSpec("*", 20, Fixity.INFIX, RULES["mul"], commutative=True),
            OperatorSpec("/", 20, Fixity.INFIX, RULES["div"]),
            OperatorSpec("-", 40, Fixity.PREFIX, RULES["neg"]),
        ]

        functions = [FunctionSpec(name, 1, RULES[name]) for name in ("abs", "ceil", "floor")]
        functions += [FunctionSpec(name, 2, RULES[name]) for name in ("max", "min")]
        functions += [
            FunctionSpec(name, 1, RULES[name])
            for name in ("sin", "cos", "tan", "ctg", "asin", "acos", "atan")
        ]
        functions.append(FunctionSpec("atan2", 2, RULES["atan2"]))
        functions += [
            FunctionSpec(name, 1, RULES[name])
            for name in ("cosh", "sinh", "tanh", "ctgh", "acosh", "asinh", "atanh", "actgh")
        ]

        return cls(operators, functions)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Grammar":
        """
        Load a grammar from a YAML file.

        Args:
            path: Path to YAML grammar document

        Returns:
            Grammar instance

        Raises:
            GrammarError: If the document is malformed
        """
        with open(path, "r") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise GrammarError(f"Cannot read grammar {path}: {exc}") from exc
        return cls.from_dict(data, origin=str(path))

    @classmethod
    def from_dict(cls, data: dict, origin: str | None = None) -> "Grammar":
        """
        Build a grammar from an already-parsed document.

        Functions without an explicit rule use the rule of the same name.
        """
        try:
            document = GrammarDocument.model_validate(data)
        except ValidationError as exc:
            raise GrammarError(f"Invalid grammar ({origin or 'dict'}): {exc}") from exc

        operators = [
            OperatorSpec(
                entry.name,
                entry.precedence,
                Fixity(entry.fixity),
                RULES[entry.rule],
                commutative=entry.commutative,
            )
            for entry in document.operators
        ]

        functions = []
        for entry in document.functions:
            rule_name = entry.rule or entry.name
            if rule_name not in RULES:
                raise GrammarError(f"Function '{entry.name}' has no evaluation rule")
            functions.append(FunctionSpec(entry.name, entry.arity, RULES[rule_name]))

        grammar = cls(operators, functions)
        logger.debug("Loaded %r from %s", grammar, origin or "dict")
        return grammar


@lru_cache()
def get_default_grammar() -> Grammar:
    """
    Grammar shared by expressions that are not given one explicitly.

    Uses the YAML file named by the GRAMMAR_FILE setting when present, the
    built-in arithmetic grammar otherwise.
    """
    from ..core.config import get_settings

    grammar_file = get_settings().GRAMMAR_FILE
    if grammar_file:
        return Grammar.from_yaml(grammar_file)
    return Grammar.default()

"""Tests for the Expression facade and the functional interface."""

import copy

import pytest

import exprtree
from exprtree import Expression
from exprtree.parser.errors import (
    DomainError,
    GrammarError,
    MismatchedParenthesesError,
    ParseError,
    UnboundVariableError,
)
from exprtree.parser.grammar import Grammar


class TestConstruction:
    """Test parsing into an Expression."""

    def test_parse_error_carries_source(self):
        with pytest.raises(MismatchedParenthesesError) as exc_info:
            Expression("(1+2")
        err = exc_info.value
        assert err.source == "(1+2"
        assert err.offset == 0
        assert err.caret() == "Mismatched parentheses\n(1+2\n^"

    def test_variables_in_order_of_appearance(self):
        expr = Expression("b + a * b + c")
        assert expr.variables == ["b", "a", "c"]
        assert expr.get_variable(0) == "b"
        assert expr.get_variable(2) == "c"
        with pytest.raises(IndexError):
            expr.get_variable(3)

    def test_custom_grammar(self, extended_grammar):
        expr = Expression("root(x) ** 2 + 3!", grammar=extended_grammar)
        assert expr.evaluate(x=16) == 22.0

    def test_default_grammar_rejects_extension(self):
        with pytest.raises(ParseError):
            Expression("3!")

    def test_str_and_repr(self):
        expr = Expression("(1+2)*x")
        assert str(expr) == "(1 + 2) * x"
        assert repr(expr) == "Expression('(1 + 2) * x')"


class TestEvaluation:
    """Test evaluation and bindings."""

    def test_keyword_bindings(self):
        assert Expression("x * 2 + 1").evaluate(x=5) == 11.0

    def test_stored_bindings(self):
        expr = Expression("x + y", bindings={"x": 1})
        assert expr.bind(y=2) is expr
        assert expr.evaluate() == 3.0
        assert expr.eval() == 3.0

    def test_call_bindings_override_stored(self):
        expr = Expression("x", bindings={"x": 1})
        assert expr.evaluate({"x": 7}) == 7.0
        assert expr.evaluate({"x": 7}, x=9) == 9.0
        assert expr.bindings == {"x": 1}

    def test_unbound_variable(self):
        expr = Expression("x + y", bindings={"x": 1})
        with pytest.raises(UnboundVariableError) as exc_info:
            expr.evaluate()
        assert exc_info.value.name == "y"
        assert exc_info.value.offset == 4

    def test_domain_error(self):
        with pytest.raises(DomainError):
            Expression("1 / (x - 1)").evaluate(x=1)


class TestComparison:
    """Test canonical form, equality and sub-expression search."""

    def test_equality_ignores_commutative_order(self):
        assert Expression("1 + 2") == Expression("2 + 1")
        assert Expression("a * (b + c)") == Expression("(c + b) * a")
        assert Expression("1 - 2") != Expression("2 - 1")

    @pytest.mark.parametrize(
        "a,b",
        [
            ("a*b + c*d", "c*d + a*b"),
            ("(a+b)*(c+d)", "(c+d)*(a+b)"),
            ("max(x, 1)*sin(y) + max(x, 2)*sin(y)", "sin(y)*max(x, 2) + max(x, 1)*sin(y)"),
        ],
    )
    def test_equality_of_operands_with_same_operator(self, a, b):
        """Test operands sharing an operator still compare in any order."""
        assert exprtree.equals(exprtree.parse(a), exprtree.parse(b))
        assert Expression(b) == Expression(a)

    def test_equality_with_other_types(self):
        assert Expression("1") != 1
        assert not (Expression("1") == "1")

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(Expression("x"))

    def test_canonicalize_in_place(self):
        expr = Expression("a") + Expression("1")
        assert expr.to_sexpr() == "(+ a 1)"
        combined = Expression("1") + Expression("a")
        assert combined.to_sexpr() == "(+ 1 a)"
        assert combined.canonicalize() is combined
        assert combined.to_sexpr() == "(+ a 1)"

    def test_canonicalize_is_idempotent(self):
        expr = Expression("3") * (Expression("2 + x") + Expression("y"))
        once = expr.canonicalize().to_sexpr()
        assert expr.canonicalize().to_sexpr() == once

    def test_equals_is_symmetric(self):
        a = Expression("x") * Expression("y + 1")
        b = Expression("(1 + y) * x")
        assert a.equals(b) and b.equals(a)
        assert a.equals(a)

    def test_is_subexpression(self):
        whole = Expression("2 + 3 + 4")
        assert whole.is_subexpression(Expression("3 + 4"))
        assert whole.is_subexpression(Expression("4 + 2"))
        assert not whole.is_subexpression(Expression("2 + 5"))
        assert not Expression("5 - 2 - 3").is_subexpression(Expression("2 - 3"))

    def test_contains(self):
        assert Expression("2 + 3") in Expression("(3 + 2) * x")
        assert 3 not in Expression("3")

    def test_comparison_does_not_modify(self):
        expr = Expression("1") + Expression("a")
        expr.equals(Expression("a + 1"))
        expr.is_subexpression(Expression("a"))
        assert expr.to_sexpr() == "(+ 1 a)"


class TestCombine:
    """Test composition of expressions."""

    def test_combined_source_and_offsets(self):
        combined = Expression("x").combine("+", Expression("y"))
        assert combined.source == "(x) + (y)"
        left, right = combined.root.args
        assert combined.root.offset == 4
        assert combined.source[left.offset] == "x"
        assert combined.source[right.offset] == "y"
        assert right.offset == 7

    def test_errors_point_into_combined_source(self):
        combined = Expression("x+1") * Expression("2*zz")
        with pytest.raises(UnboundVariableError) as exc_info:
            combined.evaluate(x=1)
        err = exc_info.value
        assert err.source == "(x+1) * (2*zz)"
        assert err.source[err.offset:err.offset + 2] == "zz"

    @pytest.mark.parametrize("op,expected", [("+", 7.0), ("-", -1.0), ("*", 12.0), ("/", 0.75)])
    def test_operators(self, op, expected):
        combined = Expression("x").combine(op, Expression("y"))
        assert combined.evaluate(x=3, y=4) == expected

    def test_overloads(self):
        a, b = Expression("a"), Expression("b")
        assert (a + b).to_sexpr() == "(+ a b)"
        assert (a - b).to_sexpr() == "(- a b)"
        assert (a * b).to_sexpr() == "(* a b)"
        assert (a / b).to_sexpr() == "(/ a b)"

    def test_does_not_alias_operands(self):
        a, b = Expression("x + 1"), Expression("y")
        combined = a * b
        assert combined.root.args[0] is not a.root
        assert combined.root.args[1] is not b.root
        combined.root.args[0].args[0] = combined.root.args[1]
        assert a.to_sexpr() == "(+ x 1)"
        assert a.source == "x + 1"

    def test_variables_and_bindings_merge(self):
        a = Expression("x + y", bindings={"x": 1})
        b = Expression("z * x", bindings={"x": 5, "z": 2})
        combined = a + b
        assert combined.variables == ["x", "y", "z"]
        assert combined.bindings == {"x": 1, "z": 2}
        assert combined.evaluate(y=0) == 3.0

    def test_inplace(self):
        expr = Expression("x")
        alias = expr
        expr += Expression("1")
        expr *= Expression("y")
        assert expr is alias
        assert expr.source == "((x) + (1)) * (y)"
        assert expr.to_sexpr() == "(* (+ x 1) y)"
        assert expr.variables == ["x", "y"]

    def test_inplace_with_itself(self):
        expr = Expression("x")
        expr += expr
        assert expr.to_sexpr() == "(+ x x)"
        expr -= expr
        assert expr.evaluate(x=2) == 0.0

    def test_inplace_division(self):
        expr = Expression("6")
        expr /= Expression("3")
        assert expr.evaluate() == 2.0

    def test_unsupported_operator(self):
        with pytest.raises(ValueError):
            Expression("a").combine("^", Expression("b"))

    def test_operator_missing_from_grammar(self):
        grammar = Grammar.from_dict(
            {"operators": [{"name": "+", "precedence": 1, "fixity": "infix", "rule": "add"}]}
        )
        with pytest.raises(GrammarError):
            Expression("a", grammar) * Expression("b", grammar)

    def test_non_expression_operand(self):
        with pytest.raises(TypeError):
            Expression("a") + 1


class TestCopy:
    """Test copies are independent."""

    def test_copy(self):
        expr = Expression("x * 2", bindings={"x": 1})
        clone = expr.copy()
        clone.bind(x=3)
        clone += Expression("1")
        assert expr.evaluate() == 2.0
        assert expr.source == "x * 2"
        assert clone.evaluate() == 7.0

    def test_copy_module(self):
        expr = Expression("a + b")
        assert copy.copy(expr) == expr
        clone = copy.deepcopy(expr)
        assert clone == expr
        assert clone.root is not expr.root


class TestFunctionalInterface:
    """Test module-level functions."""

    def test_parse_and_evaluate(self):
        expr = exprtree.parse("x * x")
        assert exprtree.evaluate(expr, {"x": 3}) == 9.0

    def test_equals_and_canonicalize(self):
        a = exprtree.combine(exprtree.parse("2"), "+", exprtree.parse("1"))
        assert exprtree.equals(a, exprtree.parse("1 + 2"))
        assert exprtree.canonicalize(a) is a
        assert a.to_sexpr() == "(+ 1 2)"

    def test_is_subexpression_argument_order(self):
        whole, part = exprtree.parse("a * b * c"), exprtree.parse("c * a")
        assert exprtree.is_subexpression(whole, part)
        assert not exprtree.is_subexpression(part, whole)

    def test_parse_with_grammar(self, extended_grammar):
        assert exprtree.parse("2 ** 3", extended_grammar).evaluate() == 8.0


class TestLongExpressions:
    """Test chains of thousands of terms."""

    TERMS = 5000

    def test_sum(self):
        text = " + ".join(["1"] * self.TERMS)
        expr = Expression(text)
        assert expr.evaluate() == self.TERMS
        assert expr.canonicalize().equals(Expression(text))
        assert expr == expr.copy()
        assert expr.is_subexpression(Expression("1 + 1"))
        assert Expression(str(expr)) == expr

    def test_combined_chains(self):
        a = Expression(" * ".join(["x"] * self.TERMS))
        combined = a - a
        assert combined.evaluate(x=1) == 0.0
        assert combined.to_sexpr().startswith("(- (* (* ")

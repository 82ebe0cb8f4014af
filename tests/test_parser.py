"""Unit tests for parser module."""

import unittest

from mathsinterp_pkg.nodes import BinaryOp, FunctionCall, Literal, UnaryOp, Variable, to_string
from mathsinterp_pkg.parser import format_number, parse_expression, parse_statements
from mathsinterp_pkg.types import ParseError


class TestGrammar(unittest.TestCase):
    """Test tree shape for precedence and associativity."""

    def test_multiplication_binds_tighter(self):
        tree = parse_expression("2+3*4")
        self.assertEqual(
            tree,
            BinaryOp("+", Literal(2.0), BinaryOp("*", Literal(3.0), Literal(4.0))),
        )

    def test_power_is_right_associative(self):
        tree = parse_expression("2^3^2")
        self.assertEqual(
            tree,
            BinaryOp("^", Literal(2.0), BinaryOp("^", Literal(3.0), Literal(2.0))),
        )

    def test_subtraction_is_left_associative(self):
        tree = parse_expression("a - b - c")
        self.assertEqual(tree.left, BinaryOp("-", Variable("a"), Variable("b")))

    def test_unary_minus_binds_tighter_than_power(self):
        tree = parse_expression("-2^2")
        self.assertEqual(tree, BinaryOp("^", UnaryOp("-", Literal(2.0)), Literal(2.0)))

    def test_function_call(self):
        self.assertEqual(
            parse_expression("sqrt(x + 1)"),
            FunctionCall("sqrt", BinaryOp("+", Variable("x"), Literal(1.0))),
        )

    def test_assignment_statement(self):
        (statement,) = parse_statements("y = 2*x")
        self.assertEqual(statement.target, "y")
        self.assertEqual(statement.expression, BinaryOp("*", Literal(2.0), Variable("x")))

    def test_comma_chain(self):
        statements = parse_statements("a = 2, b = a + 3, b")
        self.assertEqual([s.target for s in statements], ["a", "b", None])


class TestParseErrors(unittest.TestCase):
    def assertCode(self, text, code):
        with self.assertRaises(ParseError) as ctx:
            parse_statements(text)
        self.assertEqual(ctx.exception.code, code)

    def test_empty(self):
        self.assertCode("", "EMPTY_EXPRESSION")
        self.assertCode("x =", "EMPTY_EXPRESSION")

    def test_unbalanced(self):
        self.assertCode("(1+2", "UNBALANCED_PARENTHESES")
        self.assertCode("1+2)", "UNBALANCED_PARENTHESES")

    def test_trailing_operator(self):
        self.assertCode("2 +", "UNEXPECTED_END")

    def test_implicit_multiplication_rejected(self):
        self.assertCode("2x", "UNEXPECTED_TOKEN")

    def test_double_unary_minus_rejected(self):
        self.assertCode("--2", "UNEXPECTED_TOKEN")

    def test_nesting_limit(self):
        self.assertCode("(" * 150 + "1" + ")" * 150, "TOO_DEEP")

    def test_error_position(self):
        with self.assertRaises(ParseError) as ctx:
            parse_statements("1 + * 2")
        self.assertEqual(ctx.exception.position, 4)


class TestToString(unittest.TestCase):
    """Rendered text parses back to the same tree."""

    def test_round_trip(self):
        for text in ["2*x", "(x + 1)^2", "(-2)^2", "2^-1", "a - (b - c)", "sin(x)/(x*ln(10))", "x^2^3"]:
            with self.subTest(text=text):
                tree = parse_expression(text)
                self.assertEqual(to_string(tree), text)
                self.assertEqual(parse_expression(to_string(tree)), tree)

    def test_fractional_literal(self):
        self.assertEqual(to_string(Literal(0.25)), "0.25")


class TestFormatNumber(unittest.TestCase):
    def test_integers(self):
        self.assertEqual(format_number(4.0), "4")
        self.assertEqual(format_number(-2.0), "-2")

    def test_no_negative_zero(self):
        self.assertEqual(format_number(-0.0), "0")

    def test_precision(self):
        self.assertEqual(format_number(1 / 3, 3), "0.333")


if __name__ == "__main__":
    unittest.main()

"""Tests for numeric evaluation, assignment and the symbol table."""

import math
from collections import ChainMap

import pytest

from mathsinterp_pkg.evaluator import evaluate, execute
from mathsinterp_pkg.parser import parse_expression, parse_statements
from mathsinterp_pkg.symbols import SymbolTable, SymbolType
from mathsinterp_pkg.types import EvalError


def value_of(text, env=None):
    return evaluate(parse_expression(text), env or {})


def run(text, table):
    return execute(parse_statements(text), table)


class TestArithmetic:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("2+3*4", 14),
            ("(2+3)*4", 20),
            ("2^3^2", 512),
            ("-2^2", 4),
            ("10/4", 2.5),
            ("7 - 2 - 1", 4),
            ("-(3 + 1)", -4),
            ("sqrt(16)", 4),
            ("log(100)", 2),
            ("ln(e)", 1),
            ("abs(-3)", 3),
            ("exp(0)", 1),
            ("cos(0)", 1),
        ],
    )
    def test_values(self, text, expected):
        assert value_of(text) == pytest.approx(expected)

    def test_constants(self):
        assert value_of("pi") == math.pi
        assert value_of("sin(pi/2)") == pytest.approx(1.0)

    def test_binding_shadows_constant(self):
        assert value_of("e", {"e": 2.0}) == 2.0

    def test_chainmap_overlay(self):
        base = {"a": 2.0}
        assert value_of("a*x", ChainMap({"x": 3.0}, base)) == 6.0

    def test_long_operator_chains(self):
        assert value_of("+".join(["1"] * 1200)) == 1200.0
        assert value_of("*".join(["1"] * 1500)) == 1.0
        assert value_of("3000" + "-2" * 1499) == 2.0
        assert value_of(" + ".join(["x/2"] * 1000), {"x": 4.0}) == 2000.0


class TestEvaluationErrors:
    @pytest.mark.parametrize(
        "text,code",
        [
            ("1/0", "DIVISION_BY_ZERO"),
            ("0^-1", "DIVISION_BY_ZERO"),
            ("sqrt(-1)", "DOMAIN_ERROR"),
            ("ln(0)", "DOMAIN_ERROR"),
            ("log(-5)", "DOMAIN_ERROR"),
            ("asin(2)", "DOMAIN_ERROR"),
            ("(-8)^0.5", "DOMAIN_ERROR"),
            ("10^400", "OVERFLOW"),
            ("exp(1000)", "OVERFLOW"),
            ("y + 1", "UNDEFINED_VARIABLE"),
        ],
    )
    def test_codes(self, text, code):
        with pytest.raises(EvalError) as excinfo:
            value_of(text)
        assert excinfo.value.code == code


class TestAssignment:
    def test_assign_and_reuse(self):
        table = SymbolTable()
        assert run("x = 5", table) == (5.0, "x")
        assert run("x + 1", table) == (6.0, None)

    def test_chain_left_to_right(self):
        table = SymbolTable()
        assert run("a = 2, b = a + 3", table) == (5.0, "b")
        assert table["a"] == 2.0
        assert table["b"] == 5.0

    def test_symbol_types(self):
        table = SymbolTable()
        run("a = 2, r = 2*pi, b = a + 3", table)
        assert table.get_entry("a").type is SymbolType.NUMBER
        assert table.get_entry("r").type is SymbolType.NUMBER
        assert table.get_entry("b").type is SymbolType.EXPRESSION

    def test_reassignment_keeps_position(self):
        table = SymbolTable()
        run("a = 1, b = 2, a = 3", table)
        assert [entry.name for entry in table.list()] == ["a", "b"]
        assert table["a"] == 3.0

    def test_constant_assignment_rejected(self):
        with pytest.raises(EvalError) as excinfo:
            run("pi = 3", SymbolTable())
        assert excinfo.value.code == "CONSTANT_ASSIGNMENT"

    def test_function_name_assignment_rejected(self):
        with pytest.raises(EvalError) as excinfo:
            run("sin = 3", SymbolTable())
        assert excinfo.value.code == "RESERVED_NAME"

    def test_pure_expression_repeats_identically(self):
        table = SymbolTable()
        run("x = 2, y = x/3", table)
        before = table.snapshot()
        first = run("x^2 + sin(x)*y - ln(y)", table)
        second = run("x^2 + sin(x)*y - ln(y)", table)
        assert first == second
        assert first[1] is None
        assert table.snapshot() == before

    def test_failed_chain_leaves_table_untouched(self):
        table = SymbolTable()
        run("a = 1", table)
        with pytest.raises(EvalError):
            run("a = 10, b = 1/0", table)
        assert table["a"] == 1.0
        assert "b" not in table


class TestSymbolTable:
    def test_non_finite_is_undefined(self):
        table = SymbolTable()
        entry = table.set("z", math.inf)
        assert entry.type is SymbolType.UNDEFINED

    def test_clear(self):
        table = SymbolTable()
        table.set("x", 1.0)
        table.clear()
        assert len(table) == 0
        assert table.list() == []

    def test_snapshot_restore(self):
        table = SymbolTable()
        table.set("x", 1.0)
        snapshot = table.snapshot()
        table.set("x", 2.0)
        table.set("y", 3.0)
        table.restore(snapshot)
        assert dict(table) == {"x": 1.0}

    def test_entry_to_dict(self):
        table = SymbolTable()
        entry = table.set("k", 2.0, SymbolType.EXPRESSION)
        assert entry.to_dict() == {"name": "k", "value": 2.0, "type": "Expression"}

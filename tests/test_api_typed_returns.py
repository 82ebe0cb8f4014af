"""Test that API functions return typed dataclasses."""

import json
import threading

from mathsinterp_pkg.api import (
    Session,
    clear_symbols,
    default_session,
    differentiate,
    evaluate,
    get_symbols,
    sample_points,
    solve,
    tangent,
    validate_expression,
)
from mathsinterp_pkg.lexer import tokenize
from mathsinterp_pkg.symbols import SymbolEntry, SymbolType
from mathsinterp_pkg.types import DiffResult, EvalResult, PlotResult, SampleResult, SolveResult, TangentResult


class TestAPITypedReturns:
    """Test that all API functions return typed dataclasses."""

    def setup_method(self):
        clear_symbols()

    def test_evaluate_returns_eval_result(self):
        result = evaluate("2 + 2")
        assert isinstance(result, EvalResult)
        assert result.ok is True
        assert result.result == 4.0

    def test_evaluate_error_returns_eval_result(self):
        result = evaluate("2 $ 2")
        assert isinstance(result, EvalResult)
        assert result.ok is False
        assert result.code == "UNEXPECTED_CHARACTER"
        assert result.error is not None

    def test_solve_returns_solve_result(self):
        result = solve("x + 1 = 0")
        assert isinstance(result, SolveResult)
        assert result.ok is True
        assert result.variable == "x"
        assert result.solution == -1.0

    def test_solve_error_returns_solve_result(self):
        result = solve("x = x = 1")
        assert isinstance(result, SolveResult)
        assert result.ok is False
        assert result.code == "MULTIPLE_EQUALS"

    def test_differentiate_returns_diff_result(self):
        result = differentiate("x^2")
        assert isinstance(result, DiffResult)
        assert result.ok is True
        assert result.result == "2*x"
        assert result.variable == "x"
        assert result.latex == "2 x"

    def test_sample_points_returns_sample_result(self):
        result = sample_points("x^2", -2, 2, 1)
        assert isinstance(result, SampleResult)
        assert result.ok is True
        assert [tuple(p) for p in result.points] == [(-2, 4), (-1, 1), (0, 0), (1, 1), (2, 4)]
        assert result.inferred is False

    def test_tangent_returns_tangent_result(self):
        result = tangent("x^2", 3)
        assert isinstance(result, TangentResult)
        assert (result.slope, result.intercept) == (6.0, -9.0)

    def test_validate_expression_returns_tuple(self):
        assert validate_expression("x + 1") == (True, None)
        is_valid, error = validate_expression("(x + 1")
        assert is_valid is False
        assert "parenthes" in error.lower()

    def test_symbols_listing(self):
        evaluate("a = 2, b = a + 1")
        entries = get_symbols()
        assert all(isinstance(entry, SymbolEntry) for entry in entries)
        assert [(e.name, e.value, e.type) for e in entries] == [
            ("a", 2.0, SymbolType.NUMBER),
            ("b", 3.0, SymbolType.EXPRESSION),
        ]
        clear_symbols()
        assert get_symbols() == []

    def test_module_functions_share_default_session(self):
        evaluate("q = 7")
        assert default_session().evaluate("q").result == 7.0
        assert default_session() is default_session()
        clear_symbols()
        assert default_session().get_symbols() == []


class TestSession:
    def test_sessions_are_isolated(self):
        first, second = Session(), Session()
        first.evaluate("x = 1")
        assert second.evaluate("x").code == "UNDEFINED_VARIABLE"

    def test_clear_symbols_resets_tokenizer_cache(self):
        session = Session()
        session.evaluate("t = 1 + 2")
        assert tokenize.cache_info().currsize > 0
        session.clear_symbols()
        assert tokenize.cache_info().currsize == 0
        assert session.evaluate("t").code == "UNDEFINED_VARIABLE"

    def test_solve_does_not_bind(self):
        session = Session()
        session.solve("2*y = 8")
        assert session.get_symbols() == []

    def test_solve_uses_bindings(self):
        session = Session()
        session.evaluate("k = 3")
        assert session.solve("k*x = 12").solution == 4.0

    def test_plot_ascii(self):
        result = Session().plot("x^2", x_min=-2, x_max=2, step=0.5, ascii=True, tangent_at=1)
        assert isinstance(result, PlotResult)
        assert result.ok is True
        assert result.renderer == "ascii"
        assert "*" in result.output
        assert result.tangent == (2.0, -1.0)

    def test_inferred_sampling_reported(self):
        result = Session().sample_points("x - 3")
        assert result.inferred is True
        assert result.x_min < 3 < result.x_max

    def test_concurrent_assignments(self):
        session = Session()
        errors = []

        def worker(index):
            res = session.evaluate(f"v{index} = {index}, w{index} = v{index} * 2")
            if not res.ok or res.result != index * 2:
                errors.append(res)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert errors == []
        assert len(session.get_symbols()) == 32


class TestSerialization:
    def test_to_dict_is_json_ready(self):
        session = Session()
        for result in (
            session.evaluate("x = 2"),
            session.solve("2*y + 4 = 0"),
            session.differentiate("sin(x)"),
            session.sample_points("x", 0, 1, 0.5),
            session.tangent("x^2", 1),
            session.evaluate("1/0"),
        ):
            data = json.loads(json.dumps(result.to_dict()))
            assert data["ok"] is result.ok
            assert "type" in data

    def test_error_dict_has_code(self):
        data = Session().evaluate("1/0").to_dict()
        assert data == {"ok": False, "type": "value", "error": "Division by zero", "code": "DIVISION_BY_ZERO"}

"""Public API - returns structured result objects instead of raising.

Every operation runs against a ``Session``, which owns one SymbolTable.
The module-level functions use a process-wide default session; create a
``Session()`` for an isolated table (e.g., in tests).

Example:
    >>> from mathsinterp_pkg.api import Session
    >>> session = Session()
    >>> session.evaluate("x = 5").result
    5.0
    >>> session.evaluate("x + 1").result
    6.0
    >>> session.solve("2*y + 4 = 0").solution
    -2.0
    >>> session.differentiate("x^2").result
    '2*x'
"""

from __future__ import annotations

import threading
from typing import Any, Callable, TypeVar

from .calculus import derivative_text
from .config import VAR_NAME_RE
from .evaluator import execute
from .lexer import clear_caches
from .logging_config import get_logger
from .nodes import to_latex
from .parser import parse_expression, parse_statements
from .plotting import render_ascii, render_png, sample, tangent_line
from .solver import solve_linear
from .symbols import SymbolEntry, SymbolTable
from .types import (
    DiffResult,
    EvalResult,
    MathsError,
    PlotResult,
    SampleResult,
    SolveResult,
    TangentResult,
    ValidationError,
)

logger = get_logger("api")

R = TypeVar("R")


def _guarded(operation: str, result_cls: Callable[..., R], run: Callable[[], R]) -> R:
    """Run ``run`` and turn interpreter errors into an ``ok=False`` result."""
    try:
        return run()
    except MathsError as e:
        logger.debug("%s failed: [%s] %s", operation, e.code, e.message)
        return result_cls(ok=False, error=str(e), code=e.code)
    except RecursionError:
        return result_cls(ok=False, error="Expression too deeply nested", code="TOO_DEEP")
    except Exception as e:
        logger.error(f"Unexpected {operation} error: {e}", exc_info=True)
        return result_cls(ok=False, error=f"{operation.capitalize()} failed unexpectedly", code="INTERNAL_ERROR")


def _check_variable(variable: str) -> None:
    if not VAR_NAME_RE.match(variable):
        raise ValidationError(f"Invalid variable name '{variable}'", "INVALID_VARIABLE")


class Session:
    """One interpreter session: a symbol table plus the operations on it.

    Operations that read or write the table hold ``lock``, so a session can
    be shared between threads with at most one writer at a time.
    """

    def __init__(self, table: SymbolTable | None = None):
        self.table = table if table is not None else SymbolTable()
        self.lock = threading.RLock()

    def evaluate(self, expression: str) -> EvalResult:
        """Evaluate an expression, an assignment, or comma-chained statements.

        Args:
            expression: Input text (e.g., "2+3*4", "x = 5", "a = 2, b = a + 3")

        Returns:
            EvalResult with the value of the last statement; ``assigned`` names
            the variable it was bound to, if any
        """

        def run() -> EvalResult:
            statements = parse_statements(expression)
            with self.lock:
                value, target = execute(statements, self.table)
            return EvalResult(ok=True, result=value, assigned=target)

        return _guarded("evaluation", EvalResult, run)

    def get_symbols(self) -> list[SymbolEntry]:
        """Bindings as (name, value, type) in insertion order."""
        with self.lock:
            return self.table.list()

    def clear_symbols(self) -> None:
        """Drop every binding and reset the tokenizer cache."""
        with self.lock:
            self.table.clear()
            clear_caches()

    def solve(self, equation: str, variable: str | None = None) -> SolveResult:
        """Solve a single-unknown linear equation.

        Example:
            >>> Session().solve("0*x + 5 = 0").code
            'NO_SOLUTION'
        """

        def run() -> SolveResult:
            with self.lock:
                unknown, solution = solve_linear(equation, self.table, variable)
            return SolveResult(ok=True, variable=unknown, solution=solution)

        return _guarded("solve", SolveResult, run)

    def differentiate(self, expression: str, variable: str = "x") -> DiffResult:
        """Symbolic derivative, rendered as text (and LaTeX)."""

        def run() -> DiffResult:
            node = parse_expression(expression)
            text = derivative_text(node, variable)
            latex = to_latex(parse_expression(text))
            return DiffResult(ok=True, result=text, variable=variable, latex=latex)

        return _guarded("differentiation", DiffResult, run)

    def sample_points(
        self,
        expression: str,
        x_min: float | None = None,
        x_max: float | None = None,
        step: float | None = None,
        variable: str = "x",
    ) -> SampleResult:
        """Sample an expression over [x_min, x_max] (inferred when unusable)."""

        def run() -> SampleResult:
            _check_variable(variable)
            node = parse_expression(expression)
            with self.lock:
                points, domain = sample(node, self.table, x_min, x_max, step, variable)
            return SampleResult(
                ok=True,
                points=points,
                x_min=domain.x_min,
                x_max=domain.x_max,
                step=domain.step,
                inferred=domain.inferred,
            )

        return _guarded("sampling", SampleResult, run)

    def tangent(self, expression: str, x0: float, variable: str = "x") -> TangentResult:
        """Tangent line coefficients of an expression at ``x0``."""

        def run() -> TangentResult:
            _check_variable(variable)
            node = parse_expression(expression)
            with self.lock:
                slope, intercept = tangent_line(node, float(x0), self.table, variable)
            return TangentResult(ok=True, x0=float(x0), slope=slope, intercept=intercept)

        return _guarded("tangent", TangentResult, run)

    def plot(
        self,
        expression: str,
        x_min: float | None = None,
        x_max: float | None = None,
        step: float | None = None,
        tangent_at: float | None = None,
        ascii: bool = False,
        output_path: str | None = None,
        variable: str = "x",
    ) -> PlotResult:
        """Sample and render an expression as a PNG file or ASCII chart.

        Args:
            expression: Function expression (e.g., "x^2", "sin(x)")
            x_min, x_max, step: Sampling domain (inferred when unusable)
            tangent_at: Optional x0 at which to overlay the tangent line
            ascii: Return ASCII chart text instead of writing a PNG
            output_path: PNG destination (a temporary file when None)
            variable: Variable to plot against
        """

        def run() -> PlotResult:
            _check_variable(variable)
            node = parse_expression(expression)
            tangent = None
            with self.lock:
                points, domain = sample(node, self.table, x_min, x_max, step, variable)
                if tangent_at is not None:
                    tangent = tangent_line(node, float(tangent_at), self.table, variable)
            if ascii:
                output = render_ascii(points, domain.x_min, domain.x_max)
            else:
                output = render_png(node, points, output_path, tangent, tangent_at, variable)
            return PlotResult(
                ok=True,
                output=output,
                renderer="ascii" if ascii else "png",
                x_min=domain.x_min,
                x_max=domain.x_max,
                tangent=tangent,
            )

        return _guarded("plotting", PlotResult, run)


_DEFAULT_SESSION = Session()


def default_session() -> Session:
    """The process-wide session behind the module-level functions."""
    return _DEFAULT_SESSION


def evaluate(expression: str) -> EvalResult:
    """Evaluate an expression in the default session.

    Example:
        >>> from mathsinterp_pkg.api import evaluate
        >>> evaluate("2^3^2").result
        512.0
    """
    return default_session().evaluate(expression)


def get_symbols() -> list[SymbolEntry]:
    return default_session().get_symbols()


def clear_symbols() -> None:
    default_session().clear_symbols()


def solve(equation: str, variable: str | None = None) -> SolveResult:
    """Solve a linear equation in the default session.

    Example:
        >>> from mathsinterp_pkg.api import solve
        >>> solve("2*x+4=0").solution
        -2.0
    """
    return default_session().solve(equation, variable)


def differentiate(expression: str, variable: str = "x") -> DiffResult:
    return default_session().differentiate(expression, variable)


def sample_points(
    expression: str,
    x_min: float | None = None,
    x_max: float | None = None,
    step: float | None = None,
    variable: str = "x",
) -> SampleResult:
    return default_session().sample_points(expression, x_min, x_max, step, variable)


def tangent(expression: str, x0: float, variable: str = "x") -> TangentResult:
    return default_session().tangent(expression, x0, variable)


def plot(expression: str, **kwargs: Any) -> PlotResult:
    return default_session().plot(expression, **kwargs)


def validate_expression(expression: str) -> tuple[bool, str | None]:
    """Check that text parses, without evaluating it.

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_expression("2 + 2")
        (True, None)
        >>> validate_expression("2 $ 2")
        (False, "Unrecognized character '$' at position 2")
    """
    try:
        parse_statements(expression)
        return True, None
    except MathsError as e:
        return False, str(e)
    except RecursionError:
        return False, "Expression too deeply nested"

"""Type definitions: tokens, result dataclasses and the exception taxonomy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple


class TokenKind(Enum):
    """Closed set of token kinds produced by the lexer."""

    NUMBER = "number"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    FUNCTION = "function"
    EOF = "end of input"


@dataclass(frozen=True)
class Token:
    """Atomic lexical unit. ``value`` is a float for numbers, a str otherwise."""

    kind: TokenKind
    value: Any = None
    position: int = 0

    def describe(self) -> str:
        if self.kind is TokenKind.EOF:
            return "end of input"
        if self.kind is TokenKind.NUMBER:
            return f"number {self.value:g}"
        if self.kind in (TokenKind.IDENTIFIER, TokenKind.FUNCTION):
            return f"'{self.value}'"
        if self.kind is TokenKind.OPERATOR:
            return f"'{self.value}'"
        return f"'{self.kind.value}'"


class SamplePoint(NamedTuple):
    x: float
    y: float


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


@dataclass
class EvalResult:
    """Result of evaluating an expression or assignment."""

    ok: bool
    result: float | None = None
    assigned: str | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return _drop_none(
            {
                "ok": self.ok,
                "type": "value",
                "result": self.result,
                "assigned": self.assigned,
                "error": self.error,
                "code": self.code,
            }
        )

    def __repr__(self) -> str:
        if not self.ok:
            return f"EvalResult(ok=False, code={self.code!r}, error={self.error!r})"
        parts = [f"ok={self.ok}", f"result={self.result!r}"]
        if self.assigned is not None:
            parts.append(f"assigned={self.assigned!r}")
        return f"EvalResult({', '.join(parts)})"


@dataclass
class SolveResult:
    """Result of solving a linear equation.

    Failures keep the reason in ``code``: NO_EQUALS, MULTIPLE_EQUALS,
    NON_LINEAR, NO_SOLUTION, INFINITE_SOLUTIONS, MULTIPLE_UNKNOWNS.
    """

    ok: bool
    variable: str | None = None
    solution: float | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return _drop_none(
            {
                "ok": self.ok,
                "type": "equation",
                "variable": self.variable,
                "solution": self.solution,
                "error": self.error,
                "code": self.code,
            }
        )

    def __repr__(self) -> str:
        if not self.ok:
            return f"SolveResult(ok=False, code={self.code!r}, error={self.error!r})"
        return f"SolveResult(ok=True, variable={self.variable!r}, solution={self.solution!r})"


@dataclass
class DiffResult:
    """Result of symbolic differentiation."""

    ok: bool
    result: str | None = None
    variable: str | None = None
    latex: str | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return _drop_none(
            {
                "ok": self.ok,
                "type": "derivative",
                "result": self.result,
                "variable": self.variable,
                "latex": self.latex,
                "error": self.error,
                "code": self.code,
            }
        )


@dataclass
class SampleResult:
    """Sampled points of an expression over a domain."""

    ok: bool
    points: list[SamplePoint] | None = None
    x_min: float | None = None
    x_max: float | None = None
    step: float | None = None
    inferred: bool = False
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return _drop_none(
            {
                "ok": self.ok,
                "type": "samples",
                "points": [list(p) for p in self.points] if self.points is not None else None,
                "x_min": self.x_min,
                "x_max": self.x_max,
                "step": self.step,
                "inferred": self.inferred if self.ok else None,
                "error": self.error,
                "code": self.code,
            }
        )

    def __repr__(self) -> str:
        if not self.ok:
            return f"SampleResult(ok=False, code={self.code!r}, error={self.error!r})"
        count = len(self.points or [])
        return (
            f"SampleResult(ok=True, points=<{count}>, x_min={self.x_min!r}, "
            f"x_max={self.x_max!r}, step={self.step!r}, inferred={self.inferred!r})"
        )


@dataclass
class TangentResult:
    """Slope and intercept of the tangent line at ``x0``."""

    ok: bool
    x0: float | None = None
    slope: float | None = None
    intercept: float | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return _drop_none(
            {
                "ok": self.ok,
                "type": "tangent",
                "x0": self.x0,
                "slope": self.slope,
                "intercept": self.intercept,
                "error": self.error,
                "code": self.code,
            }
        )


@dataclass
class PlotResult:
    """Rendered plot: a PNG path (renderer "png") or ASCII chart text (renderer "ascii")."""

    ok: bool
    output: str | None = None
    renderer: str | None = None
    x_min: float | None = None
    x_max: float | None = None
    tangent: tuple[float, float] | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return _drop_none(
            {
                "ok": self.ok,
                "type": "plot",
                "output": self.output,
                "renderer": self.renderer,
                "x_min": self.x_min,
                "x_max": self.x_max,
                "tangent": list(self.tangent) if self.tangent is not None else None,
                "error": self.error,
                "code": self.code,
            }
        )


class MathsError(Exception):
    """Base class for every recoverable interpreter error."""

    default_code = "ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ValidationError(MathsError):
    """Raised when input validation fails."""

    default_code = "VALIDATION_ERROR"


class LexError(MathsError):
    """Raised when the input contains a character the lexer does not accept."""

    default_code = "UNEXPECTED_CHARACTER"

    def __init__(self, message: str, position: int, code: str | None = None):
        self.position = position
        super().__init__(message, code)


class ParseError(MathsError):
    """Raised when the token sequence violates the grammar."""

    default_code = "PARSE_ERROR"

    def __init__(self, message: str, code: str | None = None, position: int | None = None):
        self.position = position
        super().__init__(message, code)


class EvalError(MathsError):
    """Raised when evaluation fails (undefined variable, division by zero, domain)."""

    default_code = "EVAL_ERROR"


class SolveError(MathsError):
    """Raised when an equation cannot be solved as a single-unknown linear equation."""

    default_code = "SOLVER_ERROR"


class DifferentiationError(MathsError):
    """Raised when a construct has no derivative rule."""

    default_code = "UNSUPPORTED_CONSTRUCT"

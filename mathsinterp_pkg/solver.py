"""Single-unknown linear equation solver.

The equation ``lhs = rhs`` is rewritten as ``lhs - rhs`` and reduced
structurally to ``a*x + b`` by coefficient collection. Anything that would
need a degree >= 2 term in the unknown, or that puts the unknown inside a
function argument, an exponent or a divisor, is rejected as non-linear.

Unknown selection: an explicit ``variable`` wins. Otherwise the unknown is the
one variable without a binding in the symbol table (``pi``/``e`` excluded);
if every variable is bound and the equation mentions exactly one name, that
name is the unknown and its stored value is ignored. Solving never writes to
the symbol table.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import NamedTuple

from .config import BUILTIN_CONSTANTS, NUMERIC_TOLERANCE, VAR_NAME_RE
from .evaluator import apply_binary, evaluate, power
from .lexer import count_operator, tokenize
from .logging_config import get_logger
from .nodes import BinaryOp, FunctionCall, Node, UnaryOp, Variable, depends_on, left_spine, variables
from .parser import Parser
from .types import EvalError, SolveError, Token, TokenKind

logger = get_logger("solver")


class Linear(NamedTuple):
    """``a*x + b``; ``depends`` records whether the unknown occurs structurally.

    ``scale_a`` and ``scale_b`` are the largest magnitudes among the terms
    summed into ``a`` and ``b``. A coefficient counts as cancelled when it is
    within NUMERIC_TOLERANCE of zero relative to its scale.
    """

    a: float
    b: float
    depends: bool
    scale_a: float = 0.0
    scale_b: float = 0.0


def _constant(value: float) -> Linear:
    return Linear(0.0, value, False, 0.0, abs(value))


def _times(linear: Linear, factor: float) -> Linear:
    return Linear(
        linear.a * factor,
        linear.b * factor,
        True,
        linear.scale_a * abs(factor),
        linear.scale_b * abs(factor),
    )


def _non_linear(message: str) -> SolveError:
    return SolveError(message, "NON_LINEAR")


def _combine(op: str, left: Linear, right: Linear, unknown: str | None) -> Linear:
    if op in ("+", "-"):
        return Linear(
            apply_binary(op, left.a, right.a),
            apply_binary(op, left.b, right.b),
            left.depends or right.depends,
            max(left.scale_a, right.scale_a),
            max(left.scale_b, right.scale_b),
        )
    if not (left.depends or right.depends):
        return _constant(apply_binary(op, left.b, right.b))
    if op == "*":
        if left.depends and right.depends:
            raise _non_linear(f"Product of terms in '{unknown}' makes the equation non-linear")
        if left.depends:
            return _times(left, right.b)
        return _times(right, left.b)
    if op == "/":
        if right.depends:
            raise _non_linear(f"'{unknown}' appears in a divisor, equation is not linear")
        divisor = right.b
        if divisor == 0:
            raise EvalError("Division by zero", "DIVISION_BY_ZERO")
        return Linear(
            left.a / divisor,
            left.b / divisor,
            True,
            left.scale_a / abs(divisor),
            left.scale_b / abs(divisor),
        )
    if op == "^":
        if right.depends:
            raise _non_linear(f"'{unknown}' appears in an exponent, equation is not linear")
        exponent = right.b
        if exponent == 1:
            return left
        if exponent == 0:
            return _constant(1.0)
        if left.a == 0:
            # The unknown cancelled out inside the base, so it is a constant
            return _constant(power(left.b, exponent))
        raise _non_linear(f"'{unknown}' raised to the power {exponent:g}, equation is not linear")
    raise ValueError(f"Unknown binary operator: {op}")


def collect_linear(node: Node, unknown: str | None, env: Mapping[str, float]) -> Linear:
    """Reduce ``node`` to ``a*unknown + b``.

    Sub-trees that do not mention the unknown are evaluated numerically
    against ``env``. Chains of binary operators are folded left to right
    with a loop, so long sums do not recurse once per term.

    Raises:
        SolveError: NON_LINEAR when the tree is not linear in ``unknown``
        EvalError: When a constant sub-tree fails to evaluate
    """
    if isinstance(node, BinaryOp):
        head, levels = left_spine(node)
        result = collect_linear(head, unknown, env)
        for level in levels:
            result = _combine(level.op, result, collect_linear(level.right, unknown, env), unknown)
        return result
    if not depends_on(node, unknown):
        return _constant(evaluate(node, env))
    if isinstance(node, Variable):
        return Linear(1.0, 0.0, True, 1.0, 0.0)
    if isinstance(node, UnaryOp):
        inner = collect_linear(node.operand, unknown, env)
        return inner._replace(a=-inner.a, b=-inner.b)
    if isinstance(node, FunctionCall):
        raise _non_linear(f"'{unknown}' appears inside {node.name}(), equation is not linear")
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def _split_equation(tokens: tuple[Token, ...]) -> tuple[tuple[Token, ...], tuple[Token, ...]]:
    for index, tok in enumerate(tokens):
        if tok.kind is TokenKind.OPERATOR and tok.value == "=":
            eof = Token(TokenKind.EOF, None, tok.position)
            return tokens[:index] + (eof,), tokens[index + 1 :]
    raise SolveError("Equation must contain '='", "NO_EQUALS")


def choose_unknown(node: Node, env: Mapping[str, float], variable: str | None = None) -> str | None:
    """Pick the unknown of an equation tree (see module docstring)."""
    if variable is not None:
        if not VAR_NAME_RE.match(variable):
            raise SolveError(f"Invalid variable name '{variable}'", "INVALID_VARIABLE")
        return variable
    names = [name for name in variables(node) if name not in BUILTIN_CONSTANTS]
    unbound = [name for name in names if name not in env]
    if len(unbound) > 1:
        raise SolveError(
            f"More than one unknown ({', '.join(unbound)}); only one is supported",
            "MULTIPLE_UNKNOWNS",
        )
    if unbound:
        return unbound[0]
    if len(names) == 1:
        return names[0]
    if len(names) > 1:
        raise SolveError(
            f"Cannot tell which variable to solve for ({', '.join(names)})",
            "MULTIPLE_UNKNOWNS",
        )
    return None


def solve_linear(equation: str, env: Mapping[str, float], variable: str | None = None) -> tuple[str | None, float]:
    """Solve a linear equation in one unknown.

    Args:
        equation: Equation text with exactly one '=' (e.g., "2*x+4=0")
        env: Values for the other variables (usually the session SymbolTable)
        variable: Optional unknown to solve for

    Returns:
        Tuple (unknown name, solution)

    Raises:
        SolveError: NO_EQUALS, MULTIPLE_EQUALS, NON_LINEAR, NO_SOLUTION,
            INFINITE_SOLUTIONS, MULTIPLE_UNKNOWNS
        LexError, ParseError, EvalError: When either side is malformed
    """
    tokens = tokenize(equation)
    equals = count_operator(tokens, "=")
    if equals == 0:
        raise SolveError("Equation must contain '='", "NO_EQUALS")
    if equals > 1:
        raise SolveError("Invalid equation format: more than one '='", "MULTIPLE_EQUALS")

    left_tokens, right_tokens = _split_equation(tokens)
    lhs = Parser(left_tokens).parse_expression()
    rhs = Parser(right_tokens).parse_expression()
    combined = BinaryOp("-", lhs, rhs)

    unknown = choose_unknown(combined, env, variable)
    # unknown is None when the equation mentions no variables; both sides are then constants
    linear = collect_linear(combined, unknown, env)
    a, b = linear.a, linear.b
    logger.debug(
        "solve %r: a=%r b=%r scales=(%r, %r) unknown=%r",
        equation, a, b, linear.scale_a, linear.scale_b, unknown,
    )

    if abs(a) <= NUMERIC_TOLERANCE * linear.scale_a:
        if abs(b) <= NUMERIC_TOLERANCE * linear.scale_b:
            raise SolveError("Equation holds for every value (infinite solutions)", "INFINITE_SOLUTIONS")
        raise SolveError("Equation has no solution", "NO_SOLUTION")
    return unknown, -b / a + 0.0

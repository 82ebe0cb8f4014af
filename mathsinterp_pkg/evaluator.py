"""Numeric evaluation of expression trees against a variable environment."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Callable

from .config import BUILTIN_CONSTANTS, RESERVED_FUNCTIONS
from .logging_config import get_logger
from .nodes import BinaryOp, FunctionCall, Literal, Node, UnaryOp, Variable, left_spine, variables
from .parser import Statement
from .symbols import SymbolTable, SymbolType
from .types import EvalError

logger = get_logger("evaluator")


def _domain_error(message: str) -> EvalError:
    return EvalError(message, "DOMAIN_ERROR")


def _sqrt(value: float) -> float:
    if value < 0:
        raise _domain_error(f"sqrt is undefined for negative numbers ({value:g})")
    return math.sqrt(value)


def _ln(value: float) -> float:
    if value <= 0:
        raise _domain_error(f"ln is undefined for values <= 0 ({value:g})")
    return math.log(value)


def _log10(value: float) -> float:
    if value <= 0:
        raise _domain_error(f"log is undefined for values <= 0 ({value:g})")
    return math.log10(value)


def _arc(name: str, fn: Callable[[float], float]) -> Callable[[float], float]:
    def checked(value: float) -> float:
        if not -1.0 <= value <= 1.0:
            raise _domain_error(f"{name} is undefined outside [-1, 1] ({value:g})")
        return fn(value)

    return checked


FUNCTIONS: dict[str, Callable[[float], float]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": _arc("asin", math.asin),
    "acos": _arc("acos", math.acos),
    "atan": math.atan,
    "sqrt": _sqrt,
    "ln": _ln,
    "log": _log10,
    "exp": math.exp,
    "abs": abs,
}


def power(base: float, exponent: float) -> float:
    """General exponentiation, failing where the real result is undefined."""
    if base == 0 and exponent < 0:
        raise EvalError("Division by zero (0 raised to a negative power)", "DIVISION_BY_ZERO")
    if base < 0 and not float(exponent).is_integer():
        raise _domain_error(
            f"Negative base {base:g} with fractional exponent {exponent:g} has no real value"
        )
    try:
        return math.pow(base, exponent)
    except OverflowError:
        raise EvalError("Numeric overflow in exponentiation", "OVERFLOW") from None


def apply_binary(op: str, left: float, right: float) -> float:
    if op == "+":
        result = left + right
    elif op == "-":
        result = left - right
    elif op == "*":
        result = left * right
    elif op == "/":
        if right == 0:
            raise EvalError("Division by zero", "DIVISION_BY_ZERO")
        result = left / right
    elif op == "^":
        result = power(left, right)
    else:
        raise ValueError(f"Unknown binary operator: {op}")
    if math.isinf(result) and math.isfinite(left) and math.isfinite(right):
        raise EvalError(f"Numeric overflow in '{op}'", "OVERFLOW")
    return result


def lookup(name: str, env: Mapping[str, float]) -> float:
    if name in env:
        return env[name]
    if name in BUILTIN_CONSTANTS:
        return BUILTIN_CONSTANTS[name]
    raise EvalError(f"Undefined variable '{name}'", "UNDEFINED_VARIABLE")


def evaluate(node: Node, env: Mapping[str, float]) -> float:
    """Evaluate a tree to a float.

    Args:
        node: Expression tree
        env: Variable values (a SymbolTable, a dict, or a ChainMap overlay)

    Raises:
        EvalError: Undefined variable, division by zero, domain error or overflow
    """
    if isinstance(node, Literal):
        return float(node.value)
    if isinstance(node, Variable):
        return lookup(node.name, env)
    if isinstance(node, UnaryOp):
        if node.op != "-":
            raise ValueError(f"Unknown unary operator: {node.op}")
        return -evaluate(node.operand, env)
    if isinstance(node, BinaryOp):
        head, levels = left_spine(node)
        value = evaluate(head, env)
        for level in levels:
            value = apply_binary(level.op, value, evaluate(level.right, env))
        return value
    if isinstance(node, FunctionCall):
        argument = evaluate(node.argument, env)
        try:
            return float(FUNCTIONS[node.name](argument))
        except OverflowError:
            raise EvalError(f"Numeric overflow in {node.name}()", "OVERFLOW") from None
        except ValueError as e:
            raise _domain_error(f"{node.name}({argument:g}) is undefined: {e}") from None
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def _binding_type(expression: Node) -> SymbolType:
    referenced = [name for name in variables(expression) if name not in BUILTIN_CONSTANTS]
    return SymbolType.EXPRESSION if referenced else SymbolType.NUMBER


def _check_target(name: str) -> None:
    if name in BUILTIN_CONSTANTS:
        raise EvalError(f"Cannot assign to constant '{name}'", "CONSTANT_ASSIGNMENT")
    if name in RESERVED_FUNCTIONS:
        raise EvalError(f"Cannot assign to function name '{name}'", "RESERVED_NAME")


def execute(statements: list[Statement], table: SymbolTable) -> tuple[float, str | None]:
    """Run statements left to right, binding assignments in ``table``.

    The run is atomic: when any statement fails the table is restored to its
    state before the call and the error is re-raised.

    Returns:
        (value of the last statement, name it was assigned to or None)
    """
    snapshot = table.snapshot()
    value = math.nan
    target = None
    try:
        for statement in statements:
            target = statement.target
            if target is not None:
                _check_target(target)
            value = evaluate(statement.expression, table)
            if target is not None:
                table.set(target, value, _binding_type(statement.expression))
    except Exception:
        table.restore(snapshot)
        raise
    logger.debug("executed %d statement(s) -> %r", len(statements), value)
    return value, target

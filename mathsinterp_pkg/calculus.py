"""Symbolic differentiation and display simplification."""

from __future__ import annotations

import math
from typing import Callable

from .config import VAR_NAME_RE
from .evaluator import apply_binary
from .logging_config import get_logger
from .nodes import (
    BinaryOp,
    FunctionCall,
    Literal,
    Node,
    UnaryOp,
    Variable,
    clone,
    depends_on,
    left_spine,
    same_tree,
    to_string,
)
from .types import DifferentiationError, EvalError

logger = get_logger("calculus")


def _num(value: float) -> Literal:
    return Literal(float(value))


def _add(left: Node, right: Node) -> BinaryOp:
    return BinaryOp("+", left, right)


def _sub(left: Node, right: Node) -> BinaryOp:
    return BinaryOp("-", left, right)


def _mul(left: Node, right: Node) -> BinaryOp:
    return BinaryOp("*", left, right)


def _div(left: Node, right: Node) -> BinaryOp:
    return BinaryOp("/", left, right)


def _pow(left: Node, right: Node) -> BinaryOp:
    return BinaryOp("^", left, right)


def _call(name: str, argument: Node) -> FunctionCall:
    return FunctionCall(name, argument)


def _neg(operand: Node) -> UnaryOp:
    return UnaryOp("-", operand)


# d/du f(u), built from a fresh copy of u each time
DERIVATIVE_TABLE: dict[str, Callable[[Node], Node]] = {
    "sin": lambda u: _call("cos", u),
    "cos": lambda u: _neg(_call("sin", u)),
    "tan": lambda u: _div(_num(1), _pow(_call("cos", u), _num(2))),
    "asin": lambda u: _div(_num(1), _call("sqrt", _sub(_num(1), _pow(u, _num(2))))),
    "acos": lambda u: _neg(_div(_num(1), _call("sqrt", _sub(_num(1), _pow(u, _num(2)))))),
    "atan": lambda u: _div(_num(1), _add(_num(1), _pow(u, _num(2)))),
    "sqrt": lambda u: _div(_num(1), _mul(_num(2), _call("sqrt", u))),
    "ln": lambda u: _div(_num(1), u),
    "log": lambda u: _div(_num(1), _mul(u, _call("ln", _num(10)))),
    "exp": lambda u: _call("exp", u),
    "abs": lambda u: _div(u, _call("abs", clone(u))),
}


def _derive_binary(
    op: str, u: Node, v: Node, du: Node, dv: Node, u_varies: bool, v_varies: bool
) -> Node:
    """Derivative of ``u op v`` from the derivatives of its operands.

    ``u_varies``/``v_varies`` say whether an operand mentions the variable; a
    constant operand takes the constant-multiple or exponential form so no
    ``0*u`` terms are produced.
    """
    if not (u_varies or v_varies):
        return _num(0)
    if op in ("+", "-"):
        return BinaryOp(op, du, dv)
    if op == "*":
        if not u_varies:
            return _mul(clone(u), dv)
        if not v_varies:
            return _mul(du, clone(v))
        return _add(_mul(du, clone(v)), _mul(clone(u), dv))
    if op == "/":
        if not v_varies:
            return _div(du, clone(v))
        if not u_varies:
            return _neg(_div(_mul(clone(u), dv), _pow(clone(v), _num(2))))
        numerator = _sub(_mul(du, clone(v)), _mul(clone(u), dv))
        return _div(numerator, _pow(clone(v), _num(2)))
    if op == "^":
        if not v_varies:
            return _mul(_mul(clone(v), _pow(clone(u), _sub(clone(v), _num(1)))), du)
        if not u_varies:
            return _mul(_mul(_pow(clone(u), clone(v)), _call("ln", clone(u))), dv)
        return _mul(
            _pow(clone(u), clone(v)),
            _add(
                _mul(dv, _call("ln", clone(u))),
                _mul(clone(v), _div(du, clone(u))),
            ),
        )
    raise DifferentiationError(f"No derivative rule for operator '{op}'")


def derive(node: Node, variable: str = "x") -> Node:
    """Differentiate a tree with respect to ``variable``.

    Rules: anything free of ``variable`` -> 0, linearity, product rule,
    quotient rule ``(u'v - uv')/v^2``, power rule ``n*u^(n-1)*u'`` for an
    exponent free of ``variable``, ``a^v*ln(a)*v'`` for a constant base,
    logarithmic differentiation ``u^v*(v'*ln(u) + v*u'/u)`` otherwise, and the
    chain rule over DERIVATIVE_TABLE for elementary functions. The result is
    not simplified.

    Raises:
        DifferentiationError: For a node kind or function with no rule
    """
    if isinstance(node, BinaryOp):
        head, levels = left_spine(node)
        derivative = derive(head, variable)
        varies = depends_on(head, variable)
        for level in levels:
            right_varies = depends_on(level.right, variable)
            derivative = _derive_binary(
                level.op,
                level.left,
                level.right,
                derivative,
                derive(level.right, variable),
                varies,
                right_varies,
            )
            varies = varies or right_varies
        return derivative
    if isinstance(node, Literal):
        return _num(0)
    if isinstance(node, Variable):
        return _num(1 if node.name == variable else 0)
    if not isinstance(node, (UnaryOp, FunctionCall)):
        raise DifferentiationError(f"Unsupported construct: {type(node).__name__}")
    if not depends_on(node, variable):
        return _num(0)
    if isinstance(node, UnaryOp):
        return _neg(derive(node.operand, variable))
    rule = DERIVATIVE_TABLE.get(node.name)
    if rule is None:
        raise DifferentiationError(f"No derivative rule for function '{node.name}'")
    return _mul(rule(clone(node.argument)), derive(node.argument, variable))


def _is_value(node: Node, value: float) -> bool:
    return isinstance(node, Literal) and node.value == value


def _is_leaf(node: Node) -> bool:
    # Literals and variables evaluate without error for finite variable values
    return isinstance(node, (Literal, Variable))


def _fold(op: str, left: float, right: float) -> Node | None:
    try:
        value = apply_binary(op, left, right)
    except EvalError:
        return None
    return _num(value) if math.isfinite(value) else None


def _simplify_binary(op: str, left: Node, right: Node) -> Node:
    if isinstance(left, Literal) and isinstance(right, Literal):
        folded = _fold(op, left.value, right.value)
        if folded is not None:
            return folded
    if op == "+":
        if _is_value(left, 0):
            return right
        if _is_value(right, 0):
            return left
        if isinstance(right, UnaryOp):
            return _sub(left, right.operand)
        if isinstance(right, Literal) and right.value < 0:
            return _sub(left, _num(-right.value))
    elif op == "-":
        if _is_value(right, 0):
            return left
        if _is_value(left, 0):
            return _neg(right)
        if isinstance(right, UnaryOp):
            return _add(left, right.operand)
        if isinstance(right, Literal) and right.value < 0:
            return _add(left, _num(-right.value))
    elif op == "*":
        # 0*u drops u, so u must not be able to fail
        if (_is_value(left, 0) and _is_leaf(right)) or (_is_value(right, 0) and _is_leaf(left)):
            return _num(0)
        if _is_value(left, 1):
            return right
        if _is_value(right, 1):
            return left
        if _is_value(left, -1):
            return _neg(right)
    elif op == "/":
        if _is_value(right, 1):
            return left
    elif op == "^":
        if _is_value(right, 1):
            return left
        if (_is_value(right, 0) and _is_leaf(left)) or (_is_value(left, 1) and _is_leaf(right)):
            return _num(1)
    return BinaryOp(op, left, right)


def _simplify_once(node: Node) -> Node:
    if isinstance(node, (Literal, Variable)):
        return node
    if isinstance(node, UnaryOp):
        operand = _simplify_once(node.operand)
        if isinstance(operand, Literal):
            return _num(-operand.value)
        if isinstance(operand, UnaryOp) and operand.op == "-":
            return operand.operand
        return UnaryOp(node.op, operand)
    if isinstance(node, FunctionCall):
        return FunctionCall(node.name, _simplify_once(node.argument))
    if isinstance(node, BinaryOp):
        head, levels = left_spine(node)
        result = _simplify_once(head)
        for level in levels:
            result = _simplify_binary(level.op, result, _simplify_once(level.right))
        return result
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def simplify(node: Node) -> Node:
    """Display simplification, applied to a fixpoint (so it is idempotent).

    Rewrites are local (``0+u``, ``u*1``, ``u^1``, ``--u``, literal folding,
    ...). For every assignment of finite values to its variables the
    simplified tree evaluates to the same number as the original, or fails
    the same way: ``0*u`` and ``u^0`` only collapse when ``u`` is a literal
    or a variable, and literal folds that would fail are left in place.
    """
    current = node
    while True:
        simplified = _simplify_once(current)
        if same_tree(simplified, current):
            return simplified
        current = simplified


def derivative_text(node: Node, variable: str = "x") -> str:
    """Derivative of ``node`` rendered for display."""
    if not VAR_NAME_RE.match(variable):
        raise DifferentiationError(f"Invalid variable name '{variable}'", "INVALID_VARIABLE")
    result = to_string(simplify(derive(node, variable)))
    logger.debug("d/d%s %s = %s", variable, to_string(node), result)
    return result

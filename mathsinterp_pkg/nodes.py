"""Expression tree node types and their text/SymPy renderings.

Nodes are frozen dataclasses; every parent owns its children and trees are
never shared or cyclic. Consumers dispatch on the closed set of node kinds
with ``isinstance`` and fail loudly on anything else.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Iterator, Union

import numpy as np
import sympy as sp

from .config import BUILTIN_CONSTANTS


@dataclass(frozen=True)
class Literal:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class FunctionCall:
    name: str
    argument: "Node"


Node = Union[Literal, Variable, UnaryOp, BinaryOp, FunctionCall]

# Binding strength used to decide where parentheses are needed
_ADDITIVE = 1
_MULTIPLICATIVE = 2
_UNARY = 3
_POWER = 4
_ATOM = 5

_BINARY_PRECEDENCE = {
    "+": _ADDITIVE,
    "-": _ADDITIVE,
    "*": _MULTIPLICATIVE,
    "/": _MULTIPLICATIVE,
    "^": _POWER,
}


def format_literal(value: float) -> str:
    """Render a float the lexer can read back (positional, shortest round-trip)."""
    if float(value).is_integer() and abs(value) < 1e16:
        return str(int(value))
    return np.format_float_positional(value, trim="-")


def _precedence(node: Node) -> int:
    if isinstance(node, Literal):
        return _UNARY if node.value < 0 else _ATOM
    if isinstance(node, (Variable, FunctionCall)):
        return _ATOM
    if isinstance(node, UnaryOp):
        return _UNARY
    if isinstance(node, BinaryOp):
        return _BINARY_PRECEDENCE[node.op]
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def left_spine(node: Node) -> tuple[Node, list[BinaryOp]]:
    """Split a tree into its leftmost non-binary node and the BinaryOps above it.

    The operators come innermost first, so a consumer can fold over a long
    ``a + b + c + ...`` chain with a loop instead of recursing once per term.
    Recursion is then only needed for right operands, unary operands and
    function arguments, whose nesting the parser bounds.
    """
    levels = []
    while isinstance(node, BinaryOp):
        levels.append(node)
        node = node.left
    levels.reverse()
    return node, levels


def _wrap(node: Node, parenthesize: bool) -> str:
    text = to_string(node)
    return f"({text})" if parenthesize else text


def _join(node: BinaryOp, left: str) -> str:
    if node.op == "^":
        if _precedence(node.left) < _ATOM:
            left = f"({left})"
        right = _wrap(node.right, _precedence(node.right) < _UNARY)
        return f"{left}^{right}"
    prec = _BINARY_PRECEDENCE[node.op]
    if _precedence(node.left) < prec:
        left = f"({left})"
    right = _wrap(node.right, _precedence(node.right) <= prec)
    if prec == _ADDITIVE:
        return f"{left} {node.op} {right}"
    return f"{left}{node.op}{right}"


def to_string(node: Node) -> str:
    """Render a tree as text that parses back into an equivalent tree.

    Examples:
        >>> to_string(BinaryOp("*", Literal(2.0), Variable("x")))
        '2*x'
    """
    if isinstance(node, Literal):
        return format_literal(node.value)
    if isinstance(node, Variable):
        return node.name
    if isinstance(node, FunctionCall):
        return f"{node.name}({to_string(node.argument)})"
    if isinstance(node, UnaryOp):
        return node.op + _wrap(node.operand, _precedence(node.operand) < _ATOM)
    if isinstance(node, BinaryOp):
        head, levels = left_spine(node)
        text = to_string(head)
        for level in levels:
            text = _join(level, text)
        return text
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def clone(node: Node) -> Node:
    """Deep copy, so a sub-tree can be placed under a second parent."""
    if isinstance(node, Literal):
        return Literal(node.value)
    if isinstance(node, Variable):
        return Variable(node.name)
    if isinstance(node, UnaryOp):
        return UnaryOp(node.op, clone(node.operand))
    if isinstance(node, BinaryOp):
        head, levels = left_spine(node)
        copy = clone(head)
        for level in levels:
            copy = BinaryOp(level.op, copy, clone(level.right))
        return copy
    if isinstance(node, FunctionCall):
        return FunctionCall(node.name, clone(node.argument))
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def walk(node: Node) -> Iterator[Node]:
    """Yield every node of the tree, parents before children, left to right."""
    pending = [node]
    while pending:
        current = pending.pop()
        yield current
        if isinstance(current, UnaryOp):
            pending.append(current.operand)
        elif isinstance(current, BinaryOp):
            pending.append(current.right)
            pending.append(current.left)
        elif isinstance(current, FunctionCall):
            pending.append(current.argument)


def same_tree(first: Node, second: Node) -> bool:
    """Structural equality without recursion (``==`` on nodes recurses)."""
    pending = [(first, second)]
    while pending:
        a, b = pending.pop()
        if type(a) is not type(b):
            return False
        if isinstance(a, BinaryOp):
            if a.op != b.op:
                return False
            pending.append((a.right, b.right))
            pending.append((a.left, b.left))
        elif isinstance(a, UnaryOp):
            if a.op != b.op:
                return False
            pending.append((a.operand, b.operand))
        elif isinstance(a, FunctionCall):
            if a.name != b.name:
                return False
            pending.append((a.argument, b.argument))
        elif a != b:
            return False
    return True


def variables(node: Node) -> list[str]:
    """Distinct variable names in order of first appearance."""
    seen: dict[str, None] = {}
    for child in walk(node):
        if isinstance(child, Variable):
            seen.setdefault(child.name, None)
    return list(seen)


def depends_on(node: Node, name: str | None) -> bool:
    return any(isinstance(child, Variable) and child.name == name for child in walk(node))


_SYMPY_FUNCTIONS = {
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "asin": sp.asin,
    "acos": sp.acos,
    "atan": sp.atan,
    "sqrt": sp.sqrt,
    "ln": sp.log,
    "log": lambda arg: sp.log(arg, 10),
    "exp": sp.exp,
    "abs": sp.Abs,
}

_SYMPY_CONSTANTS = {"pi": sp.pi, "e": sp.E}

_SYMPY_OPERATORS = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "^": operator.pow,
}


def to_sympy(node: Node, constants: bool = True) -> sp.Basic:
    """Convert a tree to a SymPy expression (used for LaTeX display and checks).

    Args:
        node: Tree to convert
        constants: Map unbound ``pi``/``e`` to SymPy's constants

    Returns:
        Equivalent SymPy expression
    """
    if isinstance(node, Literal):
        if float(node.value).is_integer():
            return sp.Integer(int(node.value))
        return sp.Float(node.value)
    if isinstance(node, Variable):
        if constants and node.name in BUILTIN_CONSTANTS:
            return _SYMPY_CONSTANTS[node.name]
        return sp.Symbol(node.name)
    if isinstance(node, UnaryOp):
        return -to_sympy(node.operand, constants)
    if isinstance(node, FunctionCall):
        return _SYMPY_FUNCTIONS[node.name](to_sympy(node.argument, constants))
    if isinstance(node, BinaryOp):
        head, levels = left_spine(node)
        result = to_sympy(head, constants)
        for level in levels:
            combine = _SYMPY_OPERATORS.get(level.op)
            if combine is None:
                raise ValueError(f"Unknown binary operator: {level.op}")
            result = combine(result, to_sympy(level.right, constants))
        return result
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def to_latex(node: Node) -> str:
    return sp.latex(to_sympy(node))

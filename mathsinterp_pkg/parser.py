"""Recursive-descent parser and input/result formatting helpers.

Grammar, lowest to highest precedence::

    assignment := IDENTIFIER '=' expr | expr
    expr       := term (('+' | '-') term)*
    term       := power (('*' | '/') power)*
    power      := unary ('^' power)?            right associative
    unary      := ('-')? primary
    primary    := NUMBER | IDENTIFIER | FUNCTION '(' expr ')' | '(' expr ')'

Note that unary minus binds tighter than ``^``: ``-2^2`` is ``(-2)^2``.
Statements may be chained with top-level commas (``a = 2, b = a + 3``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .config import MAX_EXPRESSION_DEPTH, OUTPUT_PRECISION
from .lexer import tokenize
from .nodes import BinaryOp, FunctionCall, Literal, Node, UnaryOp, Variable
from .types import ParseError, Token, TokenKind


@dataclass(frozen=True)
class Statement:
    """A parsed input line: an expression, optionally assigned to ``target``."""

    expression: Node
    target: str | None = None


class Parser:
    """Builds an expression tree from a token sequence ending with EOF."""

    def __init__(self, tokens: tuple[Token, ...]):
        if not tokens or tokens[-1].kind is not TokenKind.EOF:
            tokens = tuple(tokens) + (Token(TokenKind.EOF, None, _end_position(tokens)),)
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind is not TokenKind.EOF:
            self.pos += 1
        return token

    def _at_operator(self, *ops: str) -> bool:
        tok = self.current
        return tok.kind is TokenKind.OPERATOR and tok.value in ops

    def _unexpected(self, expected: str | None = None) -> ParseError:
        tok = self.current
        if tok.kind is TokenKind.EOF and expected == "')'":
            return ParseError(
                "Unbalanced parentheses: missing ')'",
                "UNBALANCED_PARENTHESES",
                tok.position,
            )
        if tok.kind is TokenKind.RPAREN and expected is None:
            return ParseError(
                f"Unbalanced parentheses: unmatched ')' at position {tok.position}",
                "UNBALANCED_PARENTHESES",
                tok.position,
            )
        if tok.kind is TokenKind.EOF:
            return ParseError("Unexpected end of input", "UNEXPECTED_END", tok.position)
        message = f"Unexpected {tok.describe()} at position {tok.position}"
        if expected:
            message += f" (expected {expected})"
        return ParseError(message, "UNEXPECTED_TOKEN", tok.position)

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_EXPRESSION_DEPTH:
            raise ParseError(
                f"Expression too deeply nested (max depth {MAX_EXPRESSION_DEPTH})",
                "TOO_DEEP",
                self.current.position,
            )

    def parse_statement(self) -> Statement:
        if self.current.kind is TokenKind.EOF:
            raise ParseError("Empty expression", "EMPTY_EXPRESSION", 0)
        target = None
        nxt = self.tokens[self.pos + 1] if self.pos + 1 < len(self.tokens) else None
        if (
            self.current.kind is TokenKind.IDENTIFIER
            and nxt is not None
            and nxt.kind is TokenKind.OPERATOR
            and nxt.value == "="
        ):
            target = self._advance().value
            self._advance()
            if self.current.kind is TokenKind.EOF:
                raise ParseError(
                    f"Missing value in assignment to '{target}'", "EMPTY_EXPRESSION", nxt.position
                )
        expression = self._expr()
        self._expect_end()
        return Statement(expression, target)

    def parse_expression(self) -> Node:
        if self.current.kind is TokenKind.EOF:
            raise ParseError("Empty expression", "EMPTY_EXPRESSION", 0)
        expression = self._expr()
        self._expect_end()
        return expression

    def _expect_end(self) -> None:
        if self.current.kind is not TokenKind.EOF:
            raise self._unexpected()

    def _expr(self) -> Node:
        self._enter()
        node = self._term()
        while self._at_operator("+", "-"):
            op = self._advance().value
            node = BinaryOp(op, node, self._term())
        self.depth -= 1
        return node

    def _term(self) -> Node:
        node = self._power()
        while self._at_operator("*", "/"):
            op = self._advance().value
            node = BinaryOp(op, node, self._power())
        return node

    def _power(self) -> Node:
        base = self._unary()
        if self._at_operator("^"):
            self._advance()
            self._enter()
            exponent = self._power()
            self.depth -= 1
            return BinaryOp("^", base, exponent)
        return base

    def _unary(self) -> Node:
        if self._at_operator("-"):
            self._advance()
            return UnaryOp("-", self._primary())
        return self._primary()

    def _primary(self) -> Node:
        tok = self.current
        if tok.kind is TokenKind.NUMBER:
            self._advance()
            return Literal(tok.value)
        if tok.kind is TokenKind.IDENTIFIER:
            self._advance()
            return Variable(tok.value)
        if tok.kind is TokenKind.FUNCTION:
            self._advance()
            self._expect(TokenKind.LPAREN, "'('")
            argument = self._expr()
            self._expect(TokenKind.RPAREN, "')'")
            return FunctionCall(tok.value, argument)
        if tok.kind is TokenKind.LPAREN:
            self._advance()
            node = self._expr()
            self._expect(TokenKind.RPAREN, "')'")
            return node
        raise self._unexpected("a number, variable, function or '('")

    def _expect(self, kind: TokenKind, description: str) -> Token:
        if self.current.kind is not kind:
            raise self._unexpected(description)
        return self._advance()


def _end_position(tokens: tuple[Token, ...]) -> int:
    return tokens[-1].position + 1 if tokens else 0


def split_statements(tokens: tuple[Token, ...]) -> list[tuple[Token, ...]]:
    """Split a token sequence at top-level commas.

    Each part is terminated with its own EOF token. Commas nested inside
    parentheses are left in place (and rejected later by the parser).
    """
    parts: list[tuple[Token, ...]] = []
    current: list[Token] = []
    depth = 0
    for tok in tokens:
        if tok.kind is TokenKind.EOF:
            break
        if tok.kind is TokenKind.LPAREN:
            depth += 1
        elif tok.kind is TokenKind.RPAREN:
            depth -= 1
        elif tok.kind is TokenKind.COMMA and depth == 0:
            parts.append(tuple(current) + (Token(TokenKind.EOF, None, tok.position),))
            current = []
            continue
        current.append(tok)
    end = tokens[-1].position if tokens else 0
    parts.append(tuple(current) + (Token(TokenKind.EOF, None, end),))
    return parts


def parse_statements(text: str) -> list[Statement]:
    """Tokenize and parse one or more comma-separated statements."""
    tokens = tokenize(text)
    return [Parser(part).parse_statement() for part in split_statements(tokens)]


def parse_expression(text: str) -> Node:
    """Tokenize and parse a single expression (no assignment, no commas)."""
    return Parser(tokenize(text)).parse_expression()


def format_number(val: Any, precision: int | None = None) -> str:
    """Format a numeric value with specified precision.

    Args:
        val: Numeric value to format
        precision: Number of significant digits (default: OUTPUT_PRECISION)

    Returns:
        Formatted string representation of the number
    """
    if precision is None:
        precision = OUTPUT_PRECISION
    try:
        fmt = "{:." + str(int(precision)) + "g}"
        text = fmt.format(float(val))
    except (ValueError, TypeError, OverflowError):
        return str(val)
    # Avoid displaying "-0"
    return "0" if text == "-0" else text

"""Tokenizer for free-form maths input.

Identifier policy: an identifier is a letter followed by letters and digits,
and a multi-letter identifier always names one variable (``ab`` is the
variable ``ab``, never ``a*b``). There is no implicit multiplication.
A reserved function name is only a function when the next non-blank
character is ``(``; otherwise it is an ordinary identifier.
"""

from __future__ import annotations

import math
import re
from functools import lru_cache

from .config import CACHE_SIZE_PARSE, MAX_INPUT_LENGTH, RESERVED_FUNCTIONS
from .types import LexError, Token, TokenKind, ValidationError

NUMBER_RE = re.compile(r"[0-9]+(?:\.[0-9]*)?|\.[0-9]+")
IDENTIFIER_RE = re.compile(r"[A-Za-z][A-Za-z0-9]*")
WHITESPACE_RE = re.compile(r"\s+")
NUMBER_START_CHARS = frozenset("0123456789.")

OPERATORS = frozenset("+-*/^=")

_SINGLE_CHAR_TOKENS = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    ",": TokenKind.COMMA,
}


def _next_significant_char(text: str, pos: int) -> str:
    match = WHITESPACE_RE.match(text, pos)
    if match:
        pos = match.end()
    return text[pos] if pos < len(text) else ""


@lru_cache(maxsize=CACHE_SIZE_PARSE)
def tokenize(text: str) -> tuple[Token, ...]:
    """Convert raw input into an immutable token sequence ending with EOF.

    Args:
        text: Raw input (e.g., "x = 2*sin(pi/4)")

    Returns:
        Tuple of tokens; the last one is always ``TokenKind.EOF``

    Raises:
        ValidationError: If the input exceeds MAX_INPUT_LENGTH
        LexError: On a character outside digits, letters, whitespace and ``+-*/^=(),.``
            or a number too large to represent as a float
    """
    if len(text) > MAX_INPUT_LENGTH:
        raise ValidationError(
            f"Input too long (max {MAX_INPUT_LENGTH} characters)", "TOO_LONG"
        )

    tokens: list[Token] = []
    pos = 0
    length = len(text)
    while pos < length:
        char = text[pos]

        if char.isspace():
            pos = WHITESPACE_RE.match(text, pos).end()
            continue

        if char in NUMBER_START_CHARS:
            match = NUMBER_RE.match(text, pos)
            if match is None:
                raise LexError(f"Malformed number at position {pos}", pos, "MALFORMED_NUMBER")
            end = match.end()
            if end < length and text[end] == ".":
                raise LexError(
                    f"Number has more than one decimal point at position {pos}",
                    end,
                    "MALFORMED_NUMBER",
                )
            value = float(match.group(0))
            if not math.isfinite(value):
                raise LexError(
                    f"Number at position {pos} is too large to represent",
                    pos,
                    "MALFORMED_NUMBER",
                )
            tokens.append(Token(TokenKind.NUMBER, value, pos))
            pos = end
            continue

        match = IDENTIFIER_RE.match(text, pos)
        if match:
            name = match.group(0)
            end = match.end()
            if name in RESERVED_FUNCTIONS and _next_significant_char(text, end) == "(":
                tokens.append(Token(TokenKind.FUNCTION, name, pos))
            else:
                tokens.append(Token(TokenKind.IDENTIFIER, name, pos))
            pos = end
            continue

        if char in OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, char, pos))
        elif char in _SINGLE_CHAR_TOKENS:
            tokens.append(Token(_SINGLE_CHAR_TOKENS[char], char, pos))
        else:
            raise LexError(f"Unrecognized character '{char}' at position {pos}", pos)
        pos += 1

    tokens.append(Token(TokenKind.EOF, None, length))
    return tuple(tokens)


def count_operator(tokens: tuple[Token, ...], op: str) -> int:
    """Count how many times operator ``op`` occurs in a token sequence."""
    return sum(1 for tok in tokens if tok.kind is TokenKind.OPERATOR and tok.value == op)


def clear_caches() -> None:
    """Clear the tokenization cache."""
    tokenize.cache_clear()

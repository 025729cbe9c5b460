"""
Demonstration programs for spantree.

Two small recursive programs whose call trees make good span output:
a naive Fibonacci and a Pratt parser for integer arithmetic. Both take
the spanner to trace with as an argument. They back the ``spantree-demo``
command.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from collections.abc import Iterator

from .core import Spanner
from .level import DEFAULT_LEVEL, Level

__all__ = [
    "fib",
    "Token",
    "TokenKind",
    "Precedence",
    "Integer",
    "InfixExpression",
    "tokenize",
    "ExpressionParser",
    "parse_expression",
]


def fib(spanner: Spanner, n: int, level: Level = DEFAULT_LEVEL) -> int:
    """Naive recursive Fibonacci, one span per call."""
    with spanner.enter_with_level(level, f"fib({n})"):
        if n == 0:
            return 0
        if n <= 2:
            return 1
        return fib(spanner, n - 1, level) + fib(spanner, n - 2, level)


# =============================================================================
# Expression parser
# =============================================================================


class Precedence(IntEnum):
    LOWEST = 0
    SUM = 1
    PRODUCT = 2


class TokenKind(IntEnum):
    NUMBER = 0
    LPAREN = 1
    RPAREN = 2
    ADD = 3
    SUB = 4
    MUL = 5
    DIV = 6


_SYMBOLS = {
    '(': TokenKind.LPAREN,
    ')': TokenKind.RPAREN,
    '+': TokenKind.ADD,
    '-': TokenKind.SUB,
    '*': TokenKind.MUL,
    '/': TokenKind.DIV,
}

_PRECEDENCE = {
    TokenKind.ADD: Precedence.SUM,
    TokenKind.SUB: Precedence.SUM,
    TokenKind.MUL: Precedence.PRODUCT,
    TokenKind.DIV: Precedence.PRODUCT,
}


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    value: int | None = None

    @classmethod
    def from_text(cls, text: str) -> Token:
        """
        Raises:
            ValueError: If ``text`` is neither a symbol nor an integer
        """
        if text in _SYMBOLS:
            return cls(_SYMBOLS[text])
        try:
            return cls(TokenKind.NUMBER, int(text))
        except ValueError:
            raise ValueError(f"unexpected token: {text!r}") from None

    @property
    def precedence(self) -> Precedence:
        return _PRECEDENCE.get(self.kind, Precedence.LOWEST)

    def __str__(self) -> str:
        if self.kind == TokenKind.NUMBER:
            return str(self.value)
        return self.kind.name


@dataclass(frozen=True, slots=True)
class Integer:
    value: int


@dataclass(frozen=True, slots=True)
class InfixExpression:
    left: Integer | InfixExpression
    operator: Token
    right: Integer | InfixExpression


def tokenize(text: str) -> list[Token]:
    """Split whitespace-separated ``text`` into tokens."""
    return [Token.from_text(part) for part in text.split()]


class ExpressionParser:
    """
    Pratt parser over a token stream; every parse step is a span.

    Args:
        spanner: Spanner receiving the parse trace
        tokens: Token iterator
        level: Level the parse spans are entered with
    """

    def __init__(
        self,
        spanner: Spanner,
        tokens: Iterator[Token],
        level: Level = DEFAULT_LEVEL,
    ) -> None:
        self._spanner = spanner
        self._tokens = tokens
        self._level = level
        self.current_token = next(self._tokens, None)
        self.peek_token = next(self._tokens, None)

    def _span(self, step: str):
        return self._spanner.enter_fmt(
            self._level, "{}: current=`{}`", step, self.current_token
        )

    def advance_tokens(self) -> None:
        with self._span("advance_tokens"):
            self.current_token = self.peek_token
            self.peek_token = next(self._tokens, None)

    def parse_expression(self, precedence: Precedence = Precedence.LOWEST):
        with self._span("parse_expression"):
            token = self.current_token
            if token is not None and token.kind == TokenKind.NUMBER:
                left = Integer(token.value)
            elif token is not None and token.kind == TokenKind.LPAREN:
                left = self.parse_grouped_expression()
            else:
                raise ValueError(f"unexpected token: `{token}`")

            while self.peek_token is not None and precedence < self.peek_token.precedence:
                self.advance_tokens()
                left = self.parse_infix_expression(left)
            return left

    def parse_grouped_expression(self):
        with self._span("parse_grouped_expression"):
            self.advance_tokens()
            expression = self.parse_expression(Precedence.LOWEST)
            if self.peek_token is None or self.peek_token.kind != TokenKind.RPAREN:
                raise ValueError(f"expected `)`, got `{self.peek_token}`")
            self.advance_tokens()
            return expression

    def parse_infix_expression(self, left):
        with self._span("parse_infix_expression"):
            operator = self.current_token
            self.advance_tokens()
            right = self.parse_expression(operator.precedence)
            return InfixExpression(left, operator, right)


def parse_expression(spanner: Spanner, text: str, level: Level = DEFAULT_LEVEL):
    """
    Parse ``text`` (e.g. ``"10 + 13 - 23 / ( 103 - 10 ) + 1"``).

    Raises:
        ValueError: If ``text`` is empty or malformed
    """
    parser = ExpressionParser(spanner, iter(tokenize(text)), level)
    expression = parser.parse_expression(Precedence.LOWEST)
    if parser.peek_token is not None:
        raise ValueError(f"unexpected trailing token: `{parser.peek_token}`")
    return expression

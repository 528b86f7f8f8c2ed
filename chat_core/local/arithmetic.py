"""只支持四则运算的递归下降求值器。

文法::

    expression := term (("+" | "-") term)*
    term       := factor (("*" | "/") factor)*
    factor     := ("+" | "-") factor | NUMBER | "(" expression ")"

没有标识符、函数调用和赋值，只能计算数字，不会触达任何外部状态。
"""

import math
import re
from typing import List

_NUMBER_RE = re.compile(r"[0-9]+(?:\.[0-9]*)?|\.[0-9]+")
_OPERATORS = "+-*/()"
MAX_DEPTH = 64


class ExpressionError(ValueError):
    """表达式无法解析或结果不是有限数。"""


def tokenize(expression: str) -> List[str]:
    tokens: List[str] = []
    pos = 0
    while pos < len(expression):
        ch = expression[pos]
        if ch.isspace():
            pos += 1
            continue
        if ch in _OPERATORS:
            tokens.append(ch)
            pos += 1
            continue
        match = _NUMBER_RE.match(expression, pos)
        if not match:
            raise ExpressionError(f"unexpected character {ch!r} at {pos}")
        tokens.append(match.group())
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: List[str]):
        self._tokens = tokens
        self._pos = 0
        self._depth = 0

    def parse(self) -> float:
        if not self._tokens:
            raise ExpressionError("empty expression")
        value = self._expression()
        if self._pos != len(self._tokens):
            raise ExpressionError(f"unexpected token {self._tokens[self._pos]!r}")
        return value

    def _peek(self):
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _take(self) -> str:
        token = self._peek()
        if token is None:
            raise ExpressionError("unexpected end of expression")
        self._pos += 1
        return token

    def _expression(self) -> float:
        value = self._term()
        while self._peek() in ("+", "-"):
            if self._take() == "+":
                value += self._term()
            else:
                value -= self._term()
        return value

    def _term(self) -> float:
        value = self._factor()
        while self._peek() in ("*", "/"):
            op = self._take()
            rhs = self._factor()
            if op == "*":
                value *= rhs
            elif rhs == 0:
                raise ExpressionError("division by zero")
            else:
                value /= rhs
        return value

    def _factor(self) -> float:
        self._depth += 1
        if self._depth > MAX_DEPTH:
            raise ExpressionError("expression nested too deeply")
        try:
            token = self._take()
            if token == "-":
                return -self._factor()
            if token == "+":
                return self._factor()
            if token == "(":
                value = self._expression()
                if self._take() != ")":
                    raise ExpressionError("missing closing parenthesis")
                return value
            if token in _OPERATORS:
                raise ExpressionError(f"unexpected token {token!r}")
            return float(token)
        finally:
            self._depth -= 1


def evaluate(expression: str) -> float:
    value = _Parser(tokenize(expression)).parse()
    if not math.isfinite(value):
        raise ExpressionError("result is not a finite number")
    return value


def format_number(value: float) -> str:
    """整数值不带小数部分（12 而不是 12.0）。"""

    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)

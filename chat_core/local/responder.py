"""本地兜底回复。

整条 Provider 链耗尽时使用：尝试把用户输入当作四则运算求值，否则返回固定致歉语。
无 I/O、结果确定、不会抛出异常。
"""

import re

from chat_core.local.arithmetic import ExpressionError, evaluate, format_number

APOLOGY = "Sorry, I can't generate a response right now. Please try again in a moment."
MAX_EXPRESSION_LENGTH = 50

_DISALLOWED_RE = re.compile(r"[^0-9+\-*/().\s]")
# 连续的 * + / 视为非法；连续的 - 允许（可能表示负数）
_CONSECUTIVE_OPERATORS_RE = re.compile(r"[*+/]{2,}")
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize(user_text: str) -> str:
    return _DISALLOWED_RE.sub("", user_text).strip()


def is_arithmetic_candidate(expression: str) -> bool:
    if not expression or len(expression) > MAX_EXPRESSION_LENGTH:
        return False
    if not any(ch.isdigit() for ch in expression):
        return False
    return not _CONSECUTIVE_OPERATORS_RE.search(_WHITESPACE_RE.sub("", expression))


class LocalResponder:
    def respond(self, user_text: str) -> str:
        expression = sanitize(str(user_text or ""))
        if not is_arithmetic_candidate(expression):
            return APOLOGY
        try:
            value = evaluate(expression)
        except ExpressionError:
            return APOLOGY
        return f"Result: {format_number(value)}"

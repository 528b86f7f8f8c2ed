"""本地兜底：安全的四则运算求值与固定致歉回复。"""

from chat_core.local.responder import APOLOGY, LocalResponder

__all__ = ["APOLOGY", "LocalResponder"]

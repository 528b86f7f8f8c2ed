"""Chat Core 顶层包。

多租户对话后端核心：线程持久化、带重试与回退的多 Provider 调用链，
以及所有 Provider 不可用时的本地兜底回复。
"""

from chat_core.agents.chat_orchestrator import ChatOrchestrator, TurnResult

__all__ = ["ChatOrchestrator", "TurnResult"]

"""对话编排核心模块。

一轮对话：校验输入 -> 加载/创建线程 -> 追加用户消息 -> 回退链（带总截止时间）
-> 必要时本地兜底 -> 追加助手消息 -> 持久化。
只有输入校验失败会拒绝本轮；其余情况调用方总能拿到非空回复。
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import uuid4

from chat_core.config.settings import settings
from chat_core.domain.exceptions import NotFoundError, ValidationError
from chat_core.domain.models import Message, ThreadSummary
from chat_core.domain.threads import ThreadStore
from chat_core.flows.state import TurnState
from chat_core.flows.turn_graph import build_turn_graph
from chat_core.infrastructure.logging.logger import logger, preview
from chat_core.local.responder import LocalResponder
from chat_core.resilience.chain import FallbackChain


@dataclass
class TurnResult:
    """一轮对话的结果。

    - reply: 返回给用户的文本，永远非空。
    - provider/model: 产生回复的 Provider；本地兜底时为 None。
    - fallback_used: 是否走了本地兜底。
    - provider_error: 兜底时最后一次 Provider 失败原因，仅用于观测，不展示给用户。
    - persisted: 线程是否成功落盘。
    """

    reply: str
    thread_id: str
    provider: Optional[str] = None
    model: Optional[str] = None
    fallback_used: bool = False
    provider_error: Optional[str] = None
    persisted: bool = False


class ChatOrchestrator:
    def __init__(
        self,
        store: ThreadStore,
        chain: FallbackChain,
        responder: Optional[LocalResponder] = None,
        *,
        turn_deadline: Optional[float] = None,
        max_message_length: Optional[int] = None,
        max_thread_id_length: Optional[int] = None,
    ):
        self._store = store
        self._chain = chain
        self._responder = responder or LocalResponder()
        self._turn_deadline = turn_deadline or settings.turn_deadline
        self._max_message_length = max_message_length or settings.max_message_length
        self._max_thread_id_length = max_thread_id_length or settings.max_thread_id_length
        self._graph = build_turn_graph(self._store, self._chain, self._responder, self._turn_deadline)

    async def handle_turn(self, owner_id: str, thread_id: str, user_text: str) -> TurnResult:
        """执行一轮对话。

        Args:
            owner_id: 已通过认证的用户标识
            thread_id: 调用方提供的线程 ID（同一用户内唯一）
            user_text: 用户消息

        Returns:
            TurnResult，reply 永远非空

        Raises:
            ValidationError: 输入不合法，此时不会调用任何 Provider 或存储
        """
        self._validate(owner_id, thread_id, user_text)
        start_time = time.monotonic()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "thread_id": thread_id,
        }
        self._log(logging.INFO, "Starting turn", log_ctx, message_length=len(user_text), preview=preview(user_text))

        initial: TurnState = {
            "owner_id": owner_id,
            "thread_id": thread_id,
            "user_text": user_text,
            "log_ctx": log_ctx,
            "thread": None,
            "persist": True,
            "reply": None,
            "provider": None,
            "model": None,
            "provider_error": None,
            "fallback_used": False,
            "persisted": False,
        }
        final = await self._graph.ainvoke(initial)

        result = TurnResult(
            reply=final["reply"],
            thread_id=thread_id,
            provider=final.get("provider"),
            model=final.get("model"),
            fallback_used=bool(final.get("fallback_used")),
            provider_error=final.get("provider_error") if final.get("fallback_used") else None,
            persisted=bool(final.get("persisted")),
        )
        self._log(
            logging.INFO,
            "Completed turn",
            log_ctx,
            elapsed_seconds=round(time.monotonic() - start_time, 2),
            provider=result.provider,
            model=result.model,
            fallback_used=result.fallback_used,
            persisted=result.persisted,
        )
        return result

    # ---- 线程查询（直接透传给存储）----

    def list_threads(self, owner_id: str) -> List[ThreadSummary]:
        return self._store.list_threads(owner_id)

    def get_thread_messages(self, owner_id: str, thread_id: str) -> List[Message]:
        thread = self._store.find_thread(owner_id, thread_id)
        if thread is None:
            raise NotFoundError(code="THREAD_NOT_FOUND", message="Thread not found", thread_id=thread_id)
        return list(thread.messages)

    def delete_thread(self, owner_id: str, thread_id: str) -> bool:
        deleted = self._store.delete_thread(owner_id, thread_id)
        if deleted:
            self._log(logging.INFO, "Deleted thread", {"thread_id": thread_id})
        return deleted

    def purge_orphans(self) -> int:
        removed = self._store.purge_orphans()
        self._log(logging.INFO, "Purged orphan threads", {}, removed=removed)
        return removed

    def _validate(self, owner_id: str, thread_id: str, user_text: str) -> None:
        if not owner_id:
            raise ValidationError(code="MISSING_OWNER", message="Owner id is required")
        if not isinstance(thread_id, str) or not thread_id.strip():
            raise ValidationError(code="MISSING_THREAD_ID", message="Thread id is required")
        if len(thread_id) > self._max_thread_id_length:
            raise ValidationError(
                code="THREAD_ID_TOO_LONG",
                message=f"Thread id exceeds {self._max_thread_id_length} characters",
            )
        if not isinstance(user_text, str) or not user_text.strip():
            raise ValidationError(code="EMPTY_MESSAGE", message="Message must not be empty")
        if len(user_text) > self._max_message_length:
            raise ValidationError(
                code="MESSAGE_TOO_LONG",
                message=f"Message exceeds {self._max_message_length} characters",
            )

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})

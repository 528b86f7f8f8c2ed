"""对外 API 服务模块。

提供简化的函数接口供上层（HTTP 路由、CLI 等）调用。认证由上层负责，
这里的 owner_id 一律视为已通过认证的用户标识。
"""

from typing import Any, Dict, List, Optional

from chat_core.agents.chat_orchestrator import ChatOrchestrator
from chat_core.config.settings import settings
from chat_core.domain.exceptions import BusinessError
from chat_core.domain.threads import ThreadStore
from chat_core.infrastructure.logging.logger import logger
from chat_core.infrastructure.storage.json_store import JsonThreadStore
from chat_core.providers import build_fallback_chain


_store: Optional[ThreadStore] = None
_orchestrator: Optional[ChatOrchestrator] = None


def get_default_orchestrator() -> ChatOrchestrator:
    """获取默认的 ChatOrchestrator 实例（单例）。"""
    global _store, _orchestrator
    if _store is None:
        _store = JsonThreadStore(root=settings.storage_root)
    if _orchestrator is None:
        _orchestrator = ChatOrchestrator(store=_store, chain=build_fallback_chain(settings))
    return _orchestrator


async def chat_turn(owner_id: str, thread_id: str, message: str) -> Dict[str, Any]:
    """运行一轮对话。

    Args:
        owner_id: 用户标识
        thread_id: 线程ID（不存在时自动创建，标题为本条消息）
        message: 用户消息

    Returns:
        包含 threadId 与 reply 的字典，以及可选的 provider / model / fallback 字段

    Raises:
        ValidationError: 输入不合法
    """
    try:
        result = await get_default_orchestrator().handle_turn(owner_id, thread_id, message)
    except BusinessError as e:
        logger.error(f"Chat turn rejected: {e.message}", extra={"extra": {
            "thread_id": thread_id,
            "code": e.code,
        }})
        raise

    return {
        "threadId": result.thread_id,
        "reply": result.reply,
        "provider": result.provider,
        "model": result.model,
        "fallback": result.fallback_used,
    }


def list_threads(owner_id: str) -> List[Dict[str, Any]]:
    """列出用户的所有线程，按更新时间倒序。"""
    return [
        {
            "threadId": s.thread_id,
            "title": s.title,
            "createdAt": s.created_at.isoformat(),
            "updatedAt": s.updated_at.isoformat(),
            "messageCount": s.message_count,
        }
        for s in get_default_orchestrator().list_threads(owner_id)
    ]


def get_thread_messages(owner_id: str, thread_id: str) -> List[Dict[str, Any]]:
    """获取线程的全部消息。

    Raises:
        NotFoundError: 线程不存在或不属于该用户
    """
    return [m.to_record() for m in get_default_orchestrator().get_thread_messages(owner_id, thread_id)]


def delete_thread(owner_id: str, thread_id: str) -> Dict[str, Any]:
    """删除线程，返回 {"deleted": bool}。"""
    return {"deleted": get_default_orchestrator().delete_thread(owner_id, thread_id)}


def purge_orphan_threads() -> Dict[str, Any]:
    """维护任务：删除没有归属用户的线程记录。"""
    return {"removed": get_default_orchestrator().purge_orphans()}

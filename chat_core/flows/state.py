"""State definition for the chat-turn graph."""

from __future__ import annotations

from typing import Any, Dict, Optional, TypedDict

from chat_core.domain.models import Thread


class TurnState(TypedDict, total=False):
    """State shared across LangGraph nodes during one turn."""

    owner_id: str
    thread_id: str
    user_text: str
    log_ctx: Dict[str, Any]
    thread: Optional[Thread]
    # False when the stored record could not be read; we never overwrite it then
    persist: bool
    reply: Optional[str]
    provider: Optional[str]
    model: Optional[str]
    provider_error: Optional[str]
    fallback_used: bool
    persisted: bool

"""LangGraph construction for a single chat turn.

load -> chain -> (save_thread | local_fallback -> save_thread) -> END

No node is resumable; once a reply exists the turn always reaches END, even if
persisting fails.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from chat_core.domain.exceptions import PersistenceError
from chat_core.domain.models import Thread, utcnow
from chat_core.domain.threads import ThreadStore
from chat_core.flows.state import TurnState
from chat_core.infrastructure.logging.logger import logger
from chat_core.local.responder import LocalResponder
from chat_core.resilience.chain import DEADLINE_FAILURE, FallbackChain

NO_REPLY_ERROR = "no provider produced a reply"


def _log(level: int, message: str, state: TurnState, **fields: Any) -> None:
    payload: Dict[str, Any] = dict(state.get("log_ctx") or {})
    payload.update(fields)
    logger.log(level, message, extra={"extra": payload})


def _transient_thread(state: TurnState) -> Thread:
    now = utcnow()
    return Thread(
        thread_id=state["thread_id"],
        title=state["user_text"],
        owner_id=state["owner_id"],
        created_at=now,
        updated_at=now,
    )


async def load_node(state: TurnState, store: ThreadStore) -> Dict[str, Any]:
    owner_id, thread_id, user_text = state["owner_id"], state["thread_id"], state["user_text"]
    persist = True
    try:
        thread = await asyncio.to_thread(store.find_thread, owner_id, thread_id)
    except PersistenceError as e:
        _log(logging.ERROR, "Thread load failed, continuing without persistence", state, error=e.message)
        thread, persist = _transient_thread(state), False

    if thread is None:
        try:
            thread = await asyncio.to_thread(store.create_thread, owner_id, thread_id, user_text)
            _log(logging.INFO, "Created new thread", state)
        except PersistenceError as e:
            _log(logging.ERROR, "Thread create failed", state, error=e.message)
            thread = _transient_thread(state)

    thread.append("user", user_text)
    return {"thread": thread, "persist": persist}


async def chain_node(state: TurnState, chain: FallbackChain, turn_deadline: float) -> Dict[str, Any]:
    try:
        # 超时后 wait_for 取消链上正在进行的调用，不再重试
        result = await asyncio.wait_for(chain.get_reply(state["user_text"], turn_deadline), timeout=turn_deadline)
    except asyncio.TimeoutError:
        _log(logging.WARNING, "Turn deadline exceeded", state, turn_deadline=turn_deadline)
        return {"reply": None, "provider_error": DEADLINE_FAILURE.message}

    if result.exhausted:
        error = result.last_failure.describe() if result.last_failure else NO_REPLY_ERROR
        return {"reply": None, "provider_error": error}
    return {"reply": result.text, "provider": result.provider, "model": result.model}


def local_fallback_node(state: TurnState, responder: LocalResponder) -> Dict[str, Any]:
    reply = responder.respond(state["user_text"])
    _log(logging.INFO, "Using local fallback", state, provider_error=state.get("provider_error"))
    return {"reply": reply, "fallback_used": True}


async def persist_node(state: TurnState, store: ThreadStore) -> Dict[str, Any]:
    thread = state["thread"]
    thread.append("assistant", state["reply"])
    if not state.get("persist"):
        return {"persisted": False}
    try:
        await asyncio.to_thread(store.save, thread)
    except PersistenceError as e:
        _log(logging.ERROR, "Thread save failed, reply still returned", state, error=e.message)
        return {"persisted": False}
    return {"persisted": True}


def chain_router(state: TurnState) -> str:
    return "success" if state.get("reply") else "exhausted"


def build_turn_graph(
    store: ThreadStore,
    chain: FallbackChain,
    responder: LocalResponder,
    turn_deadline: float,
) -> CompiledStateGraph:
    async def load(state: TurnState) -> Dict[str, Any]:
        return await load_node(state, store)

    async def run_chain(state: TurnState) -> Dict[str, Any]:
        return await chain_node(state, chain, turn_deadline)

    async def save_thread(state: TurnState) -> Dict[str, Any]:
        return await persist_node(state, store)

    graph = StateGraph(TurnState)
    graph.add_node("load", load)
    graph.add_node("chain", run_chain)
    graph.add_node("local_fallback", lambda s: local_fallback_node(s, responder))
    graph.add_node("save_thread", save_thread)
    graph.set_entry_point("load")
    graph.add_edge("load", "chain")
    graph.add_conditional_edges("chain", chain_router, {"success": "save_thread", "exhausted": "local_fallback"})
    graph.add_edge("local_fallback", "save_thread")
    graph.add_edge("save_thread", END)
    return graph.compile()

import pytest

from chat_core.agents.chat_orchestrator import ChatOrchestrator
from chat_core.api import service
from chat_core.domain.exceptions import NotFoundError, ValidationError
from chat_core.infrastructure.storage.json_store import JsonThreadStore
from chat_core.resilience.chain import ChainEntry, FallbackChain
from chat_core.resilience.retry import RetryPolicy


class EchoProvider:
    name = "echo"
    default_model = None
    is_configured = True

    async def send(self, user_text, deadline, model=None):
        return f"echo: {user_text}"


@pytest.fixture
def orchestrator(monkeypatch, tmp_path):
    store = JsonThreadStore(root=tmp_path / ".storage")
    chain = FallbackChain([ChainEntry(client=EchoProvider(), policy=RetryPolicy())], attempt_timeout=1.0)
    orch = ChatOrchestrator(store=store, chain=chain, turn_deadline=2.0)
    monkeypatch.setattr(service, "_store", store)
    monkeypatch.setattr(service, "_orchestrator", orch)
    return orch


@pytest.mark.asyncio
async def test_chat_turn_and_thread_listing(orchestrator):
    out = await service.chat_turn("alice", "t1", "hello")
    assert out["threadId"] == "t1"
    assert out["reply"] == "echo: hello"
    assert out["provider"] == "echo"
    assert out["fallback"] is False

    threads = service.list_threads("alice")
    assert [t["threadId"] for t in threads] == ["t1"]
    assert threads[0]["title"] == "hello"
    assert threads[0]["messageCount"] == 2

    messages = service.get_thread_messages("alice", "t1")
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[0]["timestamp"].endswith("Z")


@pytest.mark.asyncio
async def test_chat_turn_validation_error_propagates(orchestrator):
    with pytest.raises(ValidationError):
        await service.chat_turn("alice", "t1", "")


@pytest.mark.asyncio
async def test_delete_and_purge(orchestrator):
    await service.chat_turn("alice", "t1", "hello")
    assert service.delete_thread("alice", "t1") == {"deleted": True}
    with pytest.raises(NotFoundError):
        service.get_thread_messages("alice", "t1")
    assert service.purge_orphan_threads() == {"removed": 0}


def test_default_orchestrator_is_singleton(orchestrator):
    assert service.get_default_orchestrator() is orchestrator

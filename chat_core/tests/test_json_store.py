import json
import tempfile
from datetime import timedelta
from pathlib import Path

import pytest

from chat_core.domain.exceptions import PersistenceError
from chat_core.domain.models import utcnow
from chat_core.infrastructure.storage.json_store import JsonThreadStore


def test_json_store_create_and_find():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        created = store.create_thread("alice", "t1", "Hello there")
        found = store.find_thread("alice", "t1")
        assert found is not None
        assert found.title == "Hello there"
        assert found.owner_id == "alice"
        assert found.created_at == created.created_at


def test_json_store_owner_isolation():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        store.create_thread("alice", "t1", "secret")
        assert store.find_thread("bob", "t1") is None
        assert store.list_threads("bob") == []
        assert store.delete_thread("bob", "t1") is False
        assert store.find_thread("alice", "t1") is not None


def test_json_store_create_is_idempotent():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        store.create_thread("alice", "t1", "first title")
        again = store.create_thread("alice", "t1", "second title")
        assert again.title == "first title"


def test_json_store_save_keeps_message_order():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        thread = store.create_thread("alice", "t1", "hi")
        thread.append("user", "hi")
        thread.append("assistant", "hello")
        thread.append("user", "bye")
        store.save(thread)
        loaded = store.find_thread("alice", "t1")
        assert [(m.role, m.content) for m in loaded.messages] == [
            ("user", "hi"),
            ("assistant", "hello"),
            ("user", "bye"),
        ]
        assert loaded.updated_at == thread.updated_at


def test_json_store_list_sorted_by_updated_at():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        older = store.create_thread("alice", "older", "a")
        store.create_thread("alice", "newer", "b")
        older.append("user", "bump", now=utcnow() + timedelta(seconds=5))
        store.save(older)
        summaries = store.list_threads("alice")
        assert [s.thread_id for s in summaries] == ["older", "newer"]
        assert summaries[0].message_count == 1


def test_json_store_delete_thread():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        store.create_thread("alice", "t1", "temp")
        assert store.delete_thread("alice", "t1") is True
        assert store.find_thread("alice", "t1") is None
        assert store.delete_thread("alice", "t1") is False


def test_json_store_thread_id_with_path_characters():
    with tempfile.TemporaryDirectory() as d:
        root = Path(d) / ".storage"
        store = JsonThreadStore(root=root)
        store.create_thread("alice", "../../etc/passwd", "x")
        assert store.find_thread("alice", "../../etc/passwd") is not None
        files = list(root.rglob("*.json"))
        assert len(files) == 1
        assert root.resolve() in files[0].resolve().parents


def test_json_store_corrupt_record():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        store.create_thread("alice", "good", "ok")
        store.create_thread("alice", "bad", "ok")
        store._thread_path("alice", "bad").write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError) as exc:
            store.find_thread("alice", "bad")
        assert exc.value.code == "STORE_READ_ERROR"
        assert [s.thread_id for s in store.list_threads("alice")] == ["good"]


def test_json_store_purge_orphans():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        keep = store.create_thread("alice", "keep", "ok")

        no_owner = store._thread_path("alice", "no-owner")
        record = keep.to_record()
        record.update(threadId="no-owner", ownerId=None)
        no_owner.write_text(json.dumps(record), encoding="utf-8")

        moved = store._thread_path("alice", "moved")
        record = keep.to_record()
        record.update(threadId="moved", ownerId="mallory")
        moved.write_text(json.dumps(record), encoding="utf-8")

        assert store.purge_orphans() == 2
        assert not no_owner.exists()
        assert not moved.exists()
        assert store.find_thread("alice", "keep") is not None
        assert store.purge_orphans() == 0


def test_json_store_unencodable_content_raises_persistence_error():
    with tempfile.TemporaryDirectory() as d:
        root = Path(d) / ".storage"
        store = JsonThreadStore(root=root)
        thread = store.create_thread("alice", "t1", "hi")
        thread.append("user", "hi \ud800")
        with pytest.raises(PersistenceError) as exc:
            store.save(thread)
        assert exc.value.code == "STORE_WRITE_ERROR"
        assert list(root.rglob("*.tmp")) == []
        assert store.find_thread("alice", "t1").messages == []


def test_json_store_non_utf8_record():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        store.create_thread("alice", "good", "ok")
        store.create_thread("alice", "bad", "ok")
        store._thread_path("alice", "bad").write_bytes(b"\xff\xfe{garbage")
        with pytest.raises(PersistenceError) as exc:
            store.find_thread("alice", "bad")
        assert exc.value.code == "STORE_READ_ERROR"
        assert [s.thread_id for s in store.list_threads("alice")] == ["good"]
        assert store.purge_orphans() == 0


def test_json_store_thread_id_with_lone_surrogate():
    with tempfile.TemporaryDirectory() as d:
        store = JsonThreadStore(root=Path(d) / ".storage")
        assert store.find_thread("alice", "t\ud800") is None
        assert store.delete_thread("alice", "t\ud800") is False

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from chat_core.config.settings import settings
from chat_core.domain.exceptions import PersistenceError
from chat_core.domain.models import Thread, ThreadSummary, utcnow
from chat_core.domain.threads import ThreadStore
from chat_core.infrastructure.logging.logger import logger


def _key(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8", "surrogatepass")).hexdigest()


class JsonThreadStore(ThreadStore):
    """每个线程一个 JSON 文件：<root>/threads/<sha256(owner)>/<sha256(threadId)>.json。

    文件名只由哈希构成，threadId 可以包含任意字符。写入先落临时文件再 os.replace，
    并发写同一线程时以最后一次写入为准。
    """

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._threads_root = self._root / "threads"
        self._threads_root.mkdir(parents=True, exist_ok=True)

    def find_thread(self, owner_id: str, thread_id: str) -> Optional[Thread]:
        path = self._thread_path(owner_id, thread_id)
        if not path.exists():
            return None
        thread = self._read(path)
        if thread.owner_id != owner_id or thread.thread_id != thread_id:
            return None
        return thread

    def create_thread(self, owner_id: str, thread_id: str, title: str) -> Thread:
        existing = self.find_thread(owner_id, thread_id)
        if existing is not None:
            return existing
        now = utcnow()
        thread = Thread(thread_id=thread_id, title=title, owner_id=owner_id, created_at=now, updated_at=now)
        self.save(thread)
        return thread

    def save(self, thread: Thread) -> None:
        path = self._thread_path(thread.owner_id, thread.thread_id)
        tmp_path = path.parent / f"{path.stem}.{uuid4().hex}.json.tmp"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(thread.to_record(), ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, path)
        except (OSError, ValueError) as e:
            # ValueError: 内容无法编码为 UTF-8（如孤立代理字符）
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(code="STORE_WRITE_ERROR", message=str(e), thread_id=thread.thread_id)

    def list_threads(self, owner_id: str) -> List[ThreadSummary]:
        items: List[ThreadSummary] = []
        owner_dir = self._threads_root / _key(owner_id)
        if not owner_dir.exists():
            return items
        for path in owner_dir.glob("*.json"):
            try:
                thread = self._read(path)
            except PersistenceError as e:
                logger.warning("Skipped unreadable thread", extra={"extra": {"path": str(path), "error": e.message}})
                continue
            if thread.owner_id == owner_id:
                items.append(thread.summary())
        items.sort(key=lambda s: s.updated_at, reverse=True)
        return items

    def delete_thread(self, owner_id: str, thread_id: str) -> bool:
        if self.find_thread(owner_id, thread_id) is None:
            return False
        try:
            self._thread_path(owner_id, thread_id).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(code="STORE_DELETE_ERROR", message=str(e), thread_id=thread_id)
        return True

    def purge_orphans(self) -> int:
        """删除没有 ownerId、或与所在用户目录不匹配的线程记录，返回删除数量。"""

        removed = 0
        for owner_dir in self._threads_root.iterdir():
            if not owner_dir.is_dir():
                continue
            for path in owner_dir.glob("*.json"):
                try:
                    data = self._load_json(path)
                except PersistenceError as e:
                    logger.warning("Skipped unreadable thread", extra={"extra": {"path": str(path), "error": e.message}})
                    continue
                owner_id = data.get("ownerId") if isinstance(data, dict) else None
                if owner_id and _key(str(owner_id)) == owner_dir.name:
                    continue
                try:
                    path.unlink()
                except OSError as e:
                    raise PersistenceError(code="STORE_DELETE_ERROR", message=str(e))
                removed += 1
                logger.info("Purged orphan thread", extra={"extra": {"path": str(path)}})
        return removed

    def _thread_path(self, owner_id: str, thread_id: str) -> Path:
        return self._threads_root / _key(owner_id) / f"{_key(thread_id)}.json"

    def _read(self, path: Path) -> Thread:
        data = self._load_json(path)
        try:
            return Thread.from_record(data)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(code="STORE_READ_ERROR", message=f"Malformed thread record: {e}")

    @staticmethod
    def _load_json(path: Path) -> Dict[str, Any]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            # ValueError 包含 JSONDecodeError 与 UnicodeDecodeError
            raise PersistenceError(code="STORE_READ_ERROR", message=str(e))

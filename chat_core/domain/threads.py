from typing import List, Optional, Protocol

from .models import Thread, ThreadSummary


class ThreadStore(Protocol):
    """线程持久化协议。所有方法都以 (owner_id, thread_id) 作为访问边界。"""

    def find_thread(self, owner_id: str, thread_id: str) -> Optional[Thread]:
        ...

    def create_thread(self, owner_id: str, thread_id: str, title: str) -> Thread:
        ...

    def save(self, thread: Thread) -> None:
        ...

    def list_threads(self, owner_id: str) -> List[ThreadSummary]:
        ...

    def delete_thread(self, owner_id: str, thread_id: str) -> bool:
        ...

    def purge_orphans(self) -> int:
        ...

"""线程与消息数据模型。

- Message: 一条不可变的对话消息（user/assistant）。
- Thread: 归属于某个用户的会话，消息只追加、不重排。
- ThreadSummary: 线程列表展示用的摘要。

序列化字段名固定为 role/content/timestamp 与
threadId/title/messages/ownerId/createdAt/updatedAt，存储层直接落盘这些记录。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional


Role = Literal["user", "assistant"]
ROLES = ("user", "assistant")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class Message:
    """一条对话消息，追加后不再修改。"""

    role: Role
    content: str
    timestamp: datetime

    def to_record(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": format_ts(self.timestamp)}

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Message":
        role = data["role"]
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role!r}")
        return cls(role=role, content=data.get("content") or "", timestamp=parse_ts(data["timestamp"]))


@dataclass
class Thread:
    """一个用户拥有的会话。

    - thread_id: 调用方提供，仅在同一 owner 范围内唯一。
    - title: 创建时取第一条用户消息，之后不再更新。
    - messages: 按追加顺序排列，即对话顺序。
    """

    thread_id: str
    title: str
    owner_id: str
    created_at: datetime
    updated_at: datetime
    messages: List[Message] = field(default_factory=list)

    def append(self, role: Role, content: str, now: Optional[datetime] = None) -> Message:
        message = Message(role=role, content=content, timestamp=now or utcnow())
        self.messages.append(message)
        self.updated_at = message.timestamp
        return message

    def summary(self) -> "ThreadSummary":
        return ThreadSummary(
            thread_id=self.thread_id,
            title=self.title,
            created_at=self.created_at,
            updated_at=self.updated_at,
            message_count=len(self.messages),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "threadId": self.thread_id,
            "title": self.title,
            "messages": [m.to_record() for m in self.messages],
            "ownerId": self.owner_id,
            "createdAt": format_ts(self.created_at),
            "updatedAt": format_ts(self.updated_at),
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Thread":
        return cls(
            thread_id=data["threadId"],
            title=data.get("title") or "",
            owner_id=data["ownerId"],
            created_at=parse_ts(data["createdAt"]),
            updated_at=parse_ts(data["updatedAt"]),
            messages=[Message.from_record(m) for m in data.get("messages") or []],
        )


@dataclass(frozen=True)
class ThreadSummary:
    """线程列表中的一项。"""

    thread_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int

"""Provider 调用结果的统一描述。

FailureKind 是封闭的失败分类；Provider 特有的细节（状态码、原始错误文本）
只作为 ProviderFailure 上的字符串/数值载荷存在，不参与控制流判断。
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    AUTH_ERROR = "auth_error"
    BAD_RESPONSE = "bad_response"
    NETWORK_ERROR = "network_error"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class ProviderFailure:
    kind: FailureKind
    message: str
    status: Optional[int] = None

    def describe(self) -> str:
        if self.status is not None:
            return f"{self.kind.value} ({self.status}): {self.message}"
        return f"{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class ProviderAttempt:
    """一次 Provider 尝试，仅用于进程内决策与日志，不落盘。"""

    provider: str
    model: Optional[str]
    attempt: int
    started_at: datetime
    elapsed: float
    text: Optional[str] = None
    failure: Optional[ProviderFailure] = None

    @property
    def ok(self) -> bool:
        return self.text is not None


@dataclass
class ChainResult:
    """FallbackChain 的输出。text 为 None 即表示链路耗尽。"""

    text: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    attempts: List[ProviderAttempt] = field(default_factory=list)
    last_failure: Optional[ProviderFailure] = None

    @property
    def exhausted(self) -> bool:
        return self.text is None

"""同一目标（provider + model）上的重试策略。

- RATE_LIMITED / SERVER_ERROR：指数退避，最多 max_attempts 次。
- TIMEOUT：预算更小（timeout_max_attempts），固定短延迟；连续超时通常意味着服务不可用。
- 其余失败不在同一目标上重试，直接切换到下一个模型/Provider，切换本身不等待。
"""

from dataclasses import dataclass
from typing import Optional

from chat_core.config.settings import Settings
from chat_core.domain.attempts import FailureKind

BACKOFF_KINDS = frozenset({FailureKind.RATE_LIMITED, FailureKind.SERVER_ERROR})


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0


NO_RETRY = RetryDecision(retry=False)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    timeout_max_attempts: int = 2
    timeout_delay: float = 0.25

    def should_retry(self, kind: FailureKind, attempt_number: int, max_attempts: Optional[int] = None) -> RetryDecision:
        """attempt_number 为刚刚失败的那次尝试的序号（从 1 开始）。"""

        budget = self.max_attempts if max_attempts is None else max_attempts
        if kind in BACKOFF_KINDS:
            if attempt_number < budget:
                return RetryDecision(True, self.backoff_delay(attempt_number))
            return NO_RETRY
        if kind is FailureKind.TIMEOUT:
            if attempt_number < min(self.timeout_max_attempts, budget):
                return RetryDecision(True, self.timeout_delay)
        return NO_RETRY

    def backoff_delay(self, attempt_number: int) -> float:
        return min(self.base_delay * 2 ** (attempt_number - 1), self.max_delay)

    @classmethod
    def for_rate_limited_provider(cls, cfg: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=cfg.retry_max_attempts,
            base_delay=cfg.retry_base_delay,
            max_delay=cfg.retry_max_delay,
            timeout_max_attempts=cfg.timeout_max_attempts,
            timeout_delay=cfg.timeout_retry_delay,
        )

    @classmethod
    def best_effort(cls, cfg: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=cfg.relay_max_attempts,
            base_delay=cfg.retry_base_delay,
            max_delay=cfg.retry_max_delay,
            timeout_max_attempts=min(cfg.timeout_max_attempts, cfg.relay_max_attempts),
            timeout_delay=cfg.timeout_retry_delay,
        )

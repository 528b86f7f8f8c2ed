"""Provider 回退链。

按优先级依次尝试各 Provider（以及 Provider 内的模型列表），每个目标按自己的
RetryPolicy 重试；第一个非空回复胜出，之后的 Provider 不再调用。
所有 Provider 失败、未配置或总截止时间耗尽时返回 exhausted 的 ChainResult，
由调用方转交本地兜底。Provider 失败从不以异常形式抛出本模块。
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

from chat_core.domain.attempts import ChainResult, FailureKind, ProviderAttempt, ProviderFailure
from chat_core.domain.exceptions import ProviderError
from chat_core.domain.models import utcnow
from chat_core.infrastructure.logging.logger import logger
from chat_core.resilience.retry import RetryPolicy

if TYPE_CHECKING:
    from chat_core.providers.base import ProviderClient


# 这些失败与模型无关，同一 Provider 的其余模型也不必再试
PROVIDER_SCOPED_KINDS = frozenset({FailureKind.NOT_CONFIGURED, FailureKind.AUTH_ERROR})

DEADLINE_FAILURE = ProviderFailure(kind=FailureKind.TIMEOUT, message="turn deadline exceeded")


@dataclass(frozen=True)
class ChainEntry:
    """链上的一个 Provider。models 为空时使用客户端的默认模型。"""

    client: "ProviderClient"
    policy: RetryPolicy
    models: Tuple[str, ...] = ()

    def targets(self) -> Tuple[Optional[str], ...]:
        return self.models or (self.client.default_model,)


class _Outcome(Enum):
    SUCCESS = "success"
    NEXT_TARGET = "next_target"
    NEXT_PROVIDER = "next_provider"
    DEADLINE = "deadline"


class FallbackChain:
    def __init__(
        self,
        entries: Iterable[ChainEntry],
        *,
        attempt_timeout: float,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries = tuple(entries)
        if not self._entries:
            raise ValueError("FallbackChain needs at least one provider entry")
        self._attempt_timeout = attempt_timeout
        self._sleep = sleep
        self._clock = clock

    @property
    def entries(self) -> Tuple[ChainEntry, ...]:
        return self._entries

    async def get_reply(self, user_text: str, overall_deadline: float) -> ChainResult:
        """在 overall_deadline 秒内按优先级获取回复。"""

        result = ChainResult()
        deadline_at = self._clock() + overall_deadline
        for entry in self._entries:
            for model in entry.targets():
                outcome = await self._run_target(entry, model, user_text, deadline_at, result)
                if outcome is _Outcome.SUCCESS:
                    return result
                if outcome is _Outcome.DEADLINE:
                    result.last_failure = DEADLINE_FAILURE
                    self._log(logging.WARNING, "Chain aborted at deadline", result, overall_deadline=overall_deadline)
                    return result
                if outcome is _Outcome.NEXT_PROVIDER:
                    break
        self._log(logging.WARNING, "Chain exhausted", result)
        return result

    async def _run_target(
        self,
        entry: ChainEntry,
        model: Optional[str],
        user_text: str,
        deadline_at: float,
        result: ChainResult,
    ) -> _Outcome:
        client = entry.client
        attempt = 0
        while True:
            remaining = deadline_at - self._clock()
            if remaining <= 0:
                return _Outcome.DEADLINE
            attempt += 1
            started_at = utcnow()
            t0 = self._clock()
            try:
                text = await client.send(user_text, min(self._attempt_timeout, remaining), model)
                failure = None
                if not text or not text.strip():
                    failure = ProviderFailure(kind=FailureKind.BAD_RESPONSE, message="empty reply")
            except ProviderError as e:
                failure = e.failure
            except Exception as e:
                # 客户端未归类的异常按 BAD_RESPONSE 处理，不中断整条链
                logger.exception("Provider raised unexpected error", extra={"extra": {"provider": client.name}})
                failure = ProviderFailure(kind=FailureKind.BAD_RESPONSE, message=f"{type(e).__name__}: {e}")
            elapsed = self._clock() - t0

            if failure is None:
                result.attempts.append(
                    ProviderAttempt(client.name, model, attempt, started_at, elapsed, text=text)
                )
                result.text, result.provider, result.model = text, client.name, model
                self._log(logging.INFO, "Provider replied", result, provider=client.name, model=model,
                          attempt=attempt, elapsed=round(elapsed, 3))
                return _Outcome.SUCCESS

            result.attempts.append(
                ProviderAttempt(client.name, model, attempt, started_at, elapsed, failure=failure)
            )
            result.last_failure = failure
            self._log(logging.WARNING, "Provider attempt failed", result, provider=client.name, model=model,
                      attempt=attempt, kind=failure.kind.value, status=failure.status,
                      error=failure.message[:200], elapsed=round(elapsed, 3))

            if failure.kind in PROVIDER_SCOPED_KINDS:
                return _Outcome.NEXT_PROVIDER
            decision = entry.policy.should_retry(failure.kind, attempt)
            # 退避时间超出剩余预算时不再等待，直接换下一个目标
            if not decision.retry or decision.delay >= deadline_at - self._clock():
                return _Outcome.NEXT_TARGET
            if decision.delay > 0:
                await self._sleep(decision.delay)

    @staticmethod
    def _log(level: int, message: str, result: ChainResult, **fields: Any) -> None:
        payload: Dict[str, Any] = {"attempts": len(result.attempts)}
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})

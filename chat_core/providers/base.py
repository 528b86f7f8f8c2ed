"""Provider 抽象接口。

FallbackChain 不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 OpenRouterClient）。
- send() 成功时返回非空回复文本；失败时抛出携带 ProviderFailure 的 ProviderError。
- 未配置（缺少密钥/地址/模型）时立即抛出 NOT_CONFIGURED，不产生任何网络请求。

HttpProviderClient 封装了公共部分：超时、状态码映射、响应解析与文本抽取，
具体厂商只需要声明请求格式和抽取规则。
"""

import asyncio
from typing import Any, Dict, Optional, Protocol, Tuple

import httpx

from chat_core.domain.attempts import FailureKind, ProviderFailure
from chat_core.domain.exceptions import ProviderError
from chat_core.providers.extraction import ExtractionRule, extract_text
from chat_core.providers.registry import ProviderConfig


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - is_configured: 是否具备调用所需的配置。
    - default_model: 未指定 model 时使用的模型（可为 None）。
    - send(user_text, deadline, model): 在 deadline 秒内完成一次调用。
    """

    name: str

    @property
    def is_configured(self) -> bool:
        ...

    @property
    def default_model(self) -> Optional[str]:
        ...

    async def send(self, user_text: str, deadline: float, model: Optional[str] = None) -> str:
        ...


def classify_status(status_code: int) -> Optional[FailureKind]:
    """把 HTTP 状态码映射为 FailureKind，2xx 返回 None。"""

    if 200 <= status_code < 300:
        return None
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if status_code in (401, 403):
        return FailureKind.AUTH_ERROR
    if status_code >= 500:
        return FailureKind.SERVER_ERROR
    return FailureKind.BAD_RESPONSE


class HttpProviderClient:
    """基于 httpx.AsyncClient 的 Provider 公共实现。"""

    name = "http"
    extraction_rules: Tuple[ExtractionRule, ...] = ()
    # 为 True 时接受非 JSON 的纯文本响应体
    accepts_plain_text = False
    # 抽取规则全部未命中时是否把整个响应体当作回复
    stringify_fallback = False
    # 为 True 时没有可用模型即视为未配置（URL 中需要模型名）
    requires_model = True

    def __init__(self, config: ProviderConfig):
        self._config = config

    @property
    def is_configured(self) -> bool:
        if self.requires_model and not self.default_model:
            return False
        return self._config.configured

    @property
    def default_model(self) -> Optional[str]:
        return self._config.models[0] if self._config.models else None

    async def send(self, user_text: str, deadline: float, model: Optional[str] = None) -> str:
        if not self.is_configured:
            raise self._fail(FailureKind.NOT_CONFIGURED, f"{self.name} is not configured")
        url, headers, payload = self._build_request(user_text, model or self.default_model)
        try:
            # wait_for 取消时会退出 AsyncClient 的 async with，连接随之释放
            resp = await asyncio.wait_for(self._post(url, headers, payload, deadline), timeout=deadline)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise self._fail(FailureKind.TIMEOUT, f"no response within {deadline:.2f}s")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise self._fail(FailureKind.NETWORK_ERROR, str(e) or type(e).__name__)
        except ValueError as e:
            # 请求体无法编码（如孤立代理字符）
            raise self._fail(FailureKind.BAD_RESPONSE, f"request not encodable: {e}")

        kind = classify_status(resp.status_code)
        if kind is not None:
            raise self._fail(kind, (resp.text or "")[:200], status=resp.status_code)

        raw = self._decode(resp)
        self._check_payload(raw)
        text = extract_text(raw, self.extraction_rules, self.stringify_fallback).strip()
        if not text:
            raise self._fail(FailureKind.BAD_RESPONSE, "empty reply")
        return text

    # ---- 子类实现 ----

    def _build_request(self, user_text: str, model: Optional[str]) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        raise NotImplementedError

    def _check_payload(self, raw: Any) -> None:
        """2xx 但响应体表示失败时，子类在这里抛出 ProviderError。"""

    # ---- 辅助方法 ----

    async def _post(self, url: str, headers: Dict[str, str], payload: Dict[str, Any], deadline: float) -> httpx.Response:
        async with httpx.AsyncClient(timeout=deadline, trust_env=False) as client:
            return await client.post(url, json=payload, headers=headers)

    def _decode(self, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            if self.accepts_plain_text:
                return resp.text
            raise self._fail(FailureKind.BAD_RESPONSE, f"unparseable body: {(resp.text or '')[:200]}")

    def _auth_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        headers.update(dict(self._config.headers))
        return headers

    def _fail(self, kind: FailureKind, message: str, status: Optional[int] = None) -> ProviderError:
        return ProviderError(ProviderFailure(kind=kind, message=message, status=status), provider=self.name)

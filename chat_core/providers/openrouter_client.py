"""OpenRouter Provider 适配器。

接口与 OpenAI 兼容，使用 chat/completions 端点：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>

模型列表由 FallbackChain 逐个传入 send(model=...)，本客户端只负责单次调用。
OpenRouter 偶尔以 200 返回 {"error": {...}}，这里按 error.code 重新归类。
"""

from typing import Any, Dict, Optional, Tuple

from chat_core.domain.attempts import FailureKind
from chat_core.providers.base import HttpProviderClient, classify_status
from chat_core.providers.extraction import field_path


class OpenRouterClient(HttpProviderClient):
    """OpenRouter 客户端实现。"""

    name = "openrouter"
    extraction_rules = (
        field_path("choices", 0, "message", "content"),
        field_path("choices", 0, "text"),
        field_path("output_text"),
    )

    def _build_request(self, user_text: str, model: Optional[str]) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": user_text}],
        }
        return f"{self._config.base_url}/chat/completions", self._auth_headers(), payload

    def _check_payload(self, raw: Any) -> None:
        if not isinstance(raw, dict) or raw.get("choices") or not raw.get("error"):
            return
        error = raw["error"]
        message = str(error.get("message") if isinstance(error, dict) else error)
        code = error.get("code") if isinstance(error, dict) else None
        kind = classify_status(code) if isinstance(code, int) else None
        raise self._fail(kind or FailureKind.BAD_RESPONSE, message[:200], status=code if isinstance(code, int) else None)

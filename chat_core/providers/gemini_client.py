"""Google Gemini Provider 适配器。

- URL: {base_url}/{model}:generateContent
- 认证: x-goog-api-key 请求头（不把密钥放进 URL，避免进入日志）

回复位于 candidates[0].content.parts[*].text，多段拼接为一条。
被安全策略拦截时没有 candidates，只有 promptFeedback，视为 BAD_RESPONSE。
"""

from typing import Any, Dict, Optional, Tuple

from chat_core.domain.attempts import FailureKind
from chat_core.providers.base import HttpProviderClient
from chat_core.providers.extraction import field_path, joined_text_parts


class GeminiClient(HttpProviderClient):
    name = "gemini"
    extraction_rules = (
        joined_text_parts("candidates", 0, "content", "parts"),
        field_path("candidates", 0, "output"),
    )

    def _build_request(self, user_text: str, model: Optional[str]) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {"Content-Type": "application/json", "x-goog-api-key": self._config.api_key or ""}
        payload = {"contents": [{"role": "user", "parts": [{"text": user_text}]}]}
        return f"{self._config.base_url}/{model}:generateContent", headers, payload

    def _check_payload(self, raw: Any) -> None:
        if isinstance(raw, dict) and not raw.get("candidates"):
            feedback = raw.get("promptFeedback") or {}
            reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            raise self._fail(FailureKind.BAD_RESPONSE, f"no candidates returned (blockReason={reason})")

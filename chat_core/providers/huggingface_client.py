"""Hugging Face Inference Provider 适配器（主 Provider）。

- URL: {base_url}/models/{model}
- 认证: Authorization: Bearer <api_key>

模型冷启动时服务端返回 503 + {"error": "... is currently loading"}，
按 SERVER_ERROR 交给 RetryPolicy 退避重试。
"""

from typing import Any, Dict, Optional, Tuple

from chat_core.providers.base import HttpProviderClient
from chat_core.providers.extraction import field_path


class HuggingFaceClient(HttpProviderClient):
    """Hugging Face Inference 客户端实现。"""

    name = "huggingface"
    extraction_rules = (
        field_path(0, "generated_text"),
        field_path("generated_text"),
        field_path("choices", 0, "message", "content"),
        field_path(0, "summary_text"),
    )

    max_new_tokens = 512

    def _build_request(self, user_text: str, model: Optional[str]) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        payload = {
            "inputs": user_text,
            "parameters": {"max_new_tokens": self.max_new_tokens, "return_full_text": False},
            "options": {"wait_for_model": True},
        }
        return f"{self._config.base_url}/models/{model}", self._auth_headers(), payload

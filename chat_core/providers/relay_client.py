"""通用免费中转 Provider 适配器。

中转服务没有统一协议：请求体为 {"message": text}，响应可能是 JSON 也可能是纯文本，
答案字段也五花八门，因此抽取规则较宽松。该 Provider 属于尽力而为，重试预算最小。
"""

from typing import Any, Dict, Optional, Tuple

from chat_core.providers.base import HttpProviderClient
from chat_core.providers.extraction import field_path, plain_text


class RelayClient(HttpProviderClient):
    name = "relay"
    accepts_plain_text = True
    stringify_fallback = True
    requires_model = False
    extraction_rules = (
        plain_text,
        field_path("reply"),
        field_path("response"),
        field_path("text"),
        field_path("message"),
        field_path("content"),
        field_path("output"),
        field_path("data", "reply"),
        field_path("choices", 0, "message", "content"),
    )

    def _build_request(self, user_text: str, model: Optional[str]) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        payload: Dict[str, Any] = {"message": user_text}
        if model:
            payload["model"] = model
        return str(self._config.base_url), self._auth_headers(), payload

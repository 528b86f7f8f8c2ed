"""回复文本抽取规则。

不同 Provider 把答案放在不同的嵌套字段里。每个 Provider 声明一个有序的规则元组，
每条规则是纯函数 ``raw -> Optional[str]``，按顺序尝试，第一个非空字符串胜出；
全部未命中时，只有声明了 stringify_fallback 的 Provider（中转）退回到原始响应体的字符串形式，
结构化 Provider 直接得到空串。
"""

import json
from typing import Any, Callable, Iterable, Optional, Union

ExtractionRule = Callable[[Any], Optional[str]]
PathKey = Union[str, int]

_MISSING = object()


def _walk(raw: Any, keys: Iterable[PathKey]) -> Any:
    node = raw
    for key in keys:
        if isinstance(key, int):
            if not isinstance(node, list) or not -len(node) <= key < len(node):
                return _MISSING
        elif not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    return node


def field_path(*keys: PathKey) -> ExtractionRule:
    """按 dict 键 / list 下标逐级取值，最终值为字符串时返回。"""

    def rule(raw: Any) -> Optional[str]:
        node = _walk(raw, keys)
        return node if isinstance(node, str) else None

    rule.__name__ = "field_path(" + ".".join(str(k) for k in keys) + ")"
    return rule


def joined_text_parts(*keys: PathKey) -> ExtractionRule:
    """拼接 keys 指向的列表中每一项的 text 字段（Gemini 的 parts 结构）。"""

    def rule(raw: Any) -> Optional[str]:
        node = _walk(raw, keys)
        if not isinstance(node, list):
            return None
        return "".join(p["text"] for p in node if isinstance(p, dict) and isinstance(p.get("text"), str))

    rule.__name__ = "joined_text_parts(" + ".".join(str(k) for k in keys) + ")"
    return rule


def plain_text(raw: Any) -> Optional[str]:
    return raw if isinstance(raw, str) else None


def stringify(raw: Any) -> str:
    if raw is None or raw == {} or raw == []:
        return ""
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False)


def extract_text(raw: Any, rules: Iterable[ExtractionRule], stringify_fallback: bool = True) -> str:
    """stringify_fallback 为 False 时，规则全部未命中返回空串（由调用方判为 BAD_RESPONSE）。"""

    for rule in rules:
        value = rule(raw)
        if value and value.strip():
            return value
    return stringify(raw) if stringify_fallback else ""

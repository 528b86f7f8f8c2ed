"""Provider 配置。

启动时由 Settings 构造一次不可变的 ProviderConfig，传入各 Provider 客户端构造函数；
客户端在调用时只读这里的值，不再读取环境变量。
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from chat_core.config.settings import Settings


@dataclass(frozen=True)
class ProviderConfig:
    """某个 Provider 的整体配置。

    - models: 按优先级排列的模型 ID，第一个是默认模型；为空表示该 Provider 不区分模型。
    - require_api_key: 为 False 时（如免费中转）只要有 base_url 即视为已配置。
    """

    name: str
    base_url: Optional[str]
    api_key: Optional[str] = None
    models: Tuple[str, ...] = ()
    headers: Tuple[Tuple[str, str], ...] = ()
    require_api_key: bool = True

    @property
    def configured(self) -> bool:
        if not self.base_url:
            return False
        if self.require_api_key and not self.api_key:
            return False
        return True


PROVIDER_NAMES = ("huggingface", "openrouter", "gemini", "relay")


def build_provider_configs(cfg: Settings) -> Dict[str, ProviderConfig]:
    """根据 Settings 构造全部 Provider 的配置。"""

    openrouter_headers = []
    if cfg.openrouter_referer:
        openrouter_headers.append(("HTTP-Referer", cfg.openrouter_referer))
    if cfg.openrouter_title:
        openrouter_headers.append(("X-Title", cfg.openrouter_title))

    return {
        "huggingface": ProviderConfig(
            name="huggingface",
            base_url=cfg.hf_base_url.rstrip("/"),
            api_key=cfg.hf_api_key,
            models=(cfg.hf_model,) if cfg.hf_model else (),
        ),
        "openrouter": ProviderConfig(
            name="openrouter",
            base_url=cfg.openrouter_base_url.rstrip("/"),
            api_key=cfg.openrouter_api_key,
            models=tuple(cfg.openrouter_model_list),
            headers=tuple(openrouter_headers),
        ),
        "gemini": ProviderConfig(
            name="gemini",
            base_url=cfg.gemini_base_url.rstrip("/"),
            api_key=cfg.gemini_api_key,
            models=(cfg.gemini_model,) if cfg.gemini_model else (),
        ),
        "relay": ProviderConfig(
            name="relay",
            base_url=cfg.relay_url,
            api_key=cfg.relay_api_key,
            require_api_key=False,
        ),
    }


def get_provider_config(configs: Mapping[str, ProviderConfig], name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in configs.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")

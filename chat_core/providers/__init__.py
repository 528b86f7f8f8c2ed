"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口与 HTTP 公共实现 (base)。
- 维护 Provider 配置 (registry) 与回复抽取规则 (extraction)。
- 提供各厂商的具体实现 (huggingface / openrouter / gemini / relay)。
"""

from typing import Dict, List, Mapping, Optional

from chat_core.config.settings import Settings, settings
from chat_core.domain.exceptions import ConfigurationError
from chat_core.providers.base import HttpProviderClient, ProviderClient
from chat_core.providers.gemini_client import GeminiClient
from chat_core.providers.huggingface_client import HuggingFaceClient
from chat_core.providers.openrouter_client import OpenRouterClient
from chat_core.providers.registry import ProviderConfig, build_provider_configs, get_provider_config
from chat_core.providers.relay_client import RelayClient
from chat_core.resilience.chain import ChainEntry, FallbackChain
from chat_core.resilience.retry import RetryPolicy

CLIENT_TYPES = {
    "huggingface": HuggingFaceClient,
    "openrouter": OpenRouterClient,
    "gemini": GeminiClient,
    "relay": RelayClient,
}

# 尽力而为的 Provider，使用最小重试预算
BEST_EFFORT_PROVIDERS = frozenset({"relay"})


def create_provider(name: str, configs: Optional[Mapping[str, ProviderConfig]] = None) -> HttpProviderClient:
    """根据名称创建 Provider 实例，默认使用启动配置。"""

    configs = configs if configs is not None else build_provider_configs(settings)
    key = name.lower()
    if key not in CLIENT_TYPES:
        raise ConfigurationError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {name!r}")
    return CLIENT_TYPES[key](get_provider_config(configs, key))


def build_chain_entries(cfg: Settings = settings) -> List[ChainEntry]:
    """按 provider_order 构造回退链条目，未配置的 Provider 也会保留（调用时零成本跳过）。"""

    configs: Dict[str, ProviderConfig] = build_provider_configs(cfg)
    entries: List[ChainEntry] = []
    for name in cfg.provider_order_list:
        client = create_provider(name, configs)
        if name in BEST_EFFORT_PROVIDERS:
            policy = RetryPolicy.best_effort(cfg)
        else:
            policy = RetryPolicy.for_rate_limited_provider(cfg)
        entries.append(ChainEntry(client=client, policy=policy, models=configs[name].models))
    return entries


def build_fallback_chain(cfg: Settings = settings) -> FallbackChain:
    return FallbackChain(build_chain_entries(cfg), attempt_timeout=cfg.provider_timeout)


__all__ = [
    "ProviderClient",
    "HttpProviderClient",
    "HuggingFaceClient",
    "OpenRouterClient",
    "GeminiClient",
    "RelayClient",
    "create_provider",
    "build_chain_entries",
    "build_fallback_chain",
]

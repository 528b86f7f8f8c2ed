"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。

启动时构造一次 ``settings``，之后由 ``providers.registry`` 转换为不可变的
ProviderConfig 传给各 Provider 客户端，运行期间不再重复读取环境变量。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_CORE_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Provider 相关配置 ----
    provider_order: str = Field(
        default="huggingface,openrouter,gemini,relay",
        description="Provider 优先级，逗号分隔，靠前的先尝试",
    )

    # Hugging Face Inference（主 Provider）
    hf_api_key: Optional[str] = Field(default=None, description="Hugging Face API 密钥")
    hf_base_url: str = Field(
        default="https://api-inference.huggingface.co",
        description="Hugging Face Inference 基础URL",
    )
    hf_model: str = Field(default="HuggingFaceH4/zephyr-7b-beta", description="Hugging Face 模型 ID")

    # OpenRouter（带模型回退列表）
    openrouter_api_key: Optional[str] = Field(default=None, description="OpenRouter API 密钥")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenRouter API 基础URL",
    )
    openrouter_models: str = Field(
        default=(
            "meta-llama/llama-3.1-8b-instruct:free,"
            "mistralai/mistral-7b-instruct:free,"
            "google/gemma-2-9b-it:free"
        ),
        description="OpenRouter 模型列表，逗号分隔，按顺序回退",
    )
    openrouter_referer: Optional[str] = Field(default=None, description="OpenRouter HTTP-Referer 头")
    openrouter_title: Optional[str] = Field(default=None, description="OpenRouter X-Title 头")

    # Google Gemini
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API 密钥")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini API 基础URL",
    )
    gemini_model: str = Field(default="models/gemini-2.5-flash-lite", description="Gemini 模型")

    # 通用免费中转
    relay_url: Optional[str] = Field(default=None, description="通用 HTTP 中转地址")
    relay_api_key: Optional[str] = Field(default=None, description="中转服务密钥（可选）")

    # ---- 超时与重试 ----
    provider_timeout: float = Field(default=15.0, gt=0, description="单次 Provider 调用超时（秒）")
    turn_deadline: float = Field(default=30.0, gt=0, description="单轮对话总截止时间（秒）")
    retry_max_attempts: int = Field(default=3, ge=1, le=10, description="限流/服务端错误最大尝试次数")
    relay_max_attempts: int = Field(default=1, ge=1, le=5, description="中转 Provider 最大尝试次数")
    timeout_max_attempts: int = Field(default=2, ge=1, le=5, description="超时最大尝试次数")
    retry_base_delay: float = Field(default=0.5, ge=0, description="指数退避基础延迟（秒）")
    retry_max_delay: float = Field(default=8.0, ge=0, description="指数退避最大延迟（秒）")
    timeout_retry_delay: float = Field(default=0.25, ge=0, description="超时重试固定延迟（秒）")

    # ---- 输入校验 ----
    max_message_length: int = Field(default=4000, ge=1, description="用户消息最大长度")
    max_thread_id_length: int = Field(default=200, ge=1, description="threadId 最大长度")

    # ---- 存储与日志 ----
    storage_root: str = Field(default=".storage", description="存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def provider_order_list(self) -> List[str]:
        return [name.lower() for name in _split_csv(self.provider_order)]

    @property
    def openrouter_model_list(self) -> List[str]:
        return _split_csv(self.openrouter_models)

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("hf_api_key", "openrouter_api_key", "gemini_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip() or None
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()

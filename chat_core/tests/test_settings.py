import pytest
from pydantic import ValidationError as PydanticValidationError

from chat_core.config.settings import Settings


def test_provider_order_is_normalized():
    cfg = Settings(provider_order=" HuggingFace , relay ,")
    assert cfg.provider_order_list == ["huggingface", "relay"]


def test_openrouter_model_list():
    cfg = Settings(openrouter_models="a:free, b:free,,c")
    assert cfg.openrouter_model_list == ["a:free", "b:free", "c"]


def test_short_api_key_rejected():
    with pytest.raises(PydanticValidationError):
        Settings(openrouter_api_key="short")


def test_blank_api_key_treated_as_missing():
    assert Settings(hf_api_key="   ").hf_api_key is None


def test_non_positive_deadline_rejected():
    with pytest.raises(PydanticValidationError):
        Settings(turn_deadline=0)


def test_yaml_config_file(monkeypatch, tmp_path):
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("turn_deadline: 12.5\nprovider_order: relay\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_CORE_CONFIG_FILE", str(cfg_file))
    monkeypatch.delenv("TURN_DEADLINE", raising=False)
    monkeypatch.delenv("PROVIDER_ORDER", raising=False)
    cfg = Settings()
    assert cfg.turn_deadline == 12.5
    assert cfg.provider_order_list == ["relay"]


def test_env_overrides_yaml(monkeypatch, tmp_path):
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("turn_deadline: 12.5\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_CORE_CONFIG_FILE", str(cfg_file))
    monkeypatch.setenv("TURN_DEADLINE", "7")
    assert Settings().turn_deadline == 7.0

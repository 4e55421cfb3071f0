from __future__ import annotations

import pytest

from transaction_extraction.config import ExtractionSettings


def test_empty_environment_keeps_defaults():
    assert ExtractionSettings.from_env({}) == ExtractionSettings()


def test_from_env_reads_prefixed_variables():
    settings = ExtractionSettings.from_env(
        {
            "TXN_EXTRACT_BASE_CURRENCY": "eur",
            "TXN_EXTRACT_LLM_ENABLED": "no",
            "TXN_EXTRACT_SMALL_MODEL": "qwen2:0.5b",
            "TXN_EXTRACT_TEMPERATURE": "0.5",
            "TXN_EXTRACT_MAX_ATTEMPTS": "5",
            "TXN_EXTRACT_JSON_MODE": "off",
            "TXN_EXTRACT_LARGE_MODEL": "   ",
        }
    )
    assert settings.base_currency == "EUR"
    assert settings.llm_enabled is False
    assert settings.small_model == "qwen2:0.5b"
    assert settings.large_model == ExtractionSettings().large_model
    assert settings.temperature == 0.5
    assert settings.max_attempts == 5
    assert settings.json_mode is False


def test_api_key_falls_back_to_openai_variable():
    assert ExtractionSettings.from_env({"OPENAI_API_KEY": "sk-a"}).llm_api_key == "sk-a"
    explicit = ExtractionSettings.from_env(
        {"OPENAI_API_KEY": "sk-a", "TXN_EXTRACT_LLM_API_KEY": "sk-b"}
    )
    assert explicit.llm_api_key == "sk-b"


def test_from_env_defaults_to_process_environment(monkeypatch):
    monkeypatch.setenv("TXN_EXTRACT_MAX_PROMPT_CHARS", "500")
    assert ExtractionSettings.from_env().max_prompt_chars == 500


def test_api_key_is_hidden_from_repr():
    assert "sk-secret" not in repr(ExtractionSettings(llm_api_key="sk-secret"))


@pytest.mark.parametrize(
    "env",
    [
        {"TXN_EXTRACT_LLM_ENABLED": "maybe"},
        {"TXN_EXTRACT_MAX_ATTEMPTS": "three"},
        {"TXN_EXTRACT_MAX_ATTEMPTS": "0"},
        {"TXN_EXTRACT_TEMPERATURE": "3"},
        {"TXN_EXTRACT_BASE_CURRENCY": "dollars"},
        {"TXN_EXTRACT_CACHE_TTL_SECONDS": "-5"},
    ],
)
def test_invalid_values_raise(env):
    with pytest.raises(ValueError):
        ExtractionSettings.from_env(env)

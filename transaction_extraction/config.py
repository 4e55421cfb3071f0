"""Runtime settings for the extraction pipeline.

Settings are a frozen value object passed explicitly to the functions that
need them. :meth:`ExtractionSettings.from_env` reads ``TXN_EXTRACT_*``
environment variables; nothing in this package reads the environment at
import time.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

_ENV_PREFIX = "TXN_EXTRACT_"
_CURRENCY_RE = re.compile(r"^[A-Z]{3,5}$")

# Ollama exposes an OpenAI-compatible endpoint under /v1.
DEFAULT_LLM_BASE_URL = "http://localhost:11434/v1"
DEFAULT_SMALL_MODEL = "llama3:latest"
DEFAULT_LARGE_MODEL = "deepseek-r1:8b"


def _env_bool(raw: str, *, name: str) -> bool:
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (1/0, true/false, yes/no), got {raw!r}")


def _env_int(raw: str, *, name: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(raw: str, *, name: str) -> float:
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class ExtractionSettings:
    """Configuration for one extraction pipeline.

    Attributes
    ----------
    base_currency:
        Currency code assigned when the text does not state one.
    llm_enabled:
        When ``False`` the orchestrator skips the language-model stage.
    llm_base_url / llm_api_key:
        OpenAI-compatible endpoint (local Ollama by default, DeepSeek or
        OpenAI work the same way) and its key. Ollama ignores the key.
    small_model / large_model:
        Model picked for short single-amount inputs vs everything else.
    temperature:
        Sampling temperature for extraction calls.
    json_mode:
        Request ``response_format={"type": "json_object"}`` from the endpoint.
    max_prompt_chars:
        Input text beyond this many characters is truncated in the prompt.
    request_timeout:
        Per-request timeout in seconds.
    max_attempts:
        Total attempts per completion (retries apply to 429/5xx only).
    cache_ttl_seconds:
        Lifetime of entries in an :class:`~transaction_extraction.cache.ExtractionCache`.
    """

    base_currency: str = "USD"
    llm_enabled: bool = True
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    llm_api_key: str = field(default="ollama", repr=False)
    small_model: str = DEFAULT_SMALL_MODEL
    large_model: str = DEFAULT_LARGE_MODEL
    temperature: float = 0.1
    json_mode: bool = True
    max_prompt_chars: int = 12_000
    request_timeout: float = 30.0
    max_attempts: int = 3
    cache_ttl_seconds: float = 300.0

    def __post_init__(self) -> None:
        if not _CURRENCY_RE.fullmatch(self.base_currency):
            raise ValueError(
                f"base_currency must be an upper-case currency code, got {self.base_currency!r}"
            )
        if self.max_prompt_chars <= 0:
            raise ValueError("max_prompt_chars must be a positive integer")
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be a positive integer")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be within [0, 2]")
        if self.request_timeout <= 0 or self.cache_ttl_seconds <= 0:
            raise ValueError("request_timeout and cache_ttl_seconds must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ExtractionSettings:
        """Build settings from ``TXN_EXTRACT_*`` variables (unset ones keep defaults).

        ``TXN_EXTRACT_LLM_API_KEY`` falls back to ``OPENAI_API_KEY``.
        """

        env = os.environ if environ is None else environ

        def get(key: str) -> str | None:
            val = env.get(_ENV_PREFIX + key)
            return val if val is not None and val.strip() else None

        kwargs: dict[str, object] = {}
        if (v := get("BASE_CURRENCY")) is not None:
            kwargs["base_currency"] = v.strip().upper()
        if (v := get("LLM_ENABLED")) is not None:
            kwargs["llm_enabled"] = _env_bool(v, name=_ENV_PREFIX + "LLM_ENABLED")
        if (v := get("LLM_BASE_URL")) is not None:
            kwargs["llm_base_url"] = v.strip()
        api_key = get("LLM_API_KEY") or env.get("OPENAI_API_KEY")
        if api_key:
            kwargs["llm_api_key"] = api_key.strip()
        if (v := get("SMALL_MODEL")) is not None:
            kwargs["small_model"] = v.strip()
        if (v := get("LARGE_MODEL")) is not None:
            kwargs["large_model"] = v.strip()
        if (v := get("TEMPERATURE")) is not None:
            kwargs["temperature"] = _env_float(v, name=_ENV_PREFIX + "TEMPERATURE")
        if (v := get("JSON_MODE")) is not None:
            kwargs["json_mode"] = _env_bool(v, name=_ENV_PREFIX + "JSON_MODE")
        if (v := get("MAX_PROMPT_CHARS")) is not None:
            kwargs["max_prompt_chars"] = _env_int(v, name=_ENV_PREFIX + "MAX_PROMPT_CHARS")
        if (v := get("REQUEST_TIMEOUT")) is not None:
            kwargs["request_timeout"] = _env_float(v, name=_ENV_PREFIX + "REQUEST_TIMEOUT")
        if (v := get("MAX_ATTEMPTS")) is not None:
            kwargs["max_attempts"] = _env_int(v, name=_ENV_PREFIX + "MAX_ATTEMPTS")
        if (v := get("CACHE_TTL_SECONDS")) is not None:
            kwargs["cache_ttl_seconds"] = _env_float(v, name=_ENV_PREFIX + "CACHE_TTL_SECONDS")
        return cls(**kwargs)  # type: ignore[arg-type]

"""Completion client for OpenAI-compatible chat endpoints.

Public API:
    - :class:`CompletionClient` (protocol consumed by the extraction stage)
    - :class:`CompletionOptions`, :class:`ChatMessage`
    - :class:`TransportError`
    - :class:`OpenAICompletionClient` (OpenAI SDK, async)
    - :func:`pick_model`, :func:`fallback_message`, :func:`redact`

The SDK client is created lazily on first use; nothing here touches the
network or the environment at import time.
"""

from __future__ import annotations

import asyncio
import random
import re
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, TypedDict

from openai import AsyncOpenAI, OpenAIError

from .config import ExtractionSettings
from .logging_setup import get_logger

# ---- Tunables (private) ------------------------------------------------------

_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20

# Inputs at or above this length always go to the large model.
_SMALL_MODEL_MAX_CHARS: int = 140
_AMOUNT_TOKEN_RE = re.compile(r"[$£€¥₹₩]\s?-?\d[\d,]*\.?\d*")

_SECRET_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"sk-[A-Za-z0-9_\-]{6,}"), "sk-***"),
    (re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=\-]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"(api[_-]?key[\"']?\s*[:=]\s*[\"']?)[^\s\"'&,]+", re.IGNORECASE), r"\1***"),
)

_logger = get_logger("transaction_extraction.llm_client")


class ChatMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass(frozen=True, slots=True)
class CompletionOptions:
    """Per-call completion parameters."""

    model: str
    temperature: float = 0.1
    json_mode: bool = True


class CompletionClient(Protocol):
    """Anything that can turn chat messages into a completion string."""

    async def generate_completion(
        self, messages: Sequence[ChatMessage], options: CompletionOptions
    ) -> str:
        """Return the raw completion text or raise :class:`TransportError`."""
        ...


class TransportError(Exception):
    """A completion call failed (network, HTTP status, or empty response).

    ``status_code`` carries the HTTP status when the endpoint answered.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---- Helpers -----------------------------------------------------------------


def redact(text: str) -> str:
    """Mask API keys and bearer tokens in ``text``."""

    out = text
    for pattern, replacement in _SECRET_PATTERNS:
        out = pattern.sub(replacement, out)
    return out


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors."""

    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _backoff_delay(attempt_no: int) -> float:
    if attempt_no - 1 < len(_BACKOFF_SCHEDULE_SEC):
        base = _BACKOFF_SCHEDULE_SEC[attempt_no - 1]
    else:
        base = _BACKOFF_SCHEDULE_SEC[-1]
    jitter = base * _JITTER_PCT
    return max(0.0, base + random.uniform(-jitter, jitter))


def _completion_text(resp: Any) -> str:
    """Pull the message text out of a chat-completions result.

    Raises ``TransportError`` when the response carries no text.
    """

    try:
        content = resp.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        content = None
    if not isinstance(content, str) or not content.strip():
        raise TransportError("Unexpected chat completion shape; no message content")
    return content


def pick_model(text: str, settings: ExtractionSettings) -> str:
    """Pick the small model for short single-line, single-amount input.

    Everything else (multi-line pastes, several amounts, CSV-like rows) goes
    to the large model.
    """

    short = len(text) < _SMALL_MODEL_MAX_CHARS
    single_line = "\n" not in text.strip()
    one_amount = len(_AMOUNT_TOKEN_RE.findall(text)) <= 1
    csv_like = any(line.count(",") > 3 for line in text.splitlines())
    if short and single_line and one_amount and not csv_like:
        return settings.small_model
    return settings.large_model


def fallback_message(error: BaseException) -> str:
    """Return a user-facing explanation for a failed completion call.

    Credentials in the underlying error text are masked.
    """

    status = getattr(error, "status_code", None)
    detail = redact(str(error)) or error.__class__.__name__
    if status in (401, 403):
        return "The language-model service rejected the configured credentials."
    if status == 404 or "not found" in detail.lower():
        return (
            "The configured model is not available on the language-model service. "
            f"Check that it is installed or pulled. ({detail})"
        )
    if status == 429:
        return "The language-model service is rate limiting requests. Please try again shortly."
    if status is None:
        return (
            "Could not reach the language-model service. Make sure it is running and "
            f"reachable. ({detail})"
        )
    return f"The language-model service returned an error ({status}): {detail}"


# ---- Client ------------------------------------------------------------------


class OpenAICompletionClient:
    """:class:`CompletionClient` backed by ``openai.AsyncOpenAI``.

    Works with any OpenAI-compatible chat endpoint (a local Ollama server
    under ``/v1``, DeepSeek, OpenAI). HTTP 429 and 5xx responses are retried
    with jittered backoff up to ``settings.max_attempts`` total attempts;
    every other failure is terminal.
    """

    def __init__(
        self,
        settings: ExtractionSettings,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._sleep = sleep
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                base_url=self._settings.llm_base_url,
                api_key=self._settings.llm_api_key,
                timeout=self._settings.request_timeout,
                # SDK retries off; generate_completion owns the retry loop.
                max_retries=0,
            )
        return self._client

    async def generate_completion(
        self, messages: Sequence[ChatMessage], options: CompletionOptions
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": options.model,
            "messages": list(messages),
            "temperature": options.temperature,
        }
        if options.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            client = self._get_client()
        except OpenAIError as e:
            raise TransportError(redact(str(e))) from e

        max_attempts = self._settings.max_attempts
        attempt = 1
        while True:
            t0 = time.perf_counter()
            try:
                resp = await client.chat.completions.create(**kwargs)
            except OpenAIError as e:
                dt_ms = (time.perf_counter() - t0) * 1000.0
                status = getattr(e, "status_code", None)
                if attempt >= max_attempts or not _is_retryable(e):
                    _logger.error(
                        "llm_client:completion_failed model=%s attempt=%d latency_ms=%.2f "
                        "status=%s error=%s",
                        options.model,
                        attempt,
                        dt_ms,
                        status,
                        e.__class__.__name__,
                    )
                    raise TransportError(redact(str(e)), status_code=status) from e
                _logger.warning(
                    "llm_client:completion_retry model=%s attempt=%d latency_ms=%.2f "
                    "status=%s error=%s",
                    options.model,
                    attempt,
                    dt_ms,
                    status,
                    e.__class__.__name__,
                )
                await self._sleep(_backoff_delay(attempt))
                attempt += 1
                continue

            dt_ms = (time.perf_counter() - t0) * 1000.0
            text = _completion_text(resp)
            _logger.info(
                "llm_client:completion_ok model=%s attempt=%d latency_ms=%.2f chars=%d",
                options.model,
                attempt,
                dt_ms,
                len(text),
            )
            return text

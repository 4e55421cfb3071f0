"""Language-model extraction stage.

Prompt -> completion -> JSON recovery -> schema validation -> conversion.
Every outcome is returned as a stage result; only unexpected programming
errors propagate (the orchestrator contains those).
"""

from __future__ import annotations

from datetime import date

from .config import ExtractionSettings
from .dates import DateResolver
from .json_repair import parse_json_payload
from .llm_client import (
    CompletionClient,
    CompletionOptions,
    TransportError,
    fallback_message,
    pick_model,
)
from .logging_setup import get_logger, preview
from .models import UNKNOWN, Strategy, Transaction, is_iso_date_or_unknown
from .normalize import build_transaction
from .prompting import build_messages
from .results import Extracted, ParseFailure, StageResult, TransportFailure, ValidationFailure
from .schema import LlmTransaction, validate_payload

_logger = get_logger("transaction_extraction.llm_extraction")


def _resolve_llm_date(raw: str, resolve_date: DateResolver) -> str:
    value = raw.strip()
    if not value or value.lower() == UNKNOWN:
        return UNKNOWN
    if is_iso_date_or_unknown(value):
        return value
    # Relative phrases such as "yesterday" are resolved locally.
    return resolve_date(value)


def to_transaction(
    item: LlmTransaction,
    *,
    batch_id: str,
    resolve_date: DateResolver,
    base_currency: str,
) -> Transaction | None:
    """Convert one validated model element into a finalized transaction.

    Returns ``None`` for void elements.
    """

    return build_transaction(
        batch_id=batch_id,
        date=_resolve_llm_date(item.date, resolve_date),
        description=item.description,
        type_=item.type,
        amount=item.amount,
        direction=item.direction,
        currency=item.currency,
        base_currency=base_currency,
        notes=item.details or "",
        needs_clarification=item.needs_clarification,
    )


async def extract_with_llm(
    text: str,
    *,
    batch_id: str,
    client: CompletionClient,
    settings: ExtractionSettings,
    resolve_date: DateResolver,
    today: date,
) -> StageResult:
    """Run the language-model stage over ``text``.

    Returns
    -------
    StageResult
        ``Extracted`` (possibly empty) on success; ``TransportFailure`` when
        the completion call fails (message already redacted);
        ``ParseFailure`` / ``ValidationFailure`` when the response cannot be
        decoded or does not match the payload schema.
    """

    messages = build_messages(
        text,
        today=today,
        base_currency=settings.base_currency,
        max_chars=settings.max_prompt_chars,
    )
    options = CompletionOptions(
        model=pick_model(text, settings),
        temperature=settings.temperature,
        json_mode=settings.json_mode,
    )
    _logger.debug("llm_extraction:request model=%s chars=%d", options.model, len(text))

    try:
        raw = await client.generate_completion(messages, options)
    except TransportError as e:
        return TransportFailure(message=fallback_message(e), error_type=e.__class__.__name__)

    parsed = parse_json_payload(raw)
    if isinstance(parsed, ParseFailure):
        return parsed

    validated = validate_payload(parsed)
    if isinstance(validated, ValidationFailure):
        return validated

    out: list[Transaction] = []
    for index, item in enumerate(validated):
        txn = to_transaction(
            item,
            batch_id=batch_id,
            resolve_date=resolve_date,
            base_currency=settings.base_currency,
        )
        if txn is None:
            _logger.debug(
                "llm_extraction:void_dropped index=%d description=%s",
                index,
                preview(item.description),
            )
            continue
        out.append(txn)
    return Extracted.of(out, Strategy.LLM)

"""Cascade orchestrator: pick exactly one extraction strategy per input.

Order:
    1. pre-filter (:func:`~transaction_extraction.extractors.has_transaction_signal`)
    2. language model (when a client is configured and enabled)
    3. bank-statement extractor
    4. conversational extractor
    5. single-transaction heuristic

The first stage that yields a non-empty batch wins and its batch is
returned unchanged; batches from different stages are never merged. Stage
failures are logged and recorded on the outcome, never raised.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date

from .cache import ExtractionCache
from .config import ExtractionSettings
from .dates import DateResolver, make_resolver
from .extractors import (
    extract_bank_statement,
    extract_conversational,
    extract_single_heuristic,
    has_transaction_signal,
)
from .llm_client import CompletionClient
from .llm_extraction import extract_with_llm
from .logging_setup import get_logger, preview
from .models import Strategy, Transaction
from .results import (
    Extracted,
    ParseFailure,
    StageError,
    StageFailure,
    StageResult,
    TransportFailure,
    ValidationFailure,
)

_logger = get_logger("transaction_extraction.orchestrator")

type _Stage = Callable[[], Awaitable[StageResult]]


@dataclass(frozen=True, slots=True)
class CascadeOutcome:
    """Result of one cascade run.

    Attributes
    ----------
    strategy:
        The stage whose batch was returned, or ``Strategy.NONE``.
    transactions:
        The winning batch (empty when every stage came up empty).
    failures:
        Failure variants from stages that ran before the winner.
    from_cache:
        True when the batch was served from an :class:`ExtractionCache`.
    """

    strategy: Strategy
    transactions: tuple[Transaction, ...]
    failures: tuple[StageFailure, ...] = ()
    from_cache: bool = False


async def _guarded(strategy: Strategy, stage: _Stage) -> StageResult:
    try:
        return await stage()
    except Exception as exc:  # noqa: BLE001
        return StageError(strategy=strategy, error=exc)


def _settle(result: StageResult, failures: list[StageFailure]) -> Extracted | None:
    """Return the batch when ``result`` wins; otherwise log and record it."""

    match result:
        case Extracted(transactions=txns) if txns:
            return result
        case Extracted(strategy=strategy):
            _logger.info("cascade:stage_empty strategy=%s", strategy)
            return None
        case ParseFailure(reason=reason, payload=payload):
            _logger.warning("cascade:parse_failed reason=%s payload=%s", reason, preview(payload))
        case ValidationFailure(errors=errors, payload=payload):
            _logger.warning(
                "cascade:validation_failed errors=%d first=%s payload=%s",
                len(errors),
                errors[0] if errors else "-",
                preview(payload),
            )
        case TransportFailure(message=message, error_type=error_type):
            _logger.warning("cascade:transport_failed error=%s message=%s", error_type, message)
        case StageError(strategy=strategy, error=error):
            _logger.error(
                "cascade:stage_error strategy=%s error=%s",
                strategy,
                error.__class__.__name__,
                exc_info=error,
            )
    failures.append(result)
    return None


async def run_cascade(
    text: str,
    *,
    batch_id: str,
    client: CompletionClient | None = None,
    settings: ExtractionSettings | None = None,
    resolve_date: DateResolver | None = None,
    today: date | None = None,
    cache: ExtractionCache | None = None,
) -> CascadeOutcome:
    """Run the extraction cascade over ``text``.

    Parameters
    ----------
    text:
        Raw user input (chat message, pasted statement, bulk blob).
    batch_id:
        Caller-supplied identifier stamped on every returned transaction.
    client:
        Completion client; the language-model stage is skipped when ``None``
        or when ``settings.llm_enabled`` is false.
    settings:
        Pipeline settings (defaults to :class:`ExtractionSettings`).
    resolve_date / today:
        Date resolver and reference day. The resolver defaults to
        :func:`~transaction_extraction.dates.make_resolver` bound to ``today``.
    cache:
        Optional caller-owned cache consulted before and filled after a run.
    """

    if not batch_id:
        raise ValueError("batch_id is required")
    cfg = settings or ExtractionSettings()
    ref_day = today or date.today()
    resolver = resolve_date or make_resolver(ref_day)

    if cache is not None:
        hit = cache.get(text, batch_id=batch_id)
        if hit is not None:
            txns, strategy = hit
            _logger.info("cascade:cache_hit strategy=%s count=%d", strategy, len(txns))
            return CascadeOutcome(strategy=strategy, transactions=tuple(txns), from_cache=True)

    if not has_transaction_signal(text):
        _logger.info("cascade:no_signal text=%s", preview(text))
        return CascadeOutcome(strategy=Strategy.NONE, transactions=())

    async def bank_statement() -> StageResult:
        txns = extract_bank_statement(
            text, batch_id=batch_id, resolve_date=resolver, base_currency=cfg.base_currency
        )
        return Extracted.of(txns, Strategy.BANK_STATEMENT)

    async def conversational() -> StageResult:
        txns = extract_conversational(
            text,
            batch_id=batch_id,
            resolve_date=resolver,
            today=ref_day,
            base_currency=cfg.base_currency,
        )
        return Extracted.of(txns, Strategy.CONVERSATIONAL)

    async def heuristic() -> StageResult:
        txns = extract_single_heuristic(
            text, batch_id=batch_id, resolve_date=resolver, base_currency=cfg.base_currency
        )
        return Extracted.of(txns, Strategy.HEURISTIC)

    stages: list[tuple[Strategy, _Stage]] = []
    if client is not None and cfg.llm_enabled:
        llm_client = client

        async def llm() -> StageResult:
            return await extract_with_llm(
                text,
                batch_id=batch_id,
                client=llm_client,
                settings=cfg,
                resolve_date=resolver,
                today=ref_day,
            )

        stages.append((Strategy.LLM, llm))
    else:
        _logger.debug("cascade:llm_skipped configured=%s", client is not None)
    stages += [
        (Strategy.BANK_STATEMENT, bank_statement),
        (Strategy.CONVERSATIONAL, conversational),
        (Strategy.HEURISTIC, heuristic),
    ]

    failures: list[StageFailure] = []
    for strategy, stage in stages:
        won = _settle(await _guarded(strategy, stage), failures)
        if won is None:
            continue
        _logger.info("cascade:stage_done strategy=%s count=%d", strategy, len(won.transactions))
        if cache is not None:
            cache.put(text, won.transactions, strategy)
        return CascadeOutcome(
            strategy=strategy,
            transactions=won.transactions,
            failures=tuple(failures),
        )

    _logger.info("cascade:all_empty failures=%d", len(failures))
    return CascadeOutcome(strategy=Strategy.NONE, transactions=(), failures=tuple(failures))


async def extract_transactions(
    text: str,
    *,
    batch_id: str,
    client: CompletionClient | None = None,
    settings: ExtractionSettings | None = None,
    resolve_date: DateResolver | None = None,
    today: date | None = None,
    cache: ExtractionCache | None = None,
) -> list[Transaction]:
    """Return the validated transactions in ``text`` (possibly empty)."""

    outcome = await run_cascade(
        text,
        batch_id=batch_id,
        client=client,
        settings=settings,
        resolve_date=resolve_date,
        today=today,
        cache=cache,
    )
    return list(outcome.transactions)

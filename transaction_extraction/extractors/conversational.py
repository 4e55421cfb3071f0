"""Extractor for chat-style sentences such as ``I spent $20 on lunch yesterday``.

Three templates are tried:

1. ``I/we spent|paid|bought X on|for Y [date]`` -> money out
2. ``I/we got|received|earned X from|for Y [date]`` -> money in
3. bare ``X for|on Y [date]`` -> money out; only consulted when the first
   two templates found nothing
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date

from ..dates import DateResolver
from ..logging_setup import get_logger, preview
from ..models import UNKNOWN, Direction, Transaction
from ..normalize import CURRENCY_SYMBOLS, annotate_foreign_currency, build_transaction

_logger = get_logger("transaction_extraction.extractors.conversational")

_SYMBOLS = "$" + "".join(CURRENCY_SYMBOLS)
_AMOUNT = rf"[{re.escape(_SYMBOLS)}]?\s?([\d,]+(?:\.\d+)?)"
_DATE_FRAGMENT = (
    r"yesterday|today|monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|\d{1,2}/\d{1,2}(?:/\d{2,4})?"
    r"|\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\w*\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s*\d{4})?"
)
# Description stops at punctuation, a newline, or end of text; an optional
# trailing date fragment is split off first.
_TAIL = rf"([^.,!?\n]+?)(?:\s+(?:on|last|this)?\s*({_DATE_FRAGMENT}))?\s*(?=[.,!?\n]|$)"

_SPEND_RE = re.compile(
    rf"\b(?:I|we)\s+(?:spent|paid|bought)\s+{_AMOUNT}\s+(?:on|for)\s+{_TAIL}",
    re.IGNORECASE,
)
_INCOME_RE = re.compile(
    rf"\b(?:I|we)\s+(?:got|received|earned)\s+{_AMOUNT}\s+(?:from|for)\s+{_TAIL}",
    re.IGNORECASE,
)
_BARE_RE = re.compile(rf"{_AMOUNT}\s+(?:for|on)\s+{_TAIL}", re.IGNORECASE)
_GENERAL_DATE_RE = re.compile(
    r"\b(?:on|last|this)?\s*(yesterday|today|monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|\d{1,2}/\d{1,2}(?:/\d{2,4})?"
    r"|\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\w*\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s*\d{4})?)\b",
    re.IGNORECASE,
)

# (keywords in lower-cased description, type label); first hit wins.
_TYPE_BUCKETS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("card", "credit", "debit"), "Card"),
    (("cash",), "Cash"),
    (("paypal", "venmo", "zelle"), "Transfer"),
    (("check",), "Check"),
)


@dataclass(frozen=True, slots=True)
class _Mention:
    amount: float
    description: str
    date_fragment: str | None
    direction: Direction
    span_text: str


def _mentions(pattern: re.Pattern[str], text: str, direction: Direction) -> Iterator[_Mention]:
    for m in pattern.finditer(text):
        try:
            amount = float(m.group(1).replace(",", ""))
        except ValueError:
            continue
        yield _Mention(
            amount=amount,
            description=m.group(2).strip(),
            date_fragment=m.group(3).strip() if m.group(3) else None,
            direction=direction,
            span_text=m.group(0),
        )


def _bare_mentions(text: str) -> Iterator[_Mention]:
    lowered = text.lower()
    for mention in _mentions(_BARE_RE, text, Direction.OUT):
        span = mention.span_text.lower()
        if f"spent {span}" in lowered or f"paid {span}" in lowered:
            continue
        yield mention


def _type_for(description: str) -> str:
    lowered = description.lower()
    for needles, label in _TYPE_BUCKETS:
        if any(n in lowered for n in needles):
            return label
    return UNKNOWN


def _general_date(text: str, resolve_date: DateResolver, today: date) -> str:
    m = _GENERAL_DATE_RE.search(text)
    if m is not None:
        resolved = resolve_date(m.group(0))
        if resolved != UNKNOWN:
            return resolved
    return today.isoformat()


def _build(
    mention: _Mention,
    default_date: str,
    batch_id: str,
    resolve_date: DateResolver,
    base_currency: str,
) -> Transaction | None:
    txn_date = default_date
    if mention.date_fragment:
        specific = resolve_date(mention.date_fragment)
        if specific != UNKNOWN:
            txn_date = specific
    description, code = annotate_foreign_currency(mention.description, mention.span_text)
    return build_transaction(
        batch_id=batch_id,
        date=txn_date,
        description=description,
        type_=_type_for(mention.description),
        amount=mention.amount,
        direction=mention.direction,
        currency=code,
        base_currency=base_currency,
    )


def extract_conversational(
    text: str,
    *,
    batch_id: str,
    resolve_date: DateResolver,
    today: date,
    base_currency: str = "USD",
) -> list[Transaction]:
    """Extract transactions described in conversational sentences.

    A mention that fails unexpectedly is logged and skipped; the extractor
    itself never raises.

    Parameters
    ----------
    text:
        The user's message.
    batch_id:
        Identifier of the current extraction call.
    resolve_date:
        Resolver used for date fragments.
    today:
        Fallback date when the text names no resolvable date.
    base_currency:
        Currency assigned unless a recognized foreign symbol appears in the text.
    """

    mentions = [
        *_mentions(_SPEND_RE, text, Direction.OUT),
        *_mentions(_INCOME_RE, text, Direction.IN),
    ]
    if not mentions:
        mentions = list(_bare_mentions(text))
    if not mentions:
        return []

    try:
        default_date = _general_date(text, resolve_date, today)
    except Exception:  # noqa: BLE001
        _logger.warning("conversational:date_failed text=%s", preview(text), exc_info=True)
        default_date = today.isoformat()
    out: list[Transaction] = []
    for mention in mentions:
        if not mention.amount > 0:
            continue
        try:
            txn = _build(mention, default_date, batch_id, resolve_date, base_currency)
        except Exception:  # noqa: BLE001 - skip the mention
            _logger.warning(
                "conversational:mention_failed mention=%s",
                preview(mention.span_text),
                exc_info=True,
            )
            continue
        if txn is not None:
            out.append(txn)
    _logger.debug("conversational:done count=%d", len(out))
    return out

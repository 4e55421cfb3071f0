"""Last-resort extractor for a single loosely phrased transaction.

Also hosts :func:`has_transaction_signal`, the cheap pre-filter the
orchestrator runs before any extraction work.
"""

from __future__ import annotations

import re

from ..dates import DateResolver
from ..logging_setup import get_logger, preview
from ..models import UNKNOWN, Direction, Transaction
from ..normalize import CURRENCY_SYMBOLS, build_transaction, detect_currency, parse_amount

_logger = get_logger("transaction_extraction.extractors.heuristic")

_SYMBOL_CLASS = "[" + re.escape("$" + "".join(CURRENCY_SYMBOLS)) + "]"
_NUMBER = r"\d[\d,]*(?:\.\d+)?"
_CURRENCY_WORDS = r"dollars?|bucks|usd|eur|euros?|gbp|pounds?|jpy|yen|inr|rupees?|krw|won|cad"

_SYMBOL_AMOUNT_RE = re.compile(rf"{_SYMBOL_CLASS}\s?-?{_NUMBER}")
_WORD_AMOUNT_RE = re.compile(rf"\b({_NUMBER})\s*({_CURRENCY_WORDS})\b", re.IGNORECASE)
# Currency word with any plural "s" stripped -> code.
_WORD_CODES = {
    "dollar": "USD",
    "buck": "USD",
    "usd": "USD",
    "eur": "EUR",
    "euro": "EUR",
    "gbp": "GBP",
    "pound": "GBP",
    "jpy": "JPY",
    "yen": "JPY",
    "inr": "INR",
    "rupee": "INR",
    "krw": "KRW",
    "won": "KRW",
    "cad": "CAD",
}
_BARE_NUMBER_RE = re.compile(rf"(?<![\w/.-]){_NUMBER}(?![\w/-])")
_DATE_FRAGMENT_RE = re.compile(
    r"\b(?:yesterday|today|tomorrow|\d+\s+days?\s+ago"
    r"|(?:on\s+|last\s+|this\s+)?(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)"
    r"|\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}/\d{1,2}(?:/\d{2,4})?"
    r"|(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s*\d{4})?)\b",
    re.IGNORECASE,
)
_TXN_VERBS = (
    r"spent|paid|purchased|bought|received|earned|deposited|withdrew|transferred|sent|got|sold"
)
_VERB_NUMBER_RE = re.compile(rf"\b(?:{_TXN_VERBS})\b\D{{0,20}}\d", re.IGNORECASE)
_TXN_KEYWORD_RE = re.compile(
    rf"\b(?:{_TXN_VERBS}|deposit|income|expense|cost|transfer|charge|fee|payment|salary"
    r"|invoice|refund|paycheck|rent)\b",
    re.IGNORECASE,
)

_IN_WORDS = re.compile(
    r"\b(?:received|receive|got|earned|deposit(?:ed)?|income|salary|paycheck|refund(?:ed)?|sold)\b",
    re.IGNORECASE,
)
_OUT_WORDS = re.compile(
    r"\b(?:spent|spend|paid|pay|bought|buy|purchased?|cost|charged?|fee|sent|withdrew)\b",
    re.IGNORECASE,
)
_SUBJECT_RE = re.compile(r"\b(?:for|on|at|from|to)\s+([A-Za-z][\w'&-]*)", re.IGNORECASE)
_NOT_SUBJECTS = frozenset(
    {
        "yesterday",
        "today",
        "tomorrow",
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
        "sunday",
        "last",
        "this",
        "the",
        "a",
        "an",
        "my",
    }
)


def has_transaction_signal(text: str) -> bool:
    """Return True when ``text`` plausibly mentions a transaction.

    Plausible means: an amount-like token, a transaction verb followed by a
    number, or a transaction keyword together with a date fragment.
    """

    if not text or not text.strip():
        return False
    if _SYMBOL_AMOUNT_RE.search(text) or _WORD_AMOUNT_RE.search(text):
        return True
    if _VERB_NUMBER_RE.search(text):
        return True
    return bool(_TXN_KEYWORD_RE.search(text) and _DATE_FRAGMENT_RE.search(text))


def _single_amount(text: str) -> tuple[str, str | None] | None:
    """Return the lone amount token and the currency code it names, if any."""

    symbol_hits = list(_SYMBOL_AMOUNT_RE.finditer(text))
    # "$30 dollars" is one amount, not two.
    word_hits = [
        m
        for m in _WORD_AMOUNT_RE.finditer(text)
        if not any(s.start() < m.end() and m.start() < s.end() for s in symbol_hits)
    ]
    if len(symbol_hits) + len(word_hits) > 1:
        return None
    if symbol_hits:
        token = symbol_hits[0].group(0)
        return token, detect_currency(token)
    if word_hits:
        number, word = word_hits[0].group(1, 2)
        return number, _WORD_CODES.get(word.lower().rstrip("s"))
    bare = _BARE_NUMBER_RE.findall(_DATE_FRAGMENT_RE.sub(" ", text))
    return (bare[0], None) if len(bare) == 1 else None


def _direction(text: str) -> Direction:
    says_in = _IN_WORDS.search(text) is not None
    says_out = _OUT_WORDS.search(text) is not None
    if says_in == says_out:
        return Direction.UNKNOWN
    return Direction.IN if says_in else Direction.OUT


def _subject(text: str) -> str:
    for m in _SUBJECT_RE.finditer(text):
        word = m.group(1)
        if word.lower() not in _NOT_SUBJECTS:
            return word
    return UNKNOWN


def extract_single_heuristic(
    text: str,
    *,
    batch_id: str,
    resolve_date: DateResolver,
    base_currency: str = "USD",
) -> list[Transaction]:
    """Extract at most one transaction from ``text``.

    Requires exactly one amount-like token. Direction comes from in/out
    keywords (both or neither gives ``unknown``), the description from the
    first word after for/on/at/from/to, and the date from the first date
    fragment. Returns ``[]`` when nothing usable is found; unexpected
    errors are logged and also give ``[]``.
    """

    found = _single_amount(text)
    if found is None:
        return []
    token, code = found
    try:
        amount = abs(parse_amount(token))
    except ValueError:
        return []
    if amount <= 0:
        return []

    try:
        date_match = _DATE_FRAGMENT_RE.search(text)
        date = resolve_date(date_match.group(0)) if date_match else UNKNOWN
        txn = build_transaction(
            batch_id=batch_id,
            date=date,
            description=_subject(text),
            type_=UNKNOWN,
            amount=amount,
            direction=_direction(text),
            currency=code,
            base_currency=base_currency,
        )
    except Exception:  # noqa: BLE001
        _logger.warning("heuristic:failed text=%s", preview(text), exc_info=True)
        return []
    if txn is None:
        return []
    _logger.debug("heuristic:extracted amount=%.2f direction=%s", txn.amount, txn.direction)
    return [txn]

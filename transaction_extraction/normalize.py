"""Shared normalization used by every extraction stage.

- :func:`parse_amount` turns statement/chat amount text into a number.
- :func:`detect_currency` and :func:`annotate_foreign_currency` handle the
  small set of non-dollar currency symbols recognized in free text.
- :func:`build_transaction` is the single construction point for
  :class:`~transaction_extraction.models.Transaction`: it fills fallbacks,
  refines direction, categorizes, attaches a clarification question and
  drops void records.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation

from .categorize import categorize, infer_direction, reconcile_category
from .models import UNKNOWN, Direction, Transaction, is_iso_date_or_unknown

# Symbol -> currency code. Amounts are never converted, only labelled.
CURRENCY_SYMBOLS: dict[str, str] = {
    "¥": "JPY",
    "€": "EUR",
    "£": "GBP",
    "₹": "INR",
    "₩": "KRW",
}
_DOLLAR_SYMBOLS = ("$", "US$")
_CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3,5}$")


def parse_amount(raw: str | None) -> float:
    """Parse ``raw`` (e.g. ``"$1,234.56"``, ``"(12.00)"``, ``"€5"``) into a float.

    Leading signs, currency symbols and surrounding parentheses may appear
    in any order; parentheses and ``-`` mark a negative amount. Raises
    ``ValueError`` for empty or non-numeric input.
    """

    if raw is None:
        raise ValueError("amount is required")
    s = raw.strip()
    if not s:
        raise ValueError("amount is empty")
    negative = False

    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        for symbol in (*_DOLLAR_SYMBOLS, *CURRENCY_SYMBOLS):
            if s.startswith(symbol):
                s = s[len(symbol) :].lstrip()
                changed = True
                break
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").strip()
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    return float(-abs(d) if negative else d)


def detect_currency(text: str) -> str | None:
    """Return the code of the first recognized non-dollar symbol in ``text``."""

    first: tuple[int, str] | None = None
    for symbol, code in CURRENCY_SYMBOLS.items():
        pos = text.find(symbol)
        if pos >= 0 and (first is None or pos < first[0]):
            first = (pos, code)
    return first[1] if first else None


def annotate_foreign_currency(description: str, text: str) -> tuple[str, str | None]:
    """Label ``description`` with the currency whose symbol appears in ``text``.

    Returns the (possibly annotated) description and the detected code, or
    the description unchanged and ``None`` when no symbol is present. The
    code is appended in parentheses unless the description already
    mentions it.
    """

    code = detect_currency(text)
    if code is None:
        return description, None
    if code in description:
        return description, code
    return f"{description} ({code})", code


def normalize_currency(value: str | None, *, default: str) -> str:
    """Map a model/user currency value (code or symbol) to an upper-case code."""

    if not value:
        return default
    v = value.strip()
    if v in CURRENCY_SYMBOLS:
        return CURRENCY_SYMBOLS[v]
    if v in _DOLLAR_SYMBOLS:
        return "USD"
    v = v.upper()
    return v if _CURRENCY_CODE_RE.match(v) else default


def _clarification_question(
    *, description: str, date: str, amount: float, direction: Direction, currency: str
) -> str | None:
    subject = description if description != UNKNOWN else "this transaction"
    if amount == 0:
        return f"What was the amount for {subject}?"
    if date == UNKNOWN:
        return f"When did {subject} ({amount:.2f} {currency}) happen?"
    if direction is Direction.UNKNOWN:
        return f"Was {subject} ({amount:.2f} {currency}) money received or money spent?"
    return None


def build_transaction(
    *,
    batch_id: str,
    date: str,
    description: str | None,
    type_: str | None,
    amount: float,
    direction: Direction,
    currency: str | None = None,
    base_currency: str = "USD",
    notes: str = "",
    needs_clarification: str | None = None,
) -> Transaction | None:
    """Assemble a finalized :class:`Transaction`, or ``None`` for a void record.

    Parameters
    ----------
    batch_id:
        Identifier of the current extraction call.
    date:
        ISO date or ``"unknown"``; any other value is treated as unknown.
    description / type_:
        Free text; blanks fall back to ``"unknown"``.
    amount:
        Any finite number. Only the magnitude is kept.
    direction:
        Direction asserted by the caller. ``unknown`` is refined from
        keywords in the description and type.
    currency / base_currency:
        Explicit currency (code or symbol) and the fallback code.
    notes / needs_clarification:
        Passed through; a clarification question is generated when a
        required field is unresolved and none was supplied.
    """

    desc = " ".join((description or "").split()) or UNKNOWN
    rail = (type_ or "").strip() or UNKNOWN
    iso_date = date.strip() if date else UNKNOWN
    if not is_iso_date_or_unknown(iso_date):
        iso_date = UNKNOWN
    magnitude = abs(amount) if math.isfinite(amount) else 0.0
    code = normalize_currency(currency, default=base_currency)

    if direction is Direction.UNKNOWN:
        direction = infer_direction(desc, rail)
    category = reconcile_category(categorize(desc, rail), direction)
    question = (needs_clarification or "").strip() or _clarification_question(
        description=desc, date=iso_date, amount=magnitude, direction=direction, currency=code
    )

    txn = Transaction(
        batch_id=batch_id,
        date=iso_date,
        description=desc,
        type=rail,
        amount=magnitude,
        currency=code,
        direction=direction,
        category=category,
        notes=notes.strip(),
        needs_clarification=question,
    )
    if txn.is_void:
        return None
    return txn

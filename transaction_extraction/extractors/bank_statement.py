"""Extractor for pasted bank statements laid out one field per line.

A statement block starts with a whole-line date header and runs until the
next header::

    Dec 20, 2024
    PAYPAL TRANSFER PPD ID: PAYPALSD11
    ACH credit
    $599.52

The line before the amount is the payment-rail label when it matches one of
the known labels; the lines between the header and the label are the
description.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from ..categorize import infer_direction
from ..dates import DateResolver
from ..logging_setup import get_logger, preview
from ..models import UNKNOWN, Transaction
from ..normalize import build_transaction

_logger = get_logger("transaction_extraction.extractors.bank_statement")

_DATE_HEADER_RE = re.compile(
    r"^(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2},\s+\d{4}$"
    r"|^\d{1,2}/\d{1,2}/\d{4}$"
)
_AMOUNT_LINE_RE = re.compile(r"^\$\s*([\d,]+\.\d{2})")
_TYPE_LABEL_RE = re.compile(
    r"^(?:ACH credit|ACH debit|Zelle credit|Zelle debit|Check Card|Card|Deposit"
    r"|ATM transaction|Withdrawal|Payment|Other)",
    re.IGNORECASE,
)
# (needle in lower-cased block text, inferred type); first hit wins.
_TYPE_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("paypal", "PayPal"),
    ("zelle", "Zelle"),
    ("ach", "ACH"),
    ("card", "Card"),
    ("deposit", "Deposit"),
    ("atm", "ATM"),
    ("withdrawal", "Withdrawal"),
    ("payment", "Payment"),
)
_SPECIFIC_LINE_KEYWORDS = ("paypal", "zelle", "venmo", "coinbase", "payment from")
_MIN_BLOCK_LINES = 3


def split_blocks(text: str) -> list[list[str]]:
    """Split statement text into blocks that each start with a date header.

    Lines are trimmed and blank lines dropped; text before the first header
    belongs to no block.
    """

    lines = [ln.strip() for ln in text.splitlines()]
    lines = [ln for ln in lines if ln]
    starts = [i for i, ln in enumerate(lines) if _DATE_HEADER_RE.match(ln)]
    blocks: list[list[str]] = []
    for n, start in enumerate(starts):
        end = starts[n + 1] if n + 1 < len(starts) else len(lines)
        blocks.append(lines[start:end])
    return blocks


def _infer_type(block: Sequence[str]) -> str:
    haystack = " ".join(block).lower()
    for needle, label in _TYPE_KEYWORDS:
        if needle in haystack:
            return label
    return UNKNOWN


def _pick_description(lines: Sequence[str]) -> str:
    joined = " ".join(lines).strip()
    if not joined:
        return UNKNOWN
    for line in lines:
        lowered = line.lower()
        if any(k in lowered for k in _SPECIFIC_LINE_KEYWORDS):
            return line.strip()
    return joined


def _parse_block(
    block: Sequence[str],
    *,
    batch_id: str,
    resolve_date: DateResolver,
    base_currency: str,
) -> Transaction | None:
    if len(block) < _MIN_BLOCK_LINES:
        _logger.debug("bank_statement:skip_short block=%s", preview(" | ".join(block)))
        return None

    date = resolve_date(block[0])
    if date == UNKNOWN:
        _logger.debug("bank_statement:skip_date header=%r", block[0])
        return None

    amount = 0.0
    amount_idx = -1
    for j in range(len(block) - 1, 0, -1):
        m = _AMOUNT_LINE_RE.match(block[j])
        if m is not None:
            amount = float(m.group(1).replace(",", ""))
            amount_idx = j
            break
    if amount_idx < 0 or amount <= 0:
        _logger.debug("bank_statement:skip_amount block=%s", preview(" | ".join(block)))
        return None

    type_ = UNKNOWN
    desc_end = amount_idx
    label_idx = amount_idx - 1
    if label_idx >= 1 and _TYPE_LABEL_RE.match(block[label_idx]):
        type_ = block[label_idx]
        desc_end = label_idx
    if type_ == UNKNOWN:
        type_ = _infer_type(block)

    description = _pick_description(block[1:desc_end])
    direction = infer_direction(description, type_)
    return build_transaction(
        batch_id=batch_id,
        date=date,
        description=description,
        type_=type_,
        amount=amount,
        direction=direction,
        base_currency=base_currency,
    )


def extract_bank_statement(
    text: str,
    *,
    batch_id: str,
    resolve_date: DateResolver,
    base_currency: str = "USD",
) -> list[Transaction]:
    """Extract one transaction per well-formed statement block.

    Blocks that are too short, lack a resolvable date or lack a positive
    amount line are skipped. A block that fails unexpectedly is logged and
    skipped; the extractor itself never raises.
    """

    out: list[Transaction] = []
    blocks = split_blocks(text)
    _logger.debug("bank_statement:start blocks=%d", len(blocks))
    for index, block in enumerate(blocks):
        try:
            txn = _parse_block(
                block,
                batch_id=batch_id,
                resolve_date=resolve_date,
                base_currency=base_currency,
            )
        except Exception:  # noqa: BLE001 - skip the block
            _logger.warning(
                "bank_statement:block_failed index=%d block=%s",
                index,
                preview(" | ".join(block)),
                exc_info=True,
            )
            continue
        if txn is not None:
            out.append(txn)
    _logger.debug("bank_statement:done count=%d", len(out))
    return out

"""Prompt construction for language-model transaction extraction.

This module builds:
- The system instructions shared by every extraction call.
- The user prompt embedding the input between ``BEGIN_INPUT_TEXT`` /
  ``END_INPUT_TEXT`` markers, in a general variant and a variant tuned for
  pasted bank statements.
- The chat message list sent to the completion endpoint.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date
from typing import TYPE_CHECKING

from .models import Category

if TYPE_CHECKING:
    from .llm_client import ChatMessage

TRUNCATION_MARKER = "\n... (truncated)"

# A statement date header within the first few non-empty lines.
_STATEMENT_HEADER_RE = re.compile(
    r"^(?:(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2},\s+\d{4}|\d{1,2}/\d{1,2}/\d{4})$"
)
_STATEMENT_SCAN_LINES = 5

_STATEMENT_EXAMPLE_INPUT = (
    "Apr 17, 2025\n"
    "PAYPAL TRANSFER PPD ID: PAYPALSD11\n"
    "ACH credit\n"
    "$599.52\n"
    "Apr 16, 2025\n"
    "TRADER JOES #123 CHICAGO IL\n"
    "Card\n"
    "$45.67\n"
    "Apr 15, 2025\n"
    "UNKNOWN DEBIT\n"
    "$25.00"
)
_STATEMENT_EXAMPLE_OUTPUT = (
    '{"transactions": ['
    '{"date": "2025-04-17", "description": "PAYPAL TRANSFER", "details": "PPD ID: PAYPALSD11", '
    '"type": "ACH credit", "amount": 599.52, "currency": "USD", "direction": "IN"}, '
    '{"date": "2025-04-16", "description": "TRADER JOES #123 CHICAGO IL", "details": "", '
    '"type": "Card", "amount": 45.67, "currency": "USD", "direction": "OUT"}, '
    '{"date": "2025-04-15", "description": "UNKNOWN DEBIT", "details": "", '
    '"type": "unknown", "amount": 25.00, "currency": "USD", "direction": "OUT"}'
    "]}"
)


def build_system_instructions() -> str:
    """Return concise system instructions for transaction extraction.

    Keep the model focused on: one object per distinct transaction, never
    inventing amounts, ``UNKNOWN`` over guessing, and JSON-only output.
    """

    return (
        "You are an assistant that extracts financial transactions from text. Create one "
        "object per distinct transaction. Never invent amounts or dates; use \"unknown\" "
        "when a value is not stated. Output JSON only, as a single object with a "
        '"transactions" array, starting with "{".'
    )


def looks_like_statement(text: str) -> bool:
    """Return True when a statement date header appears near the top of ``text``."""

    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    return any(_STATEMENT_HEADER_RE.match(ln) for ln in lines[:_STATEMENT_SCAN_LINES])


def truncate_input(text: str, max_chars: int) -> str:
    """Cap ``text`` at ``max_chars`` characters, appending a truncation marker."""

    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def _field_rules(today_iso: str, base_currency: str) -> list[str]:
    return [
        "Fields for each transaction:",
        (
            f"- date: \"YYYY-MM-DD\". Resolve relative dates (today, yesterday, last Friday) "
            f"against today's date {today_iso}. Use \"unknown\" when no date is given."
        ),
        "- description: what the transaction was for (merchant, payer or purpose).",
        "- details: extra context such as reference numbers, or \"\".",
        (
            "- type: payment method or rail (Card, Cash, Check, Zelle, PayPal, ACH credit, "
            "ACH debit, Deposit, Withdrawal) or \"unknown\"."
        ),
        "- amount: a positive number without currency symbols. Do not convert currencies.",
        f"- currency: ISO 4217 code; assume \"{base_currency}\" when none is stated.",
        (
            "- direction: \"IN\" for money received, earned or deposited; \"OUT\" for money "
            "spent, paid or withdrawn; \"UNKNOWN\" when it cannot be determined. Do not guess."
        ),
        "- needs_clarification: a short question when a field is ambiguous, otherwise null.",
    ]


def build_extraction_prompt(
    text: str,
    *,
    today: date,
    base_currency: str,
    max_chars: int,
) -> str:
    """Build the user prompt for one extraction call.

    Parameters
    ----------
    text:
        The raw user input; truncated beyond ``max_chars``.
    today:
        Reference day for relative dates.
    base_currency:
        Currency the model should assume when none is stated.
    max_chars:
        Maximum number of input characters embedded in the prompt.
    """

    today_iso = today.isoformat()
    body = truncate_input(text, max_chars)
    statement = looks_like_statement(text)

    lines: list[str] = []
    if statement:
        lines += [
            "Extract ALL financial transactions from the bank statement text below.",
            (
                "Each transaction is a block: a date line, one or more description lines, "
                "often a transaction type line, and an amount line starting with \"$\"."
            ),
        ]
    else:
        lines += [
            "Extract every financial transaction mentioned in the text below.",
            "Brief mentions count; create a separate object for each one.",
        ]
    lines.append(f"Today's date is {today_iso}.")
    lines.append("")
    lines += _field_rules(today_iso, base_currency)
    lines.append("")
    lines.append("Known categories (for context only; do not output a category field):")
    lines.append(", ".join(c.value for c in Category))

    if statement:
        lines += [
            "",
            "EXAMPLE input:",
            _STATEMENT_EXAMPLE_INPUT,
            "EXAMPLE output:",
            _STATEMENT_EXAMPLE_OUTPUT,
        ]

    lines += [
        "",
        "BEGIN_INPUT_TEXT",
        body,
        "END_INPUT_TEXT",
        "",
        (
            'Respond with a single JSON object {"transactions": [...]}. Your response MUST '
            'start with "{" and contain nothing before or after the JSON.'
        ),
    ]
    return "\n".join(lines)


def build_messages(
    text: str,
    *,
    today: date,
    base_currency: str,
    max_chars: int,
) -> Sequence[ChatMessage]:
    """Return the system + user chat messages for one extraction call."""

    return [
        {"role": "system", "content": build_system_instructions()},
        {
            "role": "user",
            "content": build_extraction_prompt(
                text, today=today, base_currency=base_currency, max_chars=max_chars
            ),
        },
    ]

"""Deterministic categorization and direction inference.

Both functions are pure. Category rules are evaluated in order with
case-sensitive substring matching and the first match wins; statement
text is usually upper-cased, so most rules list both spellings.
"""

from __future__ import annotations

from .models import Category, Direction

# (substrings in description, category); evaluated top to bottom.
_DESCRIPTION_RULES: tuple[tuple[tuple[str, ...], Category], ...] = (
    (("PAYPAL TRANSFER",), Category.PAYPAL_TRANSFERS),
    (("Coinbase", "COINBASE"), Category.CRYPTO_SALES),
    (("Payroll", "PAYROLL", "DIRECT DEP"), Category.BUSINESS_INCOME),
    (("Open Research", "YC RESEARCH"), Category.RESEARCH_SURVEYS),
    (("REMOTE ONLINE DEPOSIT", "ATM CASH DEPOSIT"), Category.REMOTE_DEPOSITS),
    (("Rent from", "RENT FROM"), Category.RENT_RECEIVED),
)

_INDETERMINATE_KEYWORDS = ("atm transaction", "cash redemption")
_IN_KEYWORDS = ("credit", "deposit", "received", "payment from")
_OUT_KEYWORDS = ("debit", "withdrawal", "purchase", "charge", "bought", "payment to")
_OUT_TYPES = frozenset({"card", "check card"})


def categorize(description: str, type_: str) -> Category:
    """Return the category for a transaction's description and type label."""

    for needles, category in _DESCRIPTION_RULES:
        if any(n in description for n in needles):
            return category
    if type_ == "Card" or "Cash Redemption" in description:
        return Category.EXPENSES
    return Category.UNCATEGORIZED


def reconcile_category(category: Category, direction: Direction) -> Category:
    """Align a rule-based category with the transaction direction.

    A spend with no specific category is an expense; an inflow can never be
    the generic expense bucket.
    """

    if direction is Direction.OUT and category is Category.UNCATEGORIZED:
        return Category.EXPENSES
    if direction is Direction.IN and category is Category.EXPENSES:
        return Category.UNCATEGORIZED
    return category


def infer_direction(description: str, type_: str) -> Direction:
    """Infer direction from keywords in the description and type label.

    ATM transactions and cash redemptions map to ``unknown``.
    """

    haystack = f"{description} {type_}".lower()
    if any(k in haystack for k in _INDETERMINATE_KEYWORDS):
        return Direction.UNKNOWN
    if any(k in haystack for k in _IN_KEYWORDS):
        return Direction.IN
    if any(k in haystack for k in _OUT_KEYWORDS):
        return Direction.OUT
    if type_.strip().lower() in _OUT_TYPES:
        return Direction.OUT
    return Direction.UNKNOWN

"""Data models and enumerations for ``transaction_extraction``.

The only entity produced by the pipeline is :class:`Transaction`. It is a
frozen Pydantic model: extractors assemble every field (including the
category and the refined direction) before construction, and nothing
mutates an instance afterwards.

Enum-like fields are closed :class:`~enum.StrEnum` types with an explicit
default member and a ``from_text`` conversion for free-text input.
"""

from __future__ import annotations

import uuid
from datetime import date as _date
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN = "unknown"
"""Sentinel for a date or description that could not be resolved."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Direction(StrEnum):
    """Sign-carrying classification: money received, spent, or undetermined."""

    IN = "in"
    OUT = "out"
    UNKNOWN = "unknown"

    @classmethod
    def from_text(cls, value: str | None) -> Direction:
        """Map free text (``"IN"``, ``" out "``, ``"Unknown"``) to a member.

        Anything unrecognized maps to :attr:`UNKNOWN`.
        """

        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class CategoryGroup(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    OTHER = "other"


class Category(StrEnum):
    """Closed category taxonomy.

    ``UNCATEGORIZED`` is the default; ``EXPENSES`` is the generic expense
    bucket used when a spend matches no more specific rule.
    """

    PAYPAL_TRANSFERS = "PayPal Transfers"
    CRYPTO_SALES = "Crypto Sales"
    BUSINESS_INCOME = "Business Income"
    RESEARCH_SURVEYS = "Non-Taxable Research/Surveys"
    REMOTE_DEPOSITS = "Remote Deposits"
    RENT_RECEIVED = "Rent Payments Received (Non-Income)"
    EXPENSES = "Expenses"
    UNCATEGORIZED = "Other / Uncategorized"

    @property
    def group(self) -> CategoryGroup:
        return _CATEGORY_GROUPS[self]

    @classmethod
    def from_text(cls, value: str | None) -> Category:
        """Match a display name case-insensitively; unknown names are uncategorized."""

        if not value:
            return cls.UNCATEGORIZED
        wanted = value.strip().casefold()
        for member in cls:
            if member.value.casefold() == wanted:
                return member
        return cls.UNCATEGORIZED


_CATEGORY_GROUPS: dict[Category, CategoryGroup] = {
    Category.PAYPAL_TRANSFERS: CategoryGroup.TRANSFER,
    Category.CRYPTO_SALES: CategoryGroup.INCOME,
    Category.BUSINESS_INCOME: CategoryGroup.INCOME,
    Category.RESEARCH_SURVEYS: CategoryGroup.INCOME,
    Category.REMOTE_DEPOSITS: CategoryGroup.INCOME,
    Category.RENT_RECEIVED: CategoryGroup.TRANSFER,
    Category.EXPENSES: CategoryGroup.EXPENSE,
    Category.UNCATEGORIZED: CategoryGroup.OTHER,
}


class Strategy(StrEnum):
    """Which cascade stage produced a batch."""

    LLM = "llm"
    BANK_STATEMENT = "bank_statement"
    CONVERSATIONAL = "conversational"
    HEURISTIC = "heuristic"
    NONE = "none"


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


def new_transaction_id() -> str:
    return str(uuid.uuid4())


def is_iso_date_or_unknown(value: str) -> bool:
    if value == UNKNOWN:
        return True
    if len(value) != 10:
        return False
    try:
        _date.fromisoformat(value)
    except ValueError:
        return False
    return True


class Transaction(BaseModel):
    """A single validated financial transaction.

    Attributes
    ----------
    id:
        Process-unique identifier (uuid4), assigned at creation.
    batch_id:
        Caller-supplied identifier shared by every transaction of one
        extraction call. Serialized as ``batchId``.
    date:
        ISO ``YYYY-MM-DD`` calendar date or ``"unknown"``.
    description:
        Merchant/context text; never empty.
    type:
        Payment-rail label such as ``"Card"`` or ``"ACH credit"``.
    amount:
        Non-negative magnitude. The sign lives in ``direction``.
    currency:
        Upper-case currency code.
    direction / category:
        Closed enumerations.
    notes:
        Free text, empty by default.
    needs_clarification:
        The question to ask when a required field could not be resolved.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    id: str = Field(default_factory=new_transaction_id)
    batch_id: str = Field(alias="batchId", min_length=1)
    date: str = UNKNOWN
    description: str = UNKNOWN
    type: str = UNKNOWN
    amount: float = Field(default=0.0, ge=0)
    currency: str = Field(default="USD", pattern=r"^[A-Z]{3,5}$")
    direction: Direction = Direction.UNKNOWN
    category: Category = Category.UNCATEGORIZED
    notes: str = ""
    needs_clarification: str | None = None

    @field_validator("date")
    @classmethod
    def _date_is_iso_or_unknown(cls, v: str) -> str:
        if not is_iso_date_or_unknown(v):
            raise ValueError(f"date must be YYYY-MM-DD or {UNKNOWN!r}, got {v!r}")
        return v

    @field_validator("description", "type")
    @classmethod
    def _blank_to_unknown(cls, v: str) -> str:
        return v or UNKNOWN

    @property
    def is_void(self) -> bool:
        """True when amount, description and date are all unresolved."""

        return self.amount == 0 and self.description == UNKNOWN and self.date == UNKNOWN

    def to_json_dict(self) -> dict[str, Any]:
        """Return the JSON-serializable shape consumed downstream."""

        return self.model_dump(mode="json", by_alias=True)

from __future__ import annotations

import pytest
from pydantic import ValidationError

from transaction_extraction.models import (
    UNKNOWN,
    Category,
    CategoryGroup,
    Direction,
    Transaction,
)


def _mk_tx(**overrides) -> Transaction:
    data = {
        "batchId": "b1",
        "date": "2024-05-09",
        "description": "Groceries",
        "type": "Card",
        "amount": 45.5,
        "direction": Direction.OUT,
        "category": Category.EXPENSES,
    }
    data.update(overrides)
    return Transaction(**data)


def test_transaction_serializes_with_batch_alias_and_plain_enums():
    tx = _mk_tx()
    out = tx.to_json_dict()
    assert out["batchId"] == "b1"
    assert "batch_id" not in out
    assert out["direction"] == "out"
    assert out["category"] == "Expenses"
    assert out["currency"] == "USD"
    assert out["needs_clarification"] is None


def test_transaction_accepts_field_name_for_batch_id():
    assert Transaction(batch_id="b2").batch_id == "b2"


def test_ids_are_unique_per_instance():
    assert _mk_tx().id != _mk_tx().id


def test_transaction_is_frozen():
    tx = _mk_tx()
    with pytest.raises(ValidationError):
        tx.amount = 1.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": -1},
        {"date": "05/09/2024"},
        {"date": "2023-02-30"},
        {"currency": "usd"},
        {"batchId": ""},
        {"unexpected": "x"},
    ],
)
def test_invalid_transactions_are_rejected(overrides):
    with pytest.raises(ValidationError):
        _mk_tx(**overrides)


def test_blank_description_and_type_become_unknown():
    tx = _mk_tx(description="   ", type="")
    assert tx.description == UNKNOWN
    assert tx.type == UNKNOWN


def test_is_void_requires_all_three_unresolved():
    assert _mk_tx(amount=0, description="", date=UNKNOWN).is_void
    assert not _mk_tx(amount=0, description="", date="2024-01-01").is_void
    assert not _mk_tx(amount=1, description="", date=UNKNOWN).is_void


def test_direction_from_text():
    assert Direction.from_text(" IN ") is Direction.IN
    assert Direction.from_text("Out") is Direction.OUT
    assert Direction.from_text("sideways") is Direction.UNKNOWN
    assert Direction.from_text(None) is Direction.UNKNOWN


def test_category_from_text_and_group():
    assert Category.from_text("paypal transfers") is Category.PAYPAL_TRANSFERS
    assert Category.from_text("Food") is Category.UNCATEGORIZED
    assert Category.PAYPAL_TRANSFERS.group is CategoryGroup.TRANSFER
    assert Category.EXPENSES.group is CategoryGroup.EXPENSE
    assert Category.UNCATEGORIZED.group is CategoryGroup.OTHER

from __future__ import annotations

from datetime import date

from transaction_extraction.dates import make_resolver
from transaction_extraction.extractors.conversational import extract_conversational
from transaction_extraction.models import Category, Direction

TODAY = date(2024, 5, 10)


def _extract(text: str):
    return extract_conversational(
        text, batch_id="b1", resolve_date=make_resolver(TODAY), today=TODAY
    )


def test_spend_sentence_with_relative_date():
    (txn,) = _extract("I spent $45.50 on groceries yesterday")
    assert txn.amount == 45.5
    assert txn.direction is Direction.OUT
    assert "groceries" in txn.description
    assert txn.date == "2024-05-09"
    assert txn.category is Category.EXPENSES
    assert txn.currency == "USD"


def test_income_sentence_defaults_to_today():
    (txn,) = _extract("I received $200 from Acme for consulting.")
    assert txn.amount == 200.0
    assert txn.direction is Direction.IN
    assert txn.description == "Acme for consulting"
    assert txn.date == "2024-05-10"


def test_spend_and_income_in_one_message():
    txns = _extract("I spent $20 on lunch. We earned $100 for tutoring on Monday.")
    assert [(t.direction, t.amount) for t in txns] == [
        (Direction.OUT, 20.0),
        (Direction.IN, 100.0),
    ]
    assert txns[1].description == "tutoring"
    assert txns[1].date == "2024-05-06"


def test_words_ending_in_day_are_not_dates():
    (txn,) = _extract("I spent $50 on a birthday gift")
    assert txn.description == "a birthday gift"
    assert txn.date == "2024-05-10"


def test_foreign_symbol_labels_currency_and_description():
    (txn,) = _extract("I spent €20 on coffee")
    assert txn.currency == "EUR"
    assert txn.description == "coffee (EUR)"


def test_type_bucket_from_description():
    (txn,) = _extract("I paid $15 for lunch with credit card")
    assert txn.type == "Card"
    assert txn.direction is Direction.OUT


def test_bare_amount_template_is_a_fallback():
    (txn,) = _extract("$12 for parking")
    assert txn.amount == 12.0
    assert txn.direction is Direction.OUT
    assert txn.description == "parking"


def test_bare_amount_right_after_spent_is_suppressed():
    assert _extract("Spent $30 on books") == []


def test_nothing_to_extract():
    assert _extract("hello there") == []
    assert _extract("I spent $0 on nothing") == []


def test_failing_mention_is_skipped_and_others_kept():
    resolve = make_resolver(TODAY)

    def picky(fragment: str) -> str:
        if "yesterday" in fragment.lower():
            raise RuntimeError("resolver broke")
        return resolve(fragment)

    txns = extract_conversational(
        "I spent $5 on tea yesterday. I spent $7 on cake.",
        batch_id="b1",
        resolve_date=picky,
        today=TODAY,
    )
    assert [(t.amount, t.description, t.date) for t in txns] == [(7.0, "cake", "2024-05-10")]


def test_invalid_base_currency_is_contained():
    txns = extract_conversational(
        "I spent $5 on tea",
        batch_id="b1",
        resolve_date=make_resolver(TODAY),
        today=TODAY,
        base_currency="usd",
    )
    assert txns == []

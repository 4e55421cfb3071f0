from __future__ import annotations

from datetime import date

from transaction_extraction.models import Category
from transaction_extraction.prompting import (
    TRUNCATION_MARKER,
    build_extraction_prompt,
    build_messages,
    looks_like_statement,
    truncate_input,
)

TODAY = date(2024, 5, 10)
STATEMENT = "Dec 20, 2024\nPAYPAL TRANSFER\nACH credit\n$599.52"


def test_looks_like_statement_scans_the_first_lines():
    assert looks_like_statement(STATEMENT)
    assert looks_like_statement("Activity\n\n12/16/2024\nZelle payment\n$5.00")
    assert not looks_like_statement("I spent $5 on tea")
    assert not looks_like_statement("a\nb\nc\nd\ne\nDec 20, 2024\n$5.00")


def test_truncate_input():
    assert truncate_input("abcdef", 10) == "abcdef"
    assert truncate_input("abcdef", 3) == "abc" + TRUNCATION_MARKER


def test_prompt_embeds_input_between_markers():
    prompt = build_extraction_prompt(
        "I spent $5 on tea", today=TODAY, base_currency="EUR", max_chars=1000
    )
    assert "BEGIN_INPUT_TEXT\nI spent $5 on tea\nEND_INPUT_TEXT" in prompt
    assert "2024-05-10" in prompt
    assert '"EUR"' in prompt
    assert "EXAMPLE input:" not in prompt
    for category in Category:
        assert category.value in prompt


def test_statement_prompt_carries_worked_example():
    prompt = build_extraction_prompt(STATEMENT, today=TODAY, base_currency="USD", max_chars=1000)
    assert prompt.startswith("Extract ALL financial transactions from the bank statement")
    assert "EXAMPLE output:" in prompt


def test_build_messages_roles():
    messages = build_messages("hi", today=TODAY, base_currency="USD", max_chars=100)
    assert [m["role"] for m in messages] == ["system", "user"]
    assert "JSON" in messages[0]["content"]

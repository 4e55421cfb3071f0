from __future__ import annotations

import asyncio
from datetime import date

from tests.helpers.llm_stub import (
    CompletionStub,
    extract_input_from_user_content,
    mk_llm_item,
    mk_llm_response,
)
from transaction_extraction.config import ExtractionSettings
from transaction_extraction.dates import make_resolver
from transaction_extraction.llm_client import TransportError
from transaction_extraction.llm_extraction import extract_with_llm
from transaction_extraction.models import Category, Direction, Strategy
from transaction_extraction.prompting import TRUNCATION_MARKER
from transaction_extraction.results import (
    Extracted,
    ParseFailure,
    TransportFailure,
    ValidationFailure,
)

TODAY = date(2024, 5, 10)
SETTINGS = ExtractionSettings(small_model="small", large_model="large")
TEXT = "I spent $45.50 on groceries yesterday"


def _run(stub: CompletionStub, text: str = TEXT, settings: ExtractionSettings = SETTINGS):
    return asyncio.run(
        extract_with_llm(
            text,
            batch_id="b1",
            client=stub,
            settings=settings,
            resolve_date=make_resolver(TODAY),
            today=TODAY,
        )
    )


def test_valid_response_yields_one_transaction_per_element():
    stub = CompletionStub(
        mk_llm_response(
            [
                mk_llm_item(),
                mk_llm_item(description="Salary", type="ACH credit", amount=2000, direction="IN"),
            ]
        )
    )
    out = _run(stub)

    assert isinstance(out, Extracted)
    assert out.strategy is Strategy.LLM
    groceries, salary = out.transactions
    assert groceries.category is Category.EXPENSES
    assert salary.direction is Direction.IN
    assert salary.category is Category.UNCATEGORIZED
    assert {t.batch_id for t in out.transactions} == {"b1"}
    assert groceries.id != salary.id


def test_prompt_embeds_input_and_routes_short_text_to_small_model():
    stub = CompletionStub(mk_llm_response([]))
    _run(stub)

    assert extract_input_from_user_content(stub.user_contents[0]) == TEXT
    _, options = stub.calls[0]
    assert options.model == "small"
    assert options.json_mode is True


def test_relative_dates_and_details_are_normalized():
    stub = CompletionStub(mk_llm_response([mk_llm_item(date="yesterday", details="store #12")]))
    (txn,) = _run(stub).transactions
    assert txn.date == "2024-05-09"
    assert txn.notes == "store #12"


def test_unknown_direction_is_refined_from_keywords():
    stub = CompletionStub(
        mk_llm_response(
            [
                mk_llm_item(
                    description="Zelle payment from BOB", type="Zelle credit", direction="UNKNOWN"
                )
            ]
        )
    )
    (txn,) = _run(stub).transactions
    assert txn.direction is Direction.IN


def test_void_elements_are_dropped():
    stub = CompletionStub(
        mk_llm_response([mk_llm_item(), mk_llm_item(date="unknown", description="", amount=0)])
    )
    assert len(_run(stub).transactions) == 1


def test_reasoning_and_fenced_output_is_recovered():
    body = mk_llm_response([mk_llm_item()])
    stub = CompletionStub(f"<think>let me see</think>\n```json\n{body}\n```")
    assert len(_run(stub).transactions) == 1


def test_empty_batch_is_a_successful_result():
    out = _run(CompletionStub(mk_llm_response([])))
    assert isinstance(out, Extracted)
    assert out.is_empty


def test_prose_response_is_a_parse_failure():
    out = _run(CompletionStub("Sorry, I can't do that."))
    assert isinstance(out, ParseFailure)


def test_schema_mismatch_is_a_validation_failure():
    out = _run(CompletionStub('{"transactions": [{"date": "2024-01-01"}]}'))
    assert isinstance(out, ValidationFailure)
    assert "transactions[0].amount" in {e.location for e in out.errors}


def test_transport_error_becomes_redacted_failure():
    out = _run(CompletionStub(TransportError("connect failed key sk-abcdef123456")))
    assert isinstance(out, TransportFailure)
    assert out.error_type == "TransportError"
    assert "sk-abcdef123456" not in out.message
    assert out.message.startswith("Could not reach")


def test_long_input_is_truncated_and_sent_to_large_model():
    settings = ExtractionSettings(max_prompt_chars=40, small_model="small", large_model="large")
    text = "I spent $5 on tea. " * 20
    stub = CompletionStub(mk_llm_response([]))
    _run(stub, text=text, settings=settings)

    embedded = extract_input_from_user_content(stub.user_contents[0])
    assert embedded == text[:40] + TRUNCATION_MARKER
    assert stub.calls[0][1].model == "large"

from __future__ import annotations

import pytest

from transaction_extraction.cache import ExtractionCache, text_key
from transaction_extraction.models import Strategy, Transaction


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _mk_tx(description: str = "Tea") -> Transaction:
    return Transaction(batch_id="b1", date="2024-05-09", description=description, amount=3.0)


def test_miss_returns_none():
    assert ExtractionCache(60).get("anything", batch_id="b1") is None


def test_hit_returns_restamped_copies():
    cache = ExtractionCache(60, clock=_Clock())
    original = _mk_tx()
    cache.put("text", [original], Strategy.CONVERSATIONAL)

    hit = cache.get("text", batch_id="b2")
    assert hit is not None
    txns, strategy = hit
    assert strategy is Strategy.CONVERSATIONAL
    assert txns[0].batch_id == "b2"
    assert txns[0].id != original.id
    assert txns[0].description == "Tea"
    assert original.batch_id == "b1"


def test_entries_expire_after_ttl():
    clock = _Clock()
    cache = ExtractionCache(60, clock=clock)
    cache.put("text", [_mk_tx()], Strategy.LLM)

    clock.now += 59
    assert cache.get("text", batch_id="b1") is not None
    clock.now += 1
    assert cache.get("text", batch_id="b1") is None
    assert len(cache) == 0


def test_evict_expired_counts_removed_entries():
    clock = _Clock()
    cache = ExtractionCache(60, clock=clock)
    cache.put("old", [_mk_tx("old")], Strategy.LLM)
    clock.now += 30
    cache.put("new", [_mk_tx("new")], Strategy.LLM)
    clock.now += 31

    assert cache.evict_expired() == 1
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0


def test_text_key_is_stable_and_distinct():
    assert text_key("a") == text_key("a")
    assert text_key("a") != text_key("a ")


@pytest.mark.parametrize("ttl", [0, -1])
def test_ttl_must_be_positive(ttl: float):
    with pytest.raises(ValueError):
        ExtractionCache(ttl)

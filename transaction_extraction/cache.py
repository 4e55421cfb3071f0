"""In-memory extraction cache with a fixed time-to-live.

The cache is an explicit object owned by the caller and passed to
:func:`~transaction_extraction.orchestrator.run_cascade`; there is no
module-level instance. Keys are the SHA-256 of the full input text. Expiry
is evaluated lazily on access and by :meth:`ExtractionCache.evict_expired`.

A hit returns copies re-stamped with the caller's current ``batch_id`` and
fresh transaction ids, so ids stay unique across calls.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .logging_setup import get_logger
from .models import Strategy, Transaction, new_transaction_id

_logger = get_logger("transaction_extraction.cache")


def text_key(text: str) -> str:
    """Return the cache key (sha256 hex digest) for ``text``."""

    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class CacheEntry:
    transactions: tuple[Transaction, ...]
    strategy: Strategy
    stored_at: float


class ExtractionCache:
    """Map input text to a previously extracted batch for ``ttl_seconds``.

    Parameters
    ----------
    ttl_seconds:
        Lifetime of an entry, measured with ``clock``.
    clock:
        Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at >= self._ttl

    def get(self, text: str, *, batch_id: str) -> tuple[list[Transaction], Strategy] | None:
        """Return the cached batch for ``text`` re-stamped with ``batch_id``.

        Returns ``None`` on a miss or when the entry has expired (the expired
        entry is dropped).
        """

        key = text_key(text)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del self._entries[key]
            _logger.debug("cache:expired key=%s", key[:12])
            return None
        restamped = [
            t.model_copy(update={"id": new_transaction_id(), "batch_id": batch_id})
            for t in entry.transactions
        ]
        _logger.debug("cache:hit key=%s count=%d", key[:12], len(restamped))
        return restamped, entry.strategy

    def put(self, text: str, transactions: Sequence[Transaction], strategy: Strategy) -> None:
        """Store a batch for ``text``, replacing any existing entry."""

        self._entries[text_key(text)] = CacheEntry(
            transactions=tuple(transactions),
            strategy=strategy,
            stored_at=self._clock(),
        )

    def evict_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""

        now = self._clock()
        stale = [k for k, e in self._entries.items() if self._expired(e, now)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

"""Typed results returned by each extraction stage.

A stage never raises into the orchestrator. It returns one of the variants
below and the orchestrator matches on the variant to decide whether to
accept the batch or fall through to the next strategy.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .models import Strategy, Transaction


@dataclass(frozen=True, slots=True)
class FieldError:
    """One schema violation: a dotted/indexed ``location`` and its message."""

    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


@dataclass(frozen=True, slots=True)
class Extracted:
    transactions: tuple[Transaction, ...]
    strategy: Strategy

    @classmethod
    def of(cls, transactions: Sequence[Transaction], strategy: Strategy) -> Extracted:
        return cls(tuple(transactions), strategy)

    @property
    def is_empty(self) -> bool:
        return not self.transactions


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """No JSON structure could be recovered or parsed from a model response."""

    reason: str
    payload: str


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    """Parsed JSON matched neither accepted payload shape."""

    errors: tuple[FieldError, ...]
    payload: str

    @property
    def reason(self) -> str:
        return "; ".join(str(e) for e in self.errors) or "invalid payload"


@dataclass(frozen=True, slots=True)
class TransportFailure:
    """The completion call failed. ``message`` is already redacted."""

    message: str
    error_type: str


@dataclass(frozen=True, slots=True)
class StageError:
    """An unexpected exception escaped a stage and was contained."""

    strategy: Strategy
    error: BaseException


type StageResult = Extracted | ParseFailure | ValidationFailure | TransportFailure | StageError
type StageFailure = ParseFailure | ValidationFailure | TransportFailure | StageError

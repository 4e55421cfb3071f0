"""Schema validation for language-model extraction payloads.

Two payload shapes are accepted, tried in order:

- shape A: ``{"transactions": [ ... ]}``
- shape B: a bare ``[ ... ]`` array

Each element is validated into a :class:`LlmTransaction`. Validation never
raises: failures come back as a
:class:`~transaction_extraction.results.ValidationFailure` listing every
offending field.
"""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator

from .models import Direction
from .results import FieldError, ValidationFailure

_DIRECTION_VALUES = frozenset({"IN", "OUT", "UNKNOWN"})


class LlmTransaction(BaseModel):
    """One transaction as emitted by the model, before normalization."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: str
    description: str
    type: str
    amount: float
    direction: Direction
    details: str | None = None
    currency: str | None = None
    needs_clarification: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_is_numeric(cls, v: Any) -> float:
        # bool is an int subclass; reject it explicitly.
        if isinstance(v, bool):
            raise ValueError("amount must be a number, not a boolean")
        if isinstance(v, int | float):
            out = float(v)
        elif isinstance(v, str):
            cleaned = v.strip().replace("$", "").replace(",", "").strip()
            try:
                out = float(cleaned)
            except ValueError:
                raise ValueError(f"amount is not numeric: {v!r}") from None
        else:
            raise ValueError("amount must be a number or a numeric string")
        if not math.isfinite(out):
            raise ValueError(f"amount must be finite, got {v!r}")
        return out

    @field_validator("direction", mode="before")
    @classmethod
    def _direction_is_known(cls, v: Any) -> Direction:
        if not isinstance(v, str):
            raise ValueError("direction must be a string")
        token = v.strip().upper()
        if token not in _DIRECTION_VALUES:
            raise ValueError(f"direction must be one of IN, OUT, UNKNOWN; got {v!r}")
        return Direction(token.lower())


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transactions: list[LlmTransaction]


_BARE_LIST = TypeAdapter(list[LlmTransaction])


def _format_location(loc: Sequence[int | str]) -> str:
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out or "$"


def _field_errors(exc: ValidationError) -> tuple[FieldError, ...]:
    return tuple(
        FieldError(location=_format_location(err["loc"]), message=err["msg"])
        for err in exc.errors()
    )


def _payload_text(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(value)


def validate_payload(value: Any) -> list[LlmTransaction] | ValidationFailure:
    """Validate a parsed JSON value against the two accepted shapes.

    Parameters
    ----------
    value:
        The output of :func:`~transaction_extraction.json_repair.parse_json_payload`.

    Returns
    -------
    list[LlmTransaction] | ValidationFailure
        The validated elements (possibly empty), or the failure listing
        every field error of the shape that matched the payload's type.
    """

    if isinstance(value, dict):
        if "transactions" not in value:
            return ValidationFailure(
                errors=(FieldError("transactions", "missing 'transactions' array"),),
                payload=_payload_text(value),
            )
        try:
            return list(_Envelope.model_validate(value).transactions)
        except ValidationError as exc:
            return ValidationFailure(errors=_field_errors(exc), payload=_payload_text(value))

    if isinstance(value, list):
        try:
            return _BARE_LIST.validate_python(value)
        except ValidationError as exc:
            return ValidationFailure(errors=_field_errors(exc), payload=_payload_text(value))

    return ValidationFailure(
        errors=(
            FieldError("$", f"expected an object or an array, got {type(value).__name__}"),
        ),
        payload=_payload_text(value),
    )

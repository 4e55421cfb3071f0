"""Resolve free-text date fragments to ISO ``YYYY-MM-DD`` strings.

The pipeline consumes a resolver as a plain callable
(:data:`DateResolver`); :func:`make_resolver` builds the default one bound
to a reference day. Absolute dates are parsed with ``python-dateutil``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime, timedelta

from dateutil import parser as date_parser

from .models import UNKNOWN

type DateResolver = Callable[[str], str]

_WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}
_PREFIX_RE = re.compile(r"^(?:on|last|this)\s+", re.IGNORECASE)
_DAYS_AGO_RE = re.compile(r"^(\d{1,4})\s+days?\s+ago$", re.IGNORECASE)
_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ORDINAL_RE = re.compile(r"(\d{1,2})(?:st|nd|rd|th)\b", re.IGNORECASE)


def resolve_date(fragment: str | None, *, today: date | None = None) -> str:
    """Resolve ``fragment`` relative to ``today`` (defaults to the local date).

    Handles ``today``/``yesterday``/``tomorrow``, ``N days ago``, weekday
    names (the most recent such day not after ``today``), ISO dates and
    common absolute formats (``Jan 12, 2024``, ``01/12/2024``, ``3/4``,
    ``March 3rd``). A missing year defaults to the reference year. Anything
    else resolves to ``"unknown"``.
    """

    if not fragment:
        return UNKNOWN
    ref = today or date.today()
    text = " ".join(fragment.split()).strip(" ,.")
    text = _PREFIX_RE.sub("", text)
    lowered = text.lower()
    if not lowered or lowered == UNKNOWN:
        return UNKNOWN

    if lowered == "today":
        return ref.isoformat()
    if lowered == "yesterday":
        return (ref - timedelta(days=1)).isoformat()
    if lowered == "tomorrow":
        return (ref + timedelta(days=1)).isoformat()
    if (m := _DAYS_AGO_RE.match(lowered)) is not None:
        return (ref - timedelta(days=int(m.group(1)))).isoformat()
    if lowered in _WEEKDAYS:
        back = (ref.weekday() - _WEEKDAYS[lowered]) % 7
        return (ref - timedelta(days=back)).isoformat()
    if _ISO_RE.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            return UNKNOWN

    default = datetime(ref.year, ref.month, ref.day)
    try:
        parsed = date_parser.parse(_ORDINAL_RE.sub(r"\1", text), default=default)
    except (ValueError, OverflowError):
        return UNKNOWN
    return parsed.date().isoformat()


def make_resolver(today: date | None = None) -> DateResolver:
    """Return a :data:`DateResolver` bound to ``today``."""

    def _resolve(fragment: str) -> str:
        return resolve_date(fragment, today=today)

    return _resolve

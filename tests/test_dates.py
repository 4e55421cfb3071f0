from __future__ import annotations

from datetime import date

import pytest

from transaction_extraction.dates import make_resolver, resolve_date

# A Friday.
TODAY = date(2024, 5, 10)


@pytest.mark.parametrize(
    ("fragment", "expected"),
    [
        ("today", "2024-05-10"),
        ("Yesterday", "2024-05-09"),
        ("tomorrow", "2024-05-11"),
        ("3 days ago", "2024-05-07"),
        ("1 day ago", "2024-05-09"),
        ("friday", "2024-05-10"),
        ("Monday", "2024-05-06"),
        ("last Monday", "2024-05-06"),
        ("on Sunday", "2024-05-05"),
        ("saturday", "2024-05-04"),
    ],
)
def test_relative_fragments(fragment: str, expected: str):
    assert resolve_date(fragment, today=TODAY) == expected


@pytest.mark.parametrize(
    ("fragment", "expected"),
    [
        ("2024-02-29", "2024-02-29"),
        ("Dec 20, 2024", "2024-12-20"),
        ("Jan 12, 2024", "2024-01-12"),
        ("01/12/2024", "2024-01-12"),
        ("3/4", "2024-03-04"),
        ("March 3rd", "2024-03-03"),
        ("on March 3", "2024-03-03"),
    ],
)
def test_absolute_fragments(fragment: str, expected: str):
    assert resolve_date(fragment, today=TODAY) == expected


@pytest.mark.parametrize("fragment", ["", None, "unknown", "groceries", "2023-02-30", "  ,. "])
def test_unresolvable_fragments_are_unknown(fragment):
    assert resolve_date(fragment, today=TODAY) == "unknown"


def test_make_resolver_binds_reference_day():
    resolve = make_resolver(TODAY)
    assert resolve("yesterday") == "2024-05-09"
    assert resolve("not a date") == "unknown"

"""Pytest configuration for test isolation.

The pipeline reads its settings from ``TXN_EXTRACT_*`` variables (and the
API key from ``OPENAI_API_KEY``), and the CLI loads a ``.env`` from the
working directory. A developer's shell or ``.env`` could therefore change
model names, the base currency or whether the language-model stage runs.

To keep tests hermetic, an autouse fixture clears those variables and runs
each test from its own temporary directory.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

_ISOLATED_PREFIXES = ("TXN_EXTRACT_", "TRANSACTION_EXTRACTION_")
_ISOLATED_NAMES = ("OPENAI_API_KEY",)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip extraction settings from the environment and chdir to ``tmp_path``."""

    for name in list(os.environ):
        if name.startswith(_ISOLATED_PREFIXES) or name in _ISOLATED_NAMES:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

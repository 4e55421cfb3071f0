"""Deterministic pattern extractors used when the language model yields nothing."""

from .bank_statement import extract_bank_statement
from .conversational import extract_conversational
from .heuristic import extract_single_heuristic, has_transaction_signal

__all__ = [
    "extract_bank_statement",
    "extract_conversational",
    "extract_single_heuristic",
    "has_transaction_signal",
]

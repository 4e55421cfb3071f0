"""Public interface for the ``transaction_extraction`` package.

This module exposes the package's entry points and public models/types as
the stable import surface. There is no runtime logic here, only symbol
re-exports.
"""

from .cache import ExtractionCache
from .categorize import categorize, infer_direction, reconcile_category
from .config import ExtractionSettings
from .dates import DateResolver, make_resolver, resolve_date
from .json_repair import parse_json_payload, recover_json, repair_json
from .llm_client import (
    CompletionClient,
    CompletionOptions,
    OpenAICompletionClient,
    TransportError,
)
from .models import Category, CategoryGroup, Direction, Strategy, Transaction
from .orchestrator import CascadeOutcome, extract_transactions, run_cascade
from .results import (
    Extracted,
    FieldError,
    ParseFailure,
    StageError,
    StageResult,
    TransportFailure,
    ValidationFailure,
)
from .schema import LlmTransaction, validate_payload

__all__ = [
    # Entry points
    "extract_transactions",
    "run_cascade",
    "CascadeOutcome",
    "ExtractionCache",
    "ExtractionSettings",
    # Building blocks
    "categorize",
    "infer_direction",
    "reconcile_category",
    "recover_json",
    "repair_json",
    "parse_json_payload",
    "validate_payload",
    "resolve_date",
    "make_resolver",
    "DateResolver",
    # Completion interface
    "CompletionClient",
    "CompletionOptions",
    "OpenAICompletionClient",
    "TransportError",
    # Models / types
    "Transaction",
    "LlmTransaction",
    "Direction",
    "Category",
    "CategoryGroup",
    "Strategy",
    "Extracted",
    "FieldError",
    "ParseFailure",
    "ValidationFailure",
    "TransportFailure",
    "StageError",
    "StageResult",
]

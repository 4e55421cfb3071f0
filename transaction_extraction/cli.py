# ruff: noqa: I001
"""CLI for the ``transaction_extraction`` package.

This module exposes callable command handlers (``cmd_extract``,
``cmd_check_json``) and a Typer-based console interface (``txn-extract``).
Environment variables (``TXN_EXTRACT_*``, ``OPENAI_API_KEY``) are loaded from
a local ``.env`` using ``python-dotenv`` before delegating to command logic.
Extraction logic lives in ``transaction_extraction.orchestrator`` and related
modules.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import sys
import uuid
from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import ArgumentInfo, OptionInfo

from .config import ExtractionSettings
from .logging_setup import configure_logging, get_logger

_logger = get_logger("transaction_extraction.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _read_source(source: str) -> str:
    """Return the text of ``source`` (a file path, or ``-`` for stdin)."""

    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _parse_today(raw: str | None) -> date | None:
    if raw is None:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f"--today must be YYYY-MM-DD, got {raw!r}") from exc


# ---- Command handlers --------------------------------------------------------


def cmd_extract(
    source: str,
    *,
    batch_id: str | None = None,
    today: str | None = None,
    no_llm: bool = False,
) -> int:
    """Extract transactions from ``source`` and print them as a JSON list.

    Behavior
    --------
    - Reads ``source`` (``-`` means stdin).
    - Builds :class:`ExtractionSettings` from the environment; ``no_llm``
      disables the language-model stage.
    - Runs the cascade once and writes the JSON array to stdout.

    Errors are written to stderr and the function returns a non-zero exit
    status. On success (including an empty result), returns ``0``.
    """

    # Deferred imports keep ``--help`` fast.
    from .llm_client import OpenAICompletionClient
    from .orchestrator import run_cascade

    try:
        text = _read_source(source)
    except OSError as e:
        print(f"Error: cannot read {source!r}: {e}", file=sys.stderr)
        return 1

    try:
        settings = ExtractionSettings.from_env()
        ref_day = _parse_today(today)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if no_llm:
        settings = dataclasses.replace(settings, llm_enabled=False)

    client = OpenAICompletionClient(settings) if settings.llm_enabled else None
    effective_batch_id = batch_id or str(uuid.uuid4())
    outcome = asyncio.run(
        run_cascade(
            text,
            batch_id=effective_batch_id,
            client=client,
            settings=settings,
            today=ref_day,
        )
    )
    _logger.info(
        "cli:extract_done batch_id=%s strategy=%s count=%d failures=%d",
        effective_batch_id,
        outcome.strategy,
        len(outcome.transactions),
        len(outcome.failures),
    )
    payload = [t.to_json_dict() for t in outcome.transactions]
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def cmd_check_json(path: str) -> int:
    """Run JSON recovery and schema validation over a saved model response.

    Prints the number of valid transactions, or the failure variant with its
    reason(s). Returns ``0`` only when the payload validates.
    """

    from .json_repair import parse_json_payload
    from .results import ParseFailure, ValidationFailure
    from .schema import validate_payload

    try:
        raw = _read_source(path)
    except OSError as e:
        print(f"Error: cannot read {path!r}: {e}", file=sys.stderr)
        return 1

    parsed = parse_json_payload(raw)
    if isinstance(parsed, ParseFailure):
        print(f"ParseFailure: {parsed.reason}", file=sys.stderr)
        return 1
    validated = validate_payload(parsed)
    if isinstance(validated, ValidationFailure):
        print(f"ValidationFailure: {len(validated.errors)} error(s)", file=sys.stderr)
        for err in validated.errors:
            print(f"  {err}", file=sys.stderr)
        return 1
    print(f"OK: {len(validated)} transaction(s)")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Extract categorized financial transactions from free text or pasted bank "
        "statements. Loads TXN_EXTRACT_* settings from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
SOURCE_ARGUMENT: ArgumentInfo = typer.Argument(
    ..., help="Path to a text file, or '-' to read from stdin."
)
BATCH_ID_OPTION: OptionInfo = typer.Option(
    None, "--batch-id", help="Batch identifier stamped on every transaction (default: random)."
)
TODAY_OPTION: OptionInfo = typer.Option(
    None, "--today", help="Reference date for relative dates, YYYY-MM-DD (default: today)."
)
NO_LLM_OPTION: OptionInfo = typer.Option(
    False, "--no-llm", help="Skip the language-model stage and use pattern extractors only."
)
LOG_LEVEL_OPTION: OptionInfo = typer.Option(
    None,
    "--log-level",
    help="Logging level (e.g. DEBUG, INFO). Defaults to TRANSACTION_EXTRACTION_LOG_LEVEL or INFO.",
)


@app.command("extract")
def extract_cmd(
    source: Annotated[str, SOURCE_ARGUMENT],
    *,
    batch_id: str | None = BATCH_ID_OPTION,
    today: str | None = TODAY_OPTION,
    no_llm: bool = NO_LLM_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Extract transactions from a file (or stdin) and print them as JSON."""

    configure_logging(log_level)
    code = cmd_extract(source, batch_id=batch_id, today=today, no_llm=no_llm)
    if code:
        raise typer.Exit(code)


@app.command("check-json")
def check_json_cmd(
    path: Annotated[str, typer.Argument(help="Saved model response to check.")],
    *,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Check whether a saved model response recovers and validates."""

    configure_logging(log_level)
    code = cmd_check_json(path)
    if code:
        raise typer.Exit(code)


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory without overriding
    already-set environment variables.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m transaction_extraction.cli`
    app()

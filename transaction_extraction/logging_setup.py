"""Logging for ``transaction_extraction``.

- ``configure_logging(...)`` is for entrypoints (the CLI): one stream
  handler on the ``"transaction_extraction"`` logger, set up once.
- ``get_logger(name)`` is for library modules, which log under
  ``"transaction_extraction.<module>"`` and never attach handlers. Until an
  entrypoint configures output, the package logger only has a
  ``NullHandler``.
- ``preview(text)`` flattens user or model text for single-line log fields.

Messages follow ``"<module>:<event> key=value ..."``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "transaction_extraction"
_LEVEL_ENV_VAR = "TRANSACTION_EXTRACTION_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_SDK_LOGGERS = ("openai", "httpx", "httpcore")
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    raw = os.getenv(_LEVEL_ENV_VAR) if level is None else level
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip():
        name = raw.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> int:
    """Attach a stream handler to the package logger; later calls are no-ops.

    Parameters
    ----------
    level:
        ``int`` or level name (``"DEBUG"``, ``"info"``, ``"10"``). ``None``
        falls back to ``TRANSACTION_EXTRACTION_LOG_LEVEL``, then ``INFO``.
    fmt:
        Format string; defaults to ``_DEFAULT_FORMAT``.
    stream:
        Handler stream; ``None`` means the current ``sys.stderr``.

    Returns
    -------
    int
        The effective level of the package logger.

    The OpenAI SDK and its HTTP transport log every request at INFO; they
    are held at WARNING unless the resolved level is DEBUG.
    """

    global _CONFIGURED
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _CONFIGURED:
        return pkg_logger.level

    resolved = _parse_level(level)
    for h in [h for h in pkg_logger.handlers if isinstance(h, logging.NullHandler)]:
        pkg_logger.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(resolved)
    pkg_logger.propagate = False

    if resolved > logging.DEBUG:
        for name in _SDK_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _CONFIGURED = True
    return resolved


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name, ensuring safe defaults for library use.

    Until :func:`configure_logging` runs, a ``NullHandler`` on the package
    root logger keeps library use silent.
    """

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


def preview(text: str, limit: int = 120) -> str:
    """Return a single-line, length-capped rendering of ``text`` for log lines."""

    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3] + "..."

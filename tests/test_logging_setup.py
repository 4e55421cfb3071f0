from __future__ import annotations

import io
import logging

import pytest

from transaction_extraction import logging_setup
from transaction_extraction.logging_setup import configure_logging, get_logger, preview

_SDK = ("openai", "httpx", "httpcore")


@pytest.fixture
def pkg_logger(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    logger = logging.getLogger("transaction_extraction")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    sdk_levels = {name: logging.getLogger(name).level for name in _SDK}
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]
    for name, level in sdk_levels.items():
        logging.getLogger(name).setLevel(level)


def test_configure_once_and_emit_to_stream(pkg_logger: logging.Logger):
    stream = io.StringIO()
    assert configure_logging("debug", stream=stream, fmt="%(levelname)s %(message)s") == 10
    handlers = list(pkg_logger.handlers)

    get_logger("transaction_extraction.orchestrator").debug("cascade:stage count=%d", 3)
    assert "DEBUG cascade:stage count=3" in stream.getvalue()

    assert configure_logging("ERROR") == logging.DEBUG
    assert pkg_logger.handlers == handlers
    assert not any(isinstance(h, logging.NullHandler) for h in handlers)


def test_level_from_environment_quiets_sdk_loggers(pkg_logger, monkeypatch):
    monkeypatch.setenv("TRANSACTION_EXTRACTION_LOG_LEVEL", "WARNING")
    assert configure_logging(stream=io.StringIO()) == logging.WARNING
    for name in _SDK:
        assert logging.getLogger(name).level == logging.WARNING


def test_unknown_level_name_defaults_to_info(pkg_logger):
    assert configure_logging("chatty", stream=io.StringIO()) == logging.INFO


def test_preview_flattens_and_caps():
    assert preview("a\n   b\tc") == "a b c"
    long = preview("x" * 500)
    assert len(long) == 120
    assert long.endswith("...")

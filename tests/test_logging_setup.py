from __future__ import annotations

import io
import logging

import pytest

from fintrack.logging_setup import configure_logging, get_logger, level_from


@pytest.fixture
def captured():
    stream = io.StringIO()
    configure_logging("DEBUG", stream=stream, log_file="", force=True)
    yield stream
    configure_logging(stream=io.StringIO(), log_file="", force=True)


def test_module_loggers_reach_the_configured_stream(captured):
    get_logger("fintrack.tools.sheets_sync").info("Sent %d rows to sheet", 3)

    assert "[fintrack.tools.sheets_sync] Sent 3 rows to sheet" in captured.getvalue()


def test_repeat_calls_do_not_stack_handlers(captured):
    before = list(logging.getLogger("fintrack").handlers)

    configure_logging("DEBUG", stream=io.StringIO())

    assert logging.getLogger("fintrack").handlers == before


def test_third_party_loggers_are_quietened(captured):
    assert logging.getLogger("pdfminer").level == logging.WARNING
    assert logging.getLogger("openai").level == logging.WARNING


def test_optional_log_file(tmp_path):
    path = tmp_path / "logs" / "fintrack.log"
    configure_logging("INFO", stream=io.StringIO(), log_file=str(path), force=True)
    try:
        get_logger("fintrack.data.store").warning("Stored value for x is not valid JSON; using default")
        for h in logging.getLogger("fintrack").handlers:
            h.flush()
        assert "not valid JSON" in path.read_text(encoding="utf-8")
    finally:
        configure_logging(stream=io.StringIO(), log_file="", force=True)


@pytest.mark.parametrize(
    "value, expected",
    [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), ("15", 15), (logging.ERROR, logging.ERROR), ("loud", logging.INFO), (None, logging.INFO)],
)
def test_level_from(value, expected):
    assert level_from(value) == expected

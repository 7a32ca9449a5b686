"""Tests for log redaction, JSON output and the optional log file."""

from __future__ import annotations

import json
import logging

import pytest

from utils.logging_config import (
    LogContext,
    SanitizingFormatter,
    StructuredFormatter,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str, *args) -> logging.LogRecord:
    return logging.LogRecord(
        "bank_informer.test", logging.INFO, __file__, 1, message, args, None
    )


@pytest.mark.parametrize(
    "message, secret",
    [
        ("Loaded path_api_key=abc123 from config", "abc123"),
        ("Sending X-CMC_PRO_API_KEY: cmc-secret-1", "cmc-secret-1"),
        ("header Authorization: pathkey42", "pathkey42"),
    ],
)
def test_sanitizing_formatter_redacts_keys(message, secret):
    formatter = SanitizingFormatter("%(message)s")

    output = formatter.format(_record(message))

    assert secret not in output
    assert "[REDACTED]" in output


def test_sanitizing_formatter_applies_args_before_redacting():
    formatter = SanitizingFormatter("%(levelname)s %(message)s")
    record = _record("cmc_api_key=%s rejected", "k-999")

    output = formatter.format(record)

    assert output == "INFO cmc_api_key=[REDACTED] rejected"
    # The original record is left untouched for other handlers.
    assert record.args == ("k-999",)


def test_structured_formatter_emits_json_with_context_fields():
    formatter = StructuredFormatter()

    with LogContext(command="report", run_date="2024-01-02"):
        record = logging.getLogRecordFactory()(
            "bank_informer.cli", logging.WARNING, __file__, 1, "path_api_key=xyz", (), None
        )
    payload = json.loads(formatter.format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "bank_informer.cli"
    assert payload["message"] == "path_api_key=[REDACTED]"
    assert payload["command"] == "report"
    assert payload["run_date"] == "2024-01-02"


def test_log_context_restores_record_factory():
    factory = logging.getLogRecordFactory()

    with LogContext(command="sweep"):
        assert logging.getLogRecordFactory() is not factory

    assert logging.getLogRecordFactory() is factory


def test_setup_logging_writes_json_lines_to_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "bank-informer.log"

    setup_logging("INFO", structured=True, log_file=str(log_file))
    logging.getLogger("bank_informer.store").info("Removed %d entries.", 2)
    for handler in restore_root_logger.handlers:
        handler.flush()

    lines = log_file.read_text().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["message"] == "Removed 2 entries."
    assert payload["logger"] == "bank_informer.store"

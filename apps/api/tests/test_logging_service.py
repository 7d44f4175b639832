from __future__ import annotations

import json
import logging

from homelink_api.logging_service import (
    ConsoleFormatter,
    StructuredFormatter,
    get_logger,
    log_with_context,
)


def _record(**context) -> logging.LogRecord:
    record = logging.LogRecord("homelink_api.test", logging.WARNING, __file__, 1, "Relayed", None, None)
    for name, value in context.items():
        setattr(record, name, value)
    return record


def test_structured_formatter_includes_context_fields() -> None:
    payload = json.loads(
        StructuredFormatter().format(_record(topic="homelink/fan/set", user_id="u1", ignored="x"))
    )

    assert payload["level"] == "WARNING"
    assert payload["message"] == "Relayed"
    assert payload["topic"] == "homelink/fan/set"
    assert payload["user_id"] == "u1"
    assert "ignored" not in payload


def test_console_formatter_appends_context() -> None:
    line = ConsoleFormatter().format(_record(relation="home_members"))
    assert line.endswith("Relayed relation=home_members")


def test_log_with_context_attaches_extras(caplog) -> None:
    logger = get_logger("homelink_api.test")

    with caplog.at_level(logging.INFO, logger="homelink_api.test"):
        log_with_context(logger, "INFO", "Home created", home_id="h1")
        log_with_context(logger, "DEBUG", "dropped")

    assert [record.getMessage() for record in caplog.records] == ["Home created"]
    assert caplog.records[0].home_id == "h1"

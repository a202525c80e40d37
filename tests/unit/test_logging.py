from __future__ import annotations

import json
import logging

from fiscal_core.utils.logging import (
    ConsoleFormatter,
    _json_formatter,
    configure_logging,
    get_logger,
)

EXPECTED_PAGES = 3
EXPECTED_ITEMS = 14


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.pages = EXPECTED_PAGES
    record.collection = "documents"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["pages"] == EXPECTED_PAGES
    assert payload["collection"] == "documents"


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"items": EXPECTED_ITEMS}

    payload = json.loads(_json_formatter(record))

    assert payload["items"] == EXPECTED_ITEMS


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.error = RuntimeError("boom")

    payload = json.loads(_json_formatter(record))

    assert payload["error"] == "boom"


def test_credentials_are_masked() -> None:
    record = _record()
    record.api_token = "secret-token"
    record.extra = {"Authorization": "Bearer secret-token"}

    payload = json.loads(_json_formatter(record))

    assert payload["api_token"] == "***"
    assert payload["Authorization"] == "***"


def test_console_formatter_appends_context() -> None:
    record = _record("[SWEEP COMPLETE] documents")
    record.pages = EXPECTED_PAGES

    line = ConsoleFormatter("%(levelname)s | %(message)s").format(record)

    assert line == f"INFO | [SWEEP COMPLETE] documents | pages={EXPECTED_PAGES}"


def test_console_formatter_without_context_is_unchanged() -> None:
    line = ConsoleFormatter("%(levelname)s | %(message)s").format(_record())

    assert line == "INFO | hello"


def test_configure_logging_keeps_module_loggers_enabled() -> None:
    log = get_logger("fiscal_core.collector")

    configure_logging(level="INFO", json_logs=True)

    assert log.disabled is False
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING


def test_configure_logging_debug_lets_http_logs_through() -> None:
    configure_logging(level="debug")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG

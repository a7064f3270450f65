from __future__ import annotations

import json
import logging
import sys

from batch_bench.utils.logging import _json_formatter

EXPECTED_ROWS = 10
EXPECTED_BATCH_SIZE = 50


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.rows = EXPECTED_ROWS
    record.backend = "sqlite"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["backend"] == "sqlite"
    assert "pathname" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"batch_size": EXPECTED_BATCH_SIZE}

    payload = json.loads(_json_formatter(record))

    assert payload["batch_size"] == EXPECTED_BATCH_SIZE


def test_json_formatter_includes_exception_text() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord(
            name="test.logger",
            level=logging.ERROR,
            pathname=__file__,
            lineno=1,
            msg="failed",
            args=(),
            exc_info=sys.exc_info(),
        )

    payload = json.loads(_json_formatter(record))

    assert "ValueError: boom" in payload["exc_info"]

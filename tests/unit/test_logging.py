from __future__ import annotations

import json
import logging

from dbbench.utils.logging import _json_formatter

EXPECTED_ROWS = 10
EXPECTED_WORKERS = 4


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
    record = _record("[CASE COMPLETE] select-1")
    record.rows = EXPECTED_ROWS
    record.case = "select-1"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "[CASE COMPLETE] select-1"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["case"] == "select-1"
    assert "pathname" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"workers": EXPECTED_WORKERS}

    payload = json.loads(_json_formatter(record))

    assert payload["workers"] == EXPECTED_WORKERS
    assert "extra" not in payload


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.budget = object()

    payload = json.loads(_json_formatter(record))

    assert payload["budget"].startswith("<object")

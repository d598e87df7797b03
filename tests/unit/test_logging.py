from __future__ import annotations

import json
import logging

from activerow.utils.logging import JsonFormatter, _json_formatter, configure_logging

EXPECTED_AFFECTED = 1


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
    record.table = "users"
    record.affected = EXPECTED_AFFECTED

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["table"] == "users"
    assert payload["affected"] == EXPECTED_AFFECTED
    assert "lineno" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"connection": 2}

    payload = json.loads(_json_formatter(record))

    assert payload["connection"] == 2
    assert "extra" not in payload


def test_json_formatter_serializes_unknown_types() -> None:
    record = _record()
    record.params = {"id": object()}

    payload = json.loads(JsonFormatter().format(record))

    assert isinstance(payload["params"], dict)
    assert payload["params"]["id"].startswith("<object object at")


def test_configure_logging_sets_root_level() -> None:
    root = logging.getLogger()
    previous_level, previous_handlers = root.level, list(root.handlers)
    try:
        configure_logging(level="debug", json_logs=True)

        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[-1].formatter, JsonFormatter)
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)

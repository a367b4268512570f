"""Tests for the JSON log formatter."""

import json
import logging

from srma.utils.logging import JSONFormatter, get_logger


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("srma.test", logging.INFO, __file__, 1, "pooled %s", ("R2",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_keys_lifted() -> None:
    payload = json.loads(JSONFormatter().format(make_record(stage="meta", metric="R2", k=12, other="x")))

    assert payload["message"] == "pooled R2"
    assert payload["level"] == "INFO"
    assert payload["stage"] == "meta"
    assert payload["metric"] == "R2"
    assert payload["k"] == 12
    assert "other" not in payload


def test_paths_serialized_as_strings(tmp_path) -> None:
    payload = json.loads(JSONFormatter().format(make_record(path=tmp_path)))

    assert payload["path"] == str(tmp_path)


def test_get_logger_attaches_one_handler() -> None:
    first = get_logger("srma.test.handlers", level="debug")
    second = get_logger("srma.test.handlers")

    assert first is second
    assert len(second.handlers) == 1

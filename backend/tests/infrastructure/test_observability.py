"""Structured Logging — JSON formatter fields and setup idempotence."""

import json
import logging

from userstore.infrastructure import observability
from userstore.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        "userstore.test", logging.INFO, __file__, 1, "hello %s", ("world",), None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_core_and_extra_fields():
    out = json.loads(JSONFormatter().format(
        _record(correlation_id="c-1", status_code=204, unrelated="dropped"),
    ))
    assert out["message"] == "hello world"
    assert out["level"] == "INFO"
    assert out["logger"] == "userstore.test"
    assert out["correlation_id"] == "c-1"
    assert out["status_code"] == 204
    assert "unrelated" not in out
    assert "timestamp" in out


def test_json_formatter_omits_absent_extras():
    out = json.loads(JSONFormatter().format(_record()))
    assert "correlation_id" not in out


def test_setup_logging_does_not_stack_handlers():
    before = list(logging.root.handlers)
    setup_logging("DEBUG", "text")
    setup_logging("WARNING", "json")
    added = [h for h in logging.root.handlers if h not in before]
    assert len(added) <= 1
    assert isinstance(observability._handler.formatter, JSONFormatter)
    assert logging.root.level == logging.WARNING
    logging.root.removeHandler(observability._handler)
    observability._handler = None
    logging.root.setLevel(logging.WARNING)

"""Tests for log formatting."""
import json
import logging
from signlearn.logging_config import ColoredFormatter, JSONFormatter


def make_record(**extra):
    record = logging.LogRecord("signlearn.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "signlearn.test"

    def test_context_fields_copied(self):
        data = json.loads(JSONFormatter().format(make_record(user_id="u1", mode="speed")))
        assert data["user_id"] == "u1"
        assert data["mode"] == "speed"
        assert "sign_id" not in data


class TestColoredFormatter:

    def test_original_record_untouched(self):
        record = make_record()
        output = ColoredFormatter(fmt="%(levelname)s %(message)s").format(record)
        assert "hello world" in output
        assert record.levelname == "INFO"

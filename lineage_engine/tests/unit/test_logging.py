"""Unit tests for lineage_engine.telemetry.logging."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest
from lineage_engine.config import Settings
from lineage_engine.telemetry.logging import JSONFormatter, configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="lineage_engine.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_core_fields(self):
        payload = json.loads(JSONFormatter().format(_record()))
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "lineage_engine.test"
        assert payload["message"] == "hello world"
        assert "timestamp" in payload

    def test_extra_fields_included(self):
        payload = json.loads(JSONFormatter().format(_record(config_version=3)))
        assert payload["config_version"] == 3

    def test_exception_rendered(self):
        try:
            raise ValueError("bad config")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        payload = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad config" in payload["exc_info"]

    def test_single_line(self):
        assert "\n" not in JSONFormatter().format(_record("multi\nline", ()))


class TestConfigureLogging:
    def test_text_output(self):
        stream = io.StringIO()
        configure_logging(Settings(log_level="INFO"), stream=stream)
        logging.getLogger("lineage_engine.test").info("loaded %d pipelines", 3)
        assert "loaded 3 pipelines" in stream.getvalue()

    def test_structured_output(self):
        stream = io.StringIO()
        configure_logging(Settings(structured_logging=True), stream=stream)
        logging.getLogger("lineage_engine.test").warning("snapshot published")
        payload = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert payload["message"] == "snapshot published"

    def test_level_applied(self):
        configure_logging(Settings(log_level="ERROR"), stream=io.StringIO())
        assert logging.getLogger().level == logging.ERROR

    def test_debug_overrides_level(self):
        configure_logging(Settings(log_level="ERROR", debug=True), stream=io.StringIO())
        assert logging.getLogger().level == logging.DEBUG

    def test_repeated_calls_replace_handler(self):
        configure_logging(Settings(), stream=io.StringIO())
        configure_logging(Settings(), stream=io.StringIO())
        named = [h for h in logging.getLogger().handlers if h.get_name() == "pipeviz"]
        assert len(named) == 1

    def test_foreign_handlers_kept(self):
        foreign = logging.NullHandler()
        logging.getLogger().addHandler(foreign)
        configure_logging(Settings(), stream=io.StringIO())
        assert foreign in logging.getLogger().handlers

"""Tests for the level-bound request loggers and logging bootstrap."""

from __future__ import annotations

import io
import logging

import pytest
from flask import Flask, g

from mfaserver.logging import LoggerSet, PrefixedLogger, configure_logging
from mfaserver.logging.setup import RequestContextFilter, TextFormatter


@pytest.fixture()
def buffer_set():
    loggers = LoggerSet(level="DEBUG")
    stream = io.StringIO()
    loggers.bind(logging.StreamHandler(stream))
    return loggers, stream


class TestLoggerSet:
    def test_each_handle_prefixes_its_level(self, buffer_set):
        loggers, stream = buffer_set

        loggers.debug("d %s", 1)
        loggers.info("i")
        loggers.warning("w")
        loggers.error("e")

        assert stream.getvalue().splitlines() == ["DEBUG: d 1", "INFO: i", "WARNING: w", "ERROR: e"]

    def test_handles_are_adapters(self, buffer_set):
        loggers, _ = buffer_set
        assert isinstance(loggers.info, PrefixedLogger)
        assert loggers.info.log_level == logging.INFO

    def test_exception_includes_traceback(self, buffer_set):
        loggers, stream = buffer_set
        try:
            raise ValueError("boom")
        except ValueError:
            loggers.error.exception("failed")

        output = stream.getvalue()
        assert output.startswith("ERROR: failed")
        assert "ValueError: boom" in output

    def test_private_logger(self):
        loggers = LoggerSet()
        assert loggers.logger is not logging.getLogger("mfaserver.requests")
        assert loggers.logger.propagate is False

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="unknown log level"):
            LoggerSet().set_level("TRACE")

    def test_bind_replaces_handlers(self, buffer_set):
        loggers, _ = buffer_set
        handler = logging.NullHandler()

        loggers.bind(handler)

        assert loggers.handlers == [handler]


class TestConfigureLogging:
    def test_applies_formatter_and_filter(self, config):
        root = configure_logging(config)

        handler = config.server.loggers.handlers[0]
        assert isinstance(handler.formatter, TextFormatter)
        assert any(isinstance(f, RequestContextFilter) for f in handler.filters)
        assert root.name == "mfaserver"
        assert handler in root.handlers
        assert logging.getLogger("werkzeug").level == logging.WARNING

    def test_request_context_in_records(self, config, log_buffer):
        configure_logging(config)
        app = Flask(__name__)

        with app.test_request_context("/enrol", environ_base={"REMOTE_ADDR": "192.0.2.7"}):
            g.request_id = "req-42"
            config.server.loggers.info("hello")

        line = log_buffer.getvalue().strip()
        assert line.endswith("[req-42] 192.0.2.7 INFO: hello")

    def test_outside_request(self, config, log_buffer):
        configure_logging(config)

        config.server.loggers.warning("startup")

        assert log_buffer.getvalue().strip().endswith("[-] - WARNING: startup")

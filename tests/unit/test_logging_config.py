"""Unit tests for structured logging."""

import json
import logging
import sys

import pytest

from mailcapture.observability.logging_config import (
    JSONFormatter,
    RequestIDFilter,
    configure_logging,
)
from mailcapture.observability.request_id import request_id_var


def make_record(msg="Email #abc accepted", **extra):
    record = logging.LogRecord("mailcapture.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def request_id():
    token = request_id_var.set("conn-1234")
    yield "conn-1234"
    request_id_var.reset(token)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """JSON log lines"""

    def test_core_fields(self, request_id):
        record = make_record()
        RequestIDFilter().filter(record)
        data = json.loads(JSONFormatter().format(record))
        assert data["level"] == "INFO"
        assert data["request_id"] == request_id
        assert data["message"] == "Email #abc accepted"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields(self):
        record = make_record(message_id="abc", recipient="user@example.com", unrelated="x")
        data = json.loads(JSONFormatter().format(record))
        assert data["message_id"] == "abc"
        assert data["recipient"] == "user@example.com"
        assert "unrelated" not in data

    def test_exception_info(self):
        try:
            raise ValueError("broken")
        except ValueError:
            record = logging.LogRecord(
                "mailcapture.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        data = json.loads(JSONFormatter().format(record))
        assert data["error"] == "broken"
        assert "ValueError" in data["traceback"]

    def test_missing_request_id(self):
        token = request_id_var.set(None)
        try:
            record = make_record()
            RequestIDFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert record.request_id == "no-request-id"


class TestConfigureLogging:
    """Root logger setup"""

    def test_single_handler(self, restore_root_logger):
        configure_logging(level="DEBUG", json_format=False)
        configure_logging(level="DEBUG", json_format=False)
        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.level == logging.DEBUG

    def test_json_formatter_installed(self, restore_root_logger):
        configure_logging(level="INFO", json_format=True)
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

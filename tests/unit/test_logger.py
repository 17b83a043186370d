"""
Unit tests for request-scoped logging context and JSON output.
"""

import json
import logging
import sys

import pytest

from src.core.logging.logger import (
    JsonLineFormatter,
    LogContext,
    RequestContextFilter,
    get_log_context,
    get_logging_health,
    set_log_context,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("tests.logger", logging.INFO, __file__, 10, "bought %s", ("sword",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_scope_is_restored(self):
        before = get_log_context()

        with LogContext(operation="StoreItems/BuyByUser", component="api"):
            assert get_log_context()["operation"] == "StoreItems/BuyByUser"
            assert get_log_context()["request_id"]

        assert get_log_context() == before

    async def test_async_scope_and_late_fields(self):
        async with LogContext(operation="Users/Read"):
            set_log_context(user_id="u-1", endpoint=None)

            context = get_log_context()

        assert context["user_id"] == "u-1"
        assert "endpoint" not in context

    def test_filter_fills_missing_fields_only(self):
        record = _record(operation="explicit")

        with LogContext(operation="from-context", user_id="u-2"):
            RequestContextFilter().filter(record)

        assert record.operation == "explicit"
        assert record.user_id == "u-2"
        assert record.endpoint == "-"


class TestJsonLineFormatter:
    def test_extras_are_nested_under_fields(self):
        record = _record(item_id="i-9", request_id="r-1", operation="-")

        payload = json.loads(JsonLineFormatter().format(record))

        assert payload["msg"] == "bought sword"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "r-1"
        assert "operation" not in payload
        assert payload["fields"] == {"item_id": "i-9"}

    def test_exception_is_rendered(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "tests.logger", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )

        payload = json.loads(JsonLineFormatter().format(record))

        assert "ValueError: boom" in payload["exc"]


@pytest.mark.parametrize("key", ["installed", "queue_size", "enqueued", "dropped"])
def test_health_snapshot_keys(key):
    assert key in get_logging_health()

"""Tests for JSON logging setup."""

import json
import logging
import sys
from collections.abc import Iterator

import pytest

from joblife.app.logging import CustomJsonFormatter, RateLimitFilter, setup_logging
from joblife.core.logging_schema import Component, LogEvent


def _record(
    msg: str = "Retryable error", level: int = logging.WARNING, lineno: int = 10
) -> logging.LogRecord:
    return logging.LogRecord("joblife.core.retryable", level, __file__, lineno, msg, None, None)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, CustomJsonFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


class TestRateLimitFilter:
    def test_suppresses_after_limit(self) -> None:
        rate_filter = RateLimitFilter(rate_per_minute=3)

        results = [rate_filter.filter(_record()) for _ in range(6)]

        # 3 allowed, 1 rate-limit marker, then suppressed
        assert results == [True, True, True, True, False, False]

    def test_marker_message(self) -> None:
        rate_filter = RateLimitFilter(rate_per_minute=1)
        rate_filter.filter(_record())
        marker = _record()
        assert rate_filter.filter(marker) is True
        assert marker.msg.startswith("[RATE LIMITED]")

    def test_errors_never_limited(self) -> None:
        rate_filter = RateLimitFilter(rate_per_minute=1)
        assert all(rate_filter.filter(_record(level=logging.ERROR)) for _ in range(5))

    def test_distinct_locations_counted_separately(self) -> None:
        rate_filter = RateLimitFilter(rate_per_minute=1)
        assert rate_filter.filter(_record(lineno=1)) is True
        assert rate_filter.filter(_record(lineno=2)) is True

    def test_keyed_by_event_and_operation(self) -> None:
        rate_filter = RateLimitFilter(rate_per_minute=1)

        def retry(operation: str, lineno: int = 10) -> logging.LogRecord:
            record = _record(f"Retryable error in {operation}", lineno=lineno)
            record.event = LogEvent.RETRY_SCHEDULED
            record.operation = operation
            return record

        assert rate_filter.filter(retry("start")) is True
        assert rate_filter.filter(retry("preview")) is True
        # Same event and operation from another call site shares the budget
        marker = retry("start", lineno=99)
        assert rate_filter.filter(marker) is True
        assert marker.msg.startswith("[RATE LIMITED]")
        assert rate_filter.filter(retry("start")) is False
        assert rate_filter.tracked_keys == {
            (LogEvent.RETRY_SCHEDULED, "start"),
            (LogEvent.RETRY_SCHEDULED, "preview"),
        }

    def test_expired_keys_are_dropped(self) -> None:
        now = [1000.0]
        rate_filter = RateLimitFilter(rate_per_minute=1, clock=lambda: now[0])
        rate_filter.filter(_record(lineno=1))
        rate_filter.filter(_record(lineno=1))
        assert len(rate_filter.tracked_keys) == 1

        now[0] += 61
        assert rate_filter.filter(_record(lineno=2)) is True
        assert rate_filter.tracked_keys == {("joblife.core.retryable:2", "")}
        # Budget for the first location is fresh again
        first = _record(lineno=1)
        assert rate_filter.filter(first) is True
        assert not first.msg.startswith("[RATE LIMITED]")


class TestCustomJsonFormatter:
    def test_standard_fields(self) -> None:
        record = _record("Cannot start job [job-1]", level=logging.ERROR)
        record.event = LogEvent.OPERATION_FAILED
        record.job_id = "job-1"

        payload = json.loads(CustomJsonFormatter().format(record))

        assert payload["message"] == "Cannot start job [job-1]"
        assert payload["level"] == "ERROR"
        assert payload["logger"] == "joblife.core.retryable"
        assert payload["service"] == "joblife"
        assert payload["schema_version"] == "1.0"
        assert payload["event"] == "operation_failed"
        assert payload["job_id"] == "job-1"
        assert "timestamp" in payload

    def test_component_from_logger_name(self) -> None:
        record = logging.LogRecord(
            "joblife.infra.transform", logging.INFO, __file__, 1, "Started", None, None
        )
        payload = json.loads(CustomJsonFormatter().format(record))
        assert payload["component"] == Component.BACKEND

    def test_explicit_component_kept(self) -> None:
        record = _record()
        record.component = Component.LIFECYCLE
        payload = json.loads(CustomJsonFormatter().format(record))
        assert payload["component"] == "lifecycle"

    def test_error_type(self) -> None:
        try:
            raise TimeoutError("read timed out")
        except TimeoutError:
            record = logging.LogRecord(
                "joblife.cli", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        payload = json.loads(CustomJsonFormatter().format(record))
        assert payload["error_type"] == "TimeoutError"
        assert "read timed out" in payload["exception"]


class TestSetupLogging:
    @pytest.mark.usefixtures("restore_root_logger")
    def test_configures_root_logger(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOGGING_LEVEL", "debug")

        setup_logging()

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, CustomJsonFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING

    @pytest.mark.usefixtures("restore_root_logger")
    def test_explicit_level(self) -> None:
        setup_logging(logging.ERROR)
        assert logging.getLogger().level == logging.ERROR

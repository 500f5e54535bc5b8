"""JSON logging configuration with rate limiting."""

import logging
import sys
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

from joblife.app.config import get_settings
from joblife.core.logging_schema import Component


class RateLimitFilter(logging.Filter):
    """Throttle repeated non-error records to a per-minute budget.

    Records are grouped by their structured ``event`` and ``operation``
    extras, so a storm of retry warnings for one operation is capped without
    muting another operation's records. Records that carry no event fall
    back to logger name and line. ERROR and above always pass.

    The first record over budget passes once, prefixed with
    ``[RATE LIMITED]``; later ones are dropped until the window drains.
    """

    window = 60.0

    def __init__(
        self, rate_per_minute: int = 100, clock: Callable[[], float] = time.monotonic
    ) -> None:
        super().__init__()
        self.rate_per_minute = rate_per_minute
        self._clock = clock
        self._seen: dict[tuple[str, str], list[float]] = {}
        self._limited: set[tuple[str, str]] = set()

    @property
    def tracked_keys(self) -> set[tuple[str, str]]:
        return set(self._seen)

    @staticmethod
    def _key(record: logging.LogRecord) -> tuple[str, str]:
        event = getattr(record, "event", None)
        if event is None:
            return f"{record.name}:{record.lineno}", ""
        return str(event), str(getattr(record, "operation", ""))

    def _expire(self, now: float) -> None:
        for key in list(self._seen):
            recent = [t for t in self._seen[key] if now - t < self.window]
            if recent:
                self._seen[key] = recent
            else:
                del self._seen[key]
                self._limited.discard(key)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.ERROR:
            return True

        now = self._clock()
        self._expire(now)
        key = self._key(record)
        stamps = self._seen.setdefault(key, [])

        if len(stamps) >= self.rate_per_minute:
            if key in self._limited:
                return False
            self._limited.add(key)
            record.msg = f"[RATE LIMITED] {record.msg} (max {self.rate_per_minute}/min)"
        elif key in self._limited and len(stamps) < self.rate_per_minute // 2:
            self._limited.discard(key)

        stamps.append(now)
        return True


# Logger name prefix -> component, for records logged without one
_COMPONENT_BY_LOGGER = (
    ("joblife.core.retryable", Component.RETRY),
    ("joblife.services", Component.LIFECYCLE),
    ("joblife.infra", Component.BACKEND),
    ("joblife.cli", Component.CLI),
)


def component_for(logger_name: str) -> str | None:
    for prefix, component in _COMPONENT_BY_LOGGER:
        if logger_name == prefix or logger_name.startswith(prefix + "."):
            return component
    return None


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record, stamped with service and schema version.

    Structured extras (event, operation, job_id, ...) pass through as
    top-level keys. ``component`` is filled from the logger name when the
    call site did not set it; ``error_type`` names the exception class
    when the record carries exc_info.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        settings = get_settings()
        self._schema_version = settings.logging.schema_version
        self._service = settings.logging.service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["pid"] = record.process
        log_record["schema_version"] = self._schema_version
        log_record["service"] = self._service

        if "component" not in log_record:
            component = component_for(record.name)
            if component is not None:
                log_record["component"] = component

        if record.exc_info and record.exc_info[0] is not None:
            log_record["error_type"] = record.exc_info[0].__name__
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging(level: int | None = None) -> None:
    """Configure JSON logging on the root logger.

    Args:
        level: Log level. If None, uses LOGGING_LEVEL from settings.
    """
    settings = get_settings()

    if level is None:
        level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(CustomJsonFormatter())
    handler.addFilter(RateLimitFilter(settings.logging.rate_limit_per_minute))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Per-request transport logs duplicate our operation logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

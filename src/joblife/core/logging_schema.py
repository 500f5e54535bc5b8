"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (joblife)
- component: Component name (RETRY, LIFECYCLE, BACKEND, CLI)
- event: Event type (operation_success, retry_scheduled, etc.)

High cardinality fields (OK in logs, NOT in metric labels):
- job_id: Job identifier
- kind: Job definition kind
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    # Lifecycle events
    OPERATION_STARTED = "operation_started"
    OPERATION_SUCCESS = "operation_success"
    OPERATION_FAILED = "operation_failed"
    OUTCOME_IGNORED = "outcome_ignored"
    GENERATOR_NOT_FOUND = "generator_not_found"

    # Retry events
    RETRY_SCHEDULED = "retry_scheduled"
    RETRIES_EXHAUSTED = "retries_exhausted"
    PERMANENT_ERROR = "permanent_error"

    # Backend events
    REQUEST_FAILED = "request_failed"


class ErrorClass(StrEnum):
    """Error classification for structured error logging.

    Use these in the 'error_class' extra field to enable
    filtering by error type and setting up alerts.
    """

    TRANSIENT = "transient"  # Retryable (network timeout, 503)
    PERMANENT = "permanent"  # Not retryable (validation, not found)
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"


class Component(StrEnum):
    """Component identifiers for log filtering."""

    RETRY = "retry"
    LIFECYCLE = "lifecycle"
    BACKEND = "backend"
    CLI = "cli"

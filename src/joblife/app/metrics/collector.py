"""Prometheus metrics definitions for job lifecycle operations."""

from prometheus_client import Counter, Histogram

# API calls against the job backend (5ms ~ 180s, stop waits for completion)
_BUCKETS_BACKEND = (
    0.005, 0.01, 0.02, 0.05, 0.1,
    0.2, 0.5, 1, 2, 5,
    10, 30, 60, 180,
)

JOB_OPERATIONS_TOTAL = Counter(
    "joblife_operations_total",
    "Lifecycle operations by outcome (success, ignored, fatal, exhausted)",
    ["operation", "result"],
)

JOB_OPERATION_DURATION = Histogram(
    "joblife_operation_duration_seconds",
    "Lifecycle operation duration including retries",
    ["operation"],
    buckets=_BUCKETS_BACKEND,
)

JOB_RETRIES_TOTAL = Counter(
    "joblife_retries_total",
    "Retries scheduled after transient errors",
    ["operation"],
)

JOB_IGNORED_OUTCOMES_TOTAL = Counter(
    "joblife_ignored_outcomes_total",
    "Backend statuses folded into success",
    ["operation", "status"],
)

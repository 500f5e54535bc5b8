"""Prometheus metrics module."""

from joblife.app.config import get_settings


def metrics_enabled() -> bool:
    """Whether lifecycle metrics should be recorded (METRICS_ENABLED)."""
    return get_settings().metrics.enabled

"""Retryable error classification with exponential backoff retry.

Classifies errors as retryable (transient) or non-retryable (permanent).
Used by the lifecycle controller around every backend call.

Usage:
    from joblife.core.retryable import RetryPolicy, is_retryable, with_retry

    # Check if error is retryable
    if is_retryable(exc):
        # retry logic

    # Execute with automatic retry
    result = await with_retry(lambda: some_async_operation())

    # Or with settings-driven policy
    policy = RetryPolicy.from_config()
    result = await policy.run(lambda: some_async_operation(), operation="start")
"""

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from joblife.app.config import RetryConfig, get_settings
from joblife.app.metrics import metrics_enabled
from joblife.app.metrics.collector import JOB_RETRIES_TOTAL
from joblife.core.errors import (
    BackendResponseError,
    FatalError,
    JobLifecycleError,
    RetriesExhaustedError,
    TransientError,
)
from joblife.core.logging_schema import Component, ErrorClass, LogEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorClassifier = Callable[[Exception], str]
Sleep = Callable[[float], Awaitable[Any]]


# =============================================================================
# httpx error classification
# =============================================================================

HTTPX_RETRYABLE = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.RemoteProtocolError,
)

HTTPX_NON_RETRYABLE = (
    httpx.InvalidURL,
    httpx.TooManyRedirects,
)

# 408 Request Timeout, 410 Gone (node left cluster), 429 Too Many Requests
RETRYABLE_STATUS_CODES = frozenset({408, 410, 429})


def is_status_retryable(status: int) -> bool:
    """Check if an HTTP status code denotes a transient backend failure."""
    if status in RETRYABLE_STATUS_CODES:
        return True
    # 5xx server errors - retryable
    return status >= 500


def status_code_of(exc: Exception) -> int | None:
    """HTTP status carried by a backend or httpx status error, else None."""
    if isinstance(exc, BackendResponseError):
        return exc.status_code
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


# =============================================================================
# Unified classification
# =============================================================================


def classify_error(exc: Exception) -> str:
    """Classify error as 'retryable', 'permanent', or 'unknown'.

    Args:
        exc: Exception to classify

    Returns:
        'retryable': Transient error, can retry
        'permanent': Permanent error, should not retry
        'unknown': Cannot classify (treated as permanent by with_retry)
    """
    if isinstance(exc, TransientError):
        return "retryable"
    if isinstance(exc, JobLifecycleError):
        return "permanent"

    # asyncio timeout is retryable
    if isinstance(exc, asyncio.TimeoutError):
        return "retryable"

    status = status_code_of(exc)
    if status is not None:
        return "retryable" if is_status_retryable(status) else "permanent"

    if isinstance(exc, HTTPX_RETRYABLE):
        return "retryable"
    if isinstance(exc, HTTPX_NON_RETRYABLE):
        return "permanent"

    return "unknown"


def is_retryable(exc: Exception) -> bool:
    """Check if error is retryable (transient).

    Args:
        exc: Exception to classify

    Returns:
        True if error is transient and operation can be retried
    """
    return classify_error(exc) == "retryable"


def error_class_of(exc: Exception) -> ErrorClass:
    """Map an exception to the ErrorClass used in structured log fields."""
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorClass.TIMEOUT
    if status_code_of(exc) == 429:
        return ErrorClass.RATE_LIMITED
    if is_retryable(exc):
        return ErrorClass.TRANSIENT
    return ErrorClass.PERMANENT


def backoff_delay(
    attempt: int, base_delay: float, max_delay: float, jitter: bool = True
) -> float:
    """Delay before retrying after the given 0-based attempt."""
    delay = min(base_delay * (2**attempt), max_delay)
    if jitter:
        # Jitter: 50% ~ 150% of delay (prevents thundering herd)
        delay *= 0.5 + random.random()
    return delay


# =============================================================================
# Retry utility
# =============================================================================


async def with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 2.0,
    max_delay: float = 64.0,
    jitter: bool = True,
    classifier: ErrorClassifier = classify_error,
    operation: str = "operation",
    log: logging.Logger | None = None,
    sleep: Sleep = asyncio.sleep,
    terminal_level: int = logging.ERROR,
) -> T:
    """Execute async operation with exponential backoff retry.

    Only retries for retryable errors (transient failures).
    Non-retryable errors are raised immediately.

    Args:
        coro_factory: Factory function that creates new coroutine for each attempt
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 2.0)
        max_delay: Maximum delay in seconds (default: 64.0)
        jitter: Randomize each delay to 50%~150% (default: True)
        classifier: Returns 'retryable', 'permanent' or 'unknown' for an error
        operation: Operation name for log and metric labels
        log: Logger receiving retry and failure records (default: module logger)
        sleep: Awaitable sleep used between attempts
        terminal_level: Level of the final give-up record. Callers that log
                        the failure themselves pass WARNING

    Returns:
        Result of successful operation

    Raises:
        FatalError: Immediately for non-retryable errors. Errors that are not
                    already a JobLifecycleError are wrapped, original in __cause__
        RetriesExhaustedError: If every attempt failed with a retryable error
        ValueError: If max_retries is negative

    Example:
        result = await with_retry(lambda: fetch_data())
        result = await with_retry(lambda: upload_file(), max_retries=5)
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")
    log = log or logger

    for attempt in range(max_retries + 1):
        try:
            return await coro_factory()
        except Exception as exc:
            error_class = classifier(exc)
            extra = {
                "event": LogEvent.PERMANENT_ERROR,
                "component": Component.RETRY,
                "operation": operation,
                "error_class": error_class_of(exc),
                "attempt": attempt + 1,
            }

            if error_class != "retryable":
                log.log(
                    terminal_level,
                    "Permanent error in %s (not retrying): %s",
                    operation,
                    exc,
                    extra=extra,
                )
                if isinstance(exc, JobLifecycleError):
                    raise
                raise FatalError(str(exc)) from exc

            if attempt == max_retries:
                extra["event"] = LogEvent.RETRIES_EXHAUSTED
                log.log(
                    terminal_level,
                    "Max retries exceeded in %s (%d attempts): %s",
                    operation,
                    attempt + 1,
                    exc,
                    extra=extra,
                )
                raise RetriesExhaustedError(attempt + 1, exc) from exc

            delay = backoff_delay(attempt, base_delay, max_delay, jitter)
            extra["event"] = LogEvent.RETRY_SCHEDULED
            extra["delay"] = delay
            log.warning(
                "Retryable error in %s (attempt %d/%d, retry in %.1fs): %s",
                operation,
                attempt + 1,
                max_retries + 1,
                delay,
                exc,
                extra=extra,
            )
            if metrics_enabled():
                JOB_RETRIES_TOTAL.labels(operation=operation).inc()
            await sleep(delay)

    # Unreachable: the last attempt either returns or raises
    raise RuntimeError("Unexpected state in with_retry")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings bundled for reuse across operations."""

    max_retries: int = 3
    base_delay: float = 2.0
    max_delay: float = 64.0
    jitter: bool = True
    classifier: ErrorClassifier = classify_error
    sleep: Sleep = asyncio.sleep

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    @classmethod
    def from_config(cls, config: RetryConfig | None = None) -> "RetryPolicy":
        """Build policy from RetryConfig (default: RETRY_ settings)."""
        config = config or get_settings().retry
        return cls(
            max_retries=config.max_retries,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
            jitter=config.jitter,
        )

    async def run(
        self,
        coro_factory: Callable[[], Awaitable[T]],
        operation: str = "operation",
        log: logging.Logger | None = None,
        terminal_level: int = logging.ERROR,
    ) -> T:
        return await with_retry(
            coro_factory,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            jitter=self.jitter,
            classifier=self.classifier,
            operation=operation,
            log=log,
            sleep=self.sleep,
            terminal_level=terminal_level,
        )


def retryable(
    policy: RetryPolicy | None = None, operation: str | None = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorate an async function so every call runs under a RetryPolicy.

    Example:
        @retryable(RetryPolicy(max_retries=5))
        async def refresh(job_id: str) -> None: ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = operation or func.__name__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            active = policy or RetryPolicy.from_config()
            return await active.run(lambda: func(*args, **kwargs), operation=name)

        return wrapper

    return decorator

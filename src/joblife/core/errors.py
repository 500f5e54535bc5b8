"""Error taxonomy for job lifecycle operations.

- FatalError: retrying cannot fix it (validation, unsupported kind)
- TransientError: expected to resolve on retry (overload, timeout)
- RetriesExhaustedError: a transient failure outlived the retry budget
- BackendResponseError: non-2xx response from the job backend,
  classified by status code

Usage:
    from joblife.core.errors import FatalError, RetriesExhaustedError

    try:
        await controller.start(job_id)
    except RetriesExhaustedError:
        # backend unavailable, try again later
    except FatalError:
        # abort
"""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes."""

    FATAL = "FATAL"
    UNSUPPORTED_KIND = "UNSUPPORTED_KIND"
    INVALID_DEFINITION = "INVALID_DEFINITION"
    TRANSIENT = "TRANSIENT"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"


class ErrorDetail(BaseModel):
    """Error detail containing code and message."""

    code: str
    message: str


class JobLifecycleError(Exception):
    """Base exception for joblife.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def to_detail(self) -> ErrorDetail:
        """Convert exception to ErrorDetail model."""
        return ErrorDetail(code=self.code.value, message=self.message)


class FatalError(JobLifecycleError):
    """Non-retryable failure."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.FATAL) -> None:
        super().__init__(code, message)


class UnsupportedJobKindError(FatalError):
    """No generator registered for the definition's kind."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(
            f"Unsupported indicator type [{kind}]", ErrorCode.UNSUPPORTED_KIND
        )


class InvalidJobDefinitionError(FatalError):
    """Job definition params cannot be turned into a job spec."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.INVALID_DEFINITION)


class TransientError(JobLifecycleError):
    """Retryable failure."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.TRANSIENT, message)


class RetriesExhaustedError(JobLifecycleError):
    """Transient failure persisted through every retry attempt."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            ErrorCode.RETRIES_EXHAUSTED,
            f"Gave up after {attempts} attempts: {last_error}",
        )


class BackendResponseError(Exception):
    """Job backend answered with a non-success status."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        message = f"Backend returned {status_code}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

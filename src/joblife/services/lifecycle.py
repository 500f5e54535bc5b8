"""Job lifecycle controller.

install -> (preview) -> start -> stop -> uninstall for one external job,
every backend call wrapped in a RetryPolicy.

Ignorable outcomes are per-operation status codes folded into success
inside the retried call, so they are neither retried nor logged as
errors:
- start: 409 (already started)
- stop: 404 (already gone)
- uninstall: 404 (already gone)

Any other failure is logged once with the operation and job id and
re-raised. The backend is the only state; the controller holds none and
is safe to call concurrently or repeatedly for the same job.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, TypeVar

from joblife.app.metrics import metrics_enabled
from joblife.app.metrics.collector import (
    JOB_IGNORED_OUTCOMES_TOTAL,
    JOB_OPERATION_DURATION,
    JOB_OPERATIONS_TOTAL,
)
from joblife.core.errors import (
    FatalError,
    RetriesExhaustedError,
    UnsupportedJobKindError,
)
from joblife.core.generators import JobSpecGenerator
from joblife.core.interfaces import JobBackend
from joblife.core.logging_schema import Component, LogEvent
from joblife.core.models import JobDefinition, JobId
from joblife.core.retryable import RetryPolicy, status_code_of

T = TypeVar("T")

IgnoreRules = Mapping[str, frozenset[int]]

DEFAULT_IGNORE_RULES: IgnoreRules = {
    "start": frozenset({409}),
    "stop": frozenset({404}),
    "uninstall": frozenset({404}),
}


class JobLifecycleController:
    """Lifecycle operations against a named external job.

    Args:
        generators: Kind tag -> JobSpecGenerator (e.g. GeneratorRegistry)
        backend: Job backend client
        logger: Log sink (default: module logger)
        retry_policy: Retry settings (default: RETRY_ settings)
        ignore: Per-operation status codes to treat as success. Entries
                replace the defaults for that operation.
    """

    def __init__(
        self,
        generators: Mapping[str, JobSpecGenerator],
        backend: JobBackend,
        logger: logging.Logger | None = None,
        retry_policy: RetryPolicy | None = None,
        ignore: Mapping[str, Iterable[int]] | None = None,
    ) -> None:
        self._generators = generators
        self._backend = backend
        self._logger = logger or logging.getLogger(__name__)
        self._retry = retry_policy or RetryPolicy.from_config()
        self._ignore: dict[str, frozenset[int]] = dict(DEFAULT_IGNORE_RULES)
        for operation, codes in (ignore or {}).items():
            self._ignore[operation] = frozenset(codes)

    @property
    def ignore_rules(self) -> IgnoreRules:
        return dict(self._ignore)

    async def install(self, definition: JobDefinition) -> JobId:
        """Create the job for a definition in stopped state.

        Raises:
            UnsupportedJobKindError: No generator for definition.kind
                (raised before any backend call)
            InvalidJobDefinitionError: Generator rejected the params
        """
        generator = self._generators.get(definition.kind)
        if generator is None:
            self._logger.error(
                "No job spec generator found for kind [%s]",
                definition.kind,
                extra={
                    "event": LogEvent.GENERATOR_NOT_FOUND,
                    "component": Component.LIFECYCLE,
                    "operation": "install",
                    "kind": definition.kind,
                },
            )
            self._record("install", "fatal")
            raise UnsupportedJobKindError(definition.kind)

        try:
            spec = generator.get_job_spec(definition)
        except FatalError as exc:
            self._logger.error(
                "Cannot build job spec for kind [%s]: %s",
                definition.kind,
                exc,
                extra={
                    "event": LogEvent.OPERATION_FAILED,
                    "component": Component.LIFECYCLE,
                    "operation": "install",
                    "kind": definition.kind,
                },
            )
            self._record("install", "fatal")
            raise

        await self._run(
            "install",
            spec.job_id,
            lambda: self._backend.put(spec.job_id, spec),
            f"Cannot create job for kind [{definition.kind}]",
            kind=definition.kind,
        )
        return spec.job_id

    async def preview(self, job_id: JobId) -> dict[str, Any]:
        """Dry-run the job; no state change."""
        return await self._run(
            "preview",
            job_id,
            lambda: self._backend.preview(job_id),
            f"Cannot preview job [{job_id}]",
        )

    async def start(self, job_id: JobId) -> None:
        await self._run(
            "start",
            job_id,
            lambda: self._backend.start(job_id),
            f"Cannot start job [{job_id}]",
        )

    async def stop(self, job_id: JobId) -> None:
        """Stop the job and wait until the backend reports it stopped."""
        await self._run(
            "stop",
            job_id,
            lambda: self._backend.stop(job_id, wait_for_completion=True, force=True),
            f"Cannot stop job [{job_id}]",
        )

    async def uninstall(self, job_id: JobId) -> None:
        await self._run(
            "uninstall",
            job_id,
            lambda: self._backend.delete(job_id, force=True),
            f"Cannot delete job [{job_id}]",
        )

    async def _run(
        self,
        operation: str,
        job_id: JobId,
        call: Callable[[], Awaitable[T]],
        failure_message: str,
        **fields: Any,
    ) -> T | None:
        ignore = self._ignore.get(operation, frozenset())
        log_extra = {
            "component": Component.LIFECYCLE,
            "operation": operation,
            "job_id": job_id,
            **fields,
        }

        ignored = False

        async def attempt() -> T | None:
            nonlocal ignored
            try:
                return await call()
            except Exception as exc:
                status = status_code_of(exc)
                if status is None or status not in ignore:
                    raise
                self._logger.info(
                    "Ignoring status %d from %s for job [%s]",
                    status,
                    operation,
                    job_id,
                    extra={**log_extra, "event": LogEvent.OUTCOME_IGNORED},
                )
                if metrics_enabled():
                    JOB_IGNORED_OUTCOMES_TOTAL.labels(
                        operation=operation, status=str(status)
                    ).inc()
                ignored = True
                return None

        self._logger.debug(
            "Running %s for job [%s]",
            operation,
            job_id,
            extra={**log_extra, "event": LogEvent.OPERATION_STARTED},
        )
        started = time.monotonic()
        try:
            # The controller owns the single ERROR record for a failed operation
            result = await self._retry.run(
                attempt, operation=operation, log=self._logger, terminal_level=logging.WARNING
            )
        except Exception as exc:
            self._logger.error(
                failure_message,
                extra={
                    **log_extra,
                    "event": LogEvent.OPERATION_FAILED,
                    "error": str(exc),
                },
            )
            self._record(
                operation,
                "exhausted" if isinstance(exc, RetriesExhaustedError) else "fatal",
                time.monotonic() - started,
            )
            raise

        self._logger.info(
            "Completed %s for job [%s]",
            operation,
            job_id,
            extra={**log_extra, "event": LogEvent.OPERATION_SUCCESS},
        )
        self._record(
            operation, "ignored" if ignored else "success", time.monotonic() - started
        )
        return result

    @staticmethod
    def _record(operation: str, result: str, duration: float | None = None) -> None:
        if not metrics_enabled():
            return
        JOB_OPERATIONS_TOTAL.labels(operation=operation, result=result).inc()
        if duration is not None:
            JOB_OPERATION_DURATION.labels(operation=operation).observe(duration)

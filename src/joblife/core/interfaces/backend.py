"""Job backend interface.

A job backend holds named, long-running aggregation jobs (transforms)
and exposes their lifecycle calls. Implementations raise
BackendResponseError for non-success responses and let transport errors
(httpx) propagate; classification and ignorable statuses are handled by
the caller.
"""

from abc import ABC, abstractmethod
from typing import Any

from joblife.core.models import JobId, JobSpec


class JobBackend(ABC):
    """Interface for transform-style job backends.

    Implementations:
    - TransformBackend: transform REST API over httpx
    """

    @abstractmethod
    async def put(self, job_id: JobId, spec: JobSpec) -> None:
        """Create the job in stopped state.

        Raises:
            BackendResponseError: 409 if the job exists, 400 on validation
        """
        ...

    @abstractmethod
    async def preview(self, job_id: JobId) -> dict[str, Any]:
        """Dry-run the job and return the preview document."""
        ...

    @abstractmethod
    async def start(self, job_id: JobId) -> None:
        """Start the job.

        Raises:
            BackendResponseError: 409 if already started, 404 if missing
        """
        ...

    @abstractmethod
    async def stop(
        self,
        job_id: JobId,
        *,
        wait_for_completion: bool = True,
        force: bool = True,
    ) -> None:
        """Stop the job.

        Args:
            job_id: Job to stop
            wait_for_completion: Block until the backend reports stopped
            force: Stop even if the job is failing

        Raises:
            BackendResponseError: 404 if missing
        """
        ...

    @abstractmethod
    async def delete(self, job_id: JobId, *, force: bool = True) -> None:
        """Delete the job permanently.

        Raises:
            BackendResponseError: 404 if missing
        """
        ...

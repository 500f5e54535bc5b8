"""Transform REST API client.

Provides async access to a transform-style job backend
(PUT/_preview/_start/_stop/DELETE under /_transform/{id}).

Configuration via BackendConfig (BACKEND_ env prefix).
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from joblife.app.config import BackendConfig, get_settings
from joblife.core.errors import BackendResponseError
from joblife.core.interfaces import JobBackend
from joblife.core.logging_schema import Component, LogEvent
from joblife.core.models import JobId, JobSpec

logger = logging.getLogger(__name__)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _raise_for_status(resp: httpx.Response, job_id: JobId) -> None:
    """Raise BackendResponseError for non-2xx responses."""
    if resp.is_success:
        return
    reason = resp.reason_phrase
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            reason = error.get("reason") or error.get("type") or reason
        elif isinstance(error, str):
            reason = error
    logger.debug(
        "Backend request failed: %s %s -> %d",
        resp.request.method,
        resp.request.url.path,
        resp.status_code,
        extra={
            "event": LogEvent.REQUEST_FAILED,
            "component": Component.BACKEND,
            "job_id": job_id,
            "status_code": resp.status_code,
        },
    )
    raise BackendResponseError(resp.status_code, reason)


# =============================================================================
# HTTP Client
# =============================================================================


class BackendClient:
    """Lazily created httpx client for the job backend."""

    def __init__(
        self,
        config: BackendConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or get_settings().backend
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def config(self) -> BackendConfig:
        return self._config

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.url,
            timeout=self._config.timeout,
            transport=self._transport,
        )

    async def get(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Recreates the client if the previous one was closed.
        """
        if self._client is None or self._client.is_closed:
            self._client = self._create_client()
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


# =============================================================================
# Transform API
# =============================================================================


class TransformBackend(JobBackend):
    """JobBackend over the transform REST API.

    Status codes are surfaced as BackendResponseError; which ones are
    ignorable is decided by the lifecycle controller.
    """

    def __init__(self, client: BackendClient | None = None) -> None:
        self._backend = client or BackendClient()

    @staticmethod
    def _path(job_id: JobId, action: str = "") -> str:
        # Job ids are opaque; reserved characters must not reshape the URL
        path = f"/_transform/{quote(job_id, safe='')}"
        return f"{path}/{action}" if action else path

    async def put(self, job_id: JobId, spec: JobSpec) -> None:
        client = await self._backend.get()
        params = {}
        if self._backend.config.defer_validation:
            params["defer_validation"] = "true"
        resp = await client.put(self._path(job_id), params=params, json=spec.to_api())
        _raise_for_status(resp, job_id)
        logger.info("Created transform: %s", job_id)

    async def preview(self, job_id: JobId) -> dict[str, Any]:
        client = await self._backend.get()
        resp = await client.post(self._path(job_id, "_preview"))
        _raise_for_status(resp, job_id)
        return resp.json()

    async def start(self, job_id: JobId) -> None:
        client = await self._backend.get()
        resp = await client.post(self._path(job_id, "_start"))
        _raise_for_status(resp, job_id)
        logger.info("Started transform: %s", job_id)

    async def stop(
        self,
        job_id: JobId,
        *,
        wait_for_completion: bool = True,
        force: bool = True,
    ) -> None:
        client = await self._backend.get()
        # Waiting for completion can outlast the default request timeout
        resp = await client.post(
            self._path(job_id, "_stop"),
            params={
                "wait_for_completion": _flag(wait_for_completion),
                "force": _flag(force),
            },
            timeout=self._backend.config.stop_timeout,
        )
        _raise_for_status(resp, job_id)
        logger.info("Stopped transform: %s", job_id)

    async def delete(self, job_id: JobId, *, force: bool = True) -> None:
        client = await self._backend.get()
        resp = await client.delete(self._path(job_id), params={"force": _flag(force)})
        _raise_for_status(resp, job_id)
        logger.info("Deleted transform: %s", job_id)

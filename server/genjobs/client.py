"""Client for the generation jobs API.

Submits a job, polls its status until it finishes, and cancels it on
request. Every call carries a bearer token obtained from ``token_provider``.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from genjobs.config import settings
from genjobs.models.jobs import (
    CreditsResponse,
    GeneratedImage,
    JobStatusResponse,
    QueueGenerationResponse,
)

logger = logging.getLogger(__name__)

GENERATION_FAILED_MESSAGE = "Capturing screenshot has failed, please try again."

LoggedInState = Literal["authenticated", "not_authenticated", "error"]
TokenProvider = Callable[[], Awaitable[str]]


class JobPollerError(Exception):
    """Base class for client-side job errors."""


class GenerationFailedError(JobPollerError):
    pass


class InsufficientCreditsError(GenerationFailedError):
    pass


class JobNotFoundError(JobPollerError):
    """The job is unknown or was cancelled."""


class JobFailedError(JobPollerError):
    pass


class PollingTimeoutError(JobPollerError):
    pass


class PollingCancelledError(JobPollerError):
    pass


class PollingError(JobPollerError):
    pass


class CancellationFailedError(JobPollerError):
    pass


@dataclass(frozen=True)
class JobResult:
    images: list[GeneratedImage]
    credits: int


class JobPoller:
    """Drive one job at a time against the backend."""

    def __init__(
        self,
        token_provider: TokenProvider,
        base_url: str | None = None,
        polling_interval: float | None = None,
        max_attempts: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._polling_interval = (
            settings.polling_interval_seconds if polling_interval is None else polling_interval
        )
        self._max_attempts = settings.max_polling_attempts if max_attempts is None else max_attempts
        # Clients passed in stay owned by the caller
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url or settings.backend_host, timeout=30,
        )

    async def __aenter__(self) -> "JobPoller":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        token = await self._token_provider()
        resp = await self._http.request(
            method,
            path,
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        resp.raise_for_status()
        return resp

    async def generate(
        self,
        prompt: str,
        width: int | None = None,
        height: int | None = None,
        count: int = 1,
    ) -> str:
        """Queue a job and return its ID."""
        params: dict[str, Any] = {"prompt": prompt, "count": count}
        if width is not None:
            params["width"] = width
        if height is not None:
            params["height"] = height

        try:
            resp = await self._request("GET", "/api/queue-generation", params=params)
            return QueueGenerationResponse.model_validate(resp.json()).job_id
        except httpx.HTTPStatusError as e:
            logger.warning("Queueing generation failed: %s", e)
            if e.response.status_code == 403:
                raise InsufficientCreditsError(GENERATION_FAILED_MESSAGE) from e
            raise GenerationFailedError(GENERATION_FAILED_MESSAGE) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Queueing generation failed: %s", e)
            raise GenerationFailedError(GENERATION_FAILED_MESSAGE) from e

    async def await_completion(
        self,
        job_id: str,
        cancel_event: asyncio.Event | None = None,
    ) -> JobResult:
        """Poll until the job completes.

        Setting ``cancel_event`` stops polling at the next check, including
        mid-wait. It does not cancel the job on the server; call ``cancel``.
        """
        for attempt in range(self._max_attempts):
            if cancel_event is not None and cancel_event.is_set():
                raise PollingCancelledError(f"Polling cancelled for job {job_id}")

            status = await self._fetch_status(job_id)

            if status.status == "completed":
                return JobResult(images=status.images or [], credits=status.credits or 0)
            if status.status == "cancelled":
                raise JobNotFoundError("Job not found")
            if status.status == "failed":
                raise JobFailedError(status.error or GENERATION_FAILED_MESSAGE)
            if status.status != "processing":
                raise PollingError(f"Error while polling job status: unexpected status {status.status!r}")

            logger.debug("Job %s still processing (attempt %d)", job_id, attempt + 1)
            if await self._wait(cancel_event):
                raise PollingCancelledError(f"Polling cancelled for job {job_id}")

        raise PollingTimeoutError("Maximum polling attempts reached")

    async def _fetch_status(self, job_id: str) -> JobStatusResponse:
        try:
            resp = await self._request("GET", "/api/job-status", params={"jobId": job_id})
            return JobStatusResponse.model_validate(resp.json())
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise JobNotFoundError("Job not found") from e
            raise PollingError(f"Error while polling job status {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            # ValidationError is a ValueError
            raise PollingError(f"Error while polling job status {e}") from e

    async def _wait(self, cancel_event: asyncio.Event | None) -> bool:
        """Sleep one polling interval. Returns True if cancelled meanwhile."""
        if cancel_event is None:
            await asyncio.sleep(self._polling_interval)
            return False
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self._polling_interval)
        except TimeoutError:
            return False
        return True

    async def cancel(self, job_id: str) -> None:
        try:
            await self._request("POST", "/api/job-status/cancel", params={"jobId": job_id})
        except httpx.HTTPError as e:
            logger.warning("Cancelling job %s failed: %s", job_id, e)
            raise CancellationFailedError("Failed to cancel job.") from e

    async def get_remaining_credits(self) -> int:
        resp = await self._request("GET", "/api/credits")
        return CreditsResponse.model_validate(resp.json()).credits

    async def purchase_credits(self) -> int:
        resp = await self._request("POST", "/api/purchase-credits")
        return CreditsResponse.model_validate(resp.json()).credits

    async def check_authentication_status(self) -> LoggedInState:
        try:
            resp = await self._request("POST", "/api/authentication/status")
            data = resp.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Checking authentication status failed")
            return "error"
        if isinstance(data, dict) and data.get("isAuthenticated"):
            return "authenticated"
        return "not_authenticated"

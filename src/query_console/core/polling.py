"""Paged job polling client.

A request starts a job on the backend and then polls it on a fixed cadence.
Every observed page or state change is reported through an ``on_update``
callback on the event loop thread, until the job fails, finishes, or the
caller cancels the returned handle.

Wire protocol (JSON over HTTP POST to ``{base_url}/{endpoint}``):

- start: ``{"body": {...}}`` -> ``{"jobId": "..."}``
- poll:  ``{"jobId": "..."}`` -> ``{"finished": bool, "error": str | null,
  "response": object | null, "meta": object}``
"""

from __future__ import annotations

import asyncio
import contextlib
import http.client
import json
import socket
import urllib.error
import urllib.request
from typing import TYPE_CHECKING, Any, Protocol

import sentry_sdk
from pydantic import BaseModel, Field

from query_console.core.exceptions import (
    JobResponseError,
    NetworkError,
    QueryConsoleError,
    TimeoutError,
)
from query_console.core.logging import get_logger
from query_console.core.models import JobState

if TYPE_CHECKING:
    from collections.abc import Callable

    UpdateCallback = Callable[[JobState, dict[str, Any], Any], None]

DEFAULT_POLL_INTERVAL_MS = 1000


class PollPage(BaseModel):
    """One poll response from the backend."""

    finished: bool = False
    error: str | None = None
    response: Any = None
    meta: dict[str, Any] = Field(default_factory=dict)


class JobTransport(Protocol):
    """Interface to the remote job backend."""

    def start(self, body: dict[str, Any]) -> str:
        """Submit a job and return its backend identifier."""
        ...

    def poll(self, job_id: str) -> PollPage:
        """Return the next page of status for a job."""
        ...


class JobHandle(Protocol):
    def cancel(self) -> None: ...


class PollingClient(Protocol):
    """Interface for submitting a job and observing it until it settles."""

    def request(
        self,
        body: dict[str, Any],
        on_update: UpdateCallback,
        poll_interval_ms: int | None = None,
    ) -> JobHandle:
        """Start a job; on_update(state, meta, response) fires per update."""
        ...


class PagedJob:
    """Handle for one request/poll cycle.

    After cancel() returns no further updates are delivered. Cancelling a
    finished or already cancelled job does nothing.
    """

    def __init__(self, on_update: UpdateCallback) -> None:
        self._on_update = on_update
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False
        self._finished = False
        self.job_id: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._cancelled or self._finished

    def cancel(self) -> None:
        if self.done:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the polling task settles (finished or cancelled)."""
        if self._task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    def _emit(self, state: JobState, meta: dict[str, Any], response: Any) -> None:
        if self.done:
            return
        if state is not JobState.PENDING:
            self._finished = True
        self._on_update(state, meta, response)


class PagedService:
    """PollingClient implementation that polls a JobTransport from asyncio."""

    def __init__(
        self,
        transport: JobTransport,
        default_poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ) -> None:
        self.transport = transport
        self.default_poll_interval_ms = default_poll_interval_ms

    def request(
        self,
        body: dict[str, Any],
        on_update: UpdateCallback,
        poll_interval_ms: int | None = None,
    ) -> PagedJob:
        interval = poll_interval_ms or self.default_poll_interval_ms
        job = PagedJob(on_update)
        loop = asyncio.get_running_loop()
        job._task = loop.create_task(self._run(job, body, interval))
        job._task.add_done_callback(_log_task_failure)
        return job

    async def _run(self, job: PagedJob, body: dict[str, Any], interval_ms: int) -> None:
        log = get_logger(__name__)
        dry_run = bool(body.get("dryRunOnly"))
        try:
            with sentry_sdk.start_span(op="job.start", description="Start query job"):
                job_id = await asyncio.to_thread(self.transport.start, body)
            job.job_id = job_id
            log.debug("job started", job_id=job_id, dry_run=dry_run)

            poll_number = 0
            while True:
                poll_number += 1
                with sentry_sdk.start_span(
                    op="job.poll", description=f"Poll {poll_number}"
                ):
                    page = await asyncio.to_thread(self.transport.poll, job_id)

                if page.error is not None:
                    log.debug("job failed", job_id=job_id, error=page.error)
                    job._emit(JobState.FAIL, page.meta, page.error)
                    return
                if page.response is not None:
                    job._emit(JobState.PENDING, page.meta, page.response)
                if page.finished:
                    log.debug("job finished", job_id=job_id, polls=poll_number)
                    job._emit(JobState.DONE, page.meta, None)
                    return
                if job.done:
                    return

                await asyncio.sleep(interval_ms / 1000)
        except QueryConsoleError as e:
            log.warning("job request failed", error=e.message, dry_run=dry_run)
            job._emit(JobState.FAIL, {}, e.message)
        except Exception as e:
            log.error("job polling crashed", error=str(e), dry_run=dry_run)
            sentry_sdk.capture_exception(e)
            job._emit(JobState.FAIL, {}, str(e) or type(e).__name__)


def _log_task_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log = get_logger(__name__)
        log.error("job update handler raised", error=str(exc))
        sentry_sdk.capture_exception(exc)


class HttpJobTransport:
    """JobTransport speaking JSON over HTTP with urllib."""

    def __init__(
        self,
        base_url: str,
        endpoint: str = "query",
        timeout: float = 30.0,
        urlopen_fn: Callable[..., Any] = urllib.request.urlopen,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/{endpoint.strip('/')}"
        self.timeout = timeout
        self._urlopen = urlopen_fn

    def _post(self, payload: dict[str, Any]) -> Any:
        data = json.dumps(payload).encode("utf-8")
        req = urllib.request.Request(
            self.url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with self._urlopen(req, timeout=self.timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            msg = f"Backend returned HTTP {e.code} for {self.url}: {e.reason}"
            raise NetworkError(msg) from e
        except socket.timeout as e:
            msg = f"Request to {self.url} timed out after {self.timeout}s"
            raise TimeoutError(msg) from e
        except urllib.error.URLError as e:
            if isinstance(e.reason, socket.timeout):
                msg = f"Request to {self.url} timed out after {self.timeout}s"
                raise TimeoutError(msg) from e
            msg = f"Cannot reach backend at {self.url}: {e.reason}"
            raise NetworkError(msg) from e
        except (OSError, http.client.HTTPException) as e:
            msg = f"Connection to {self.url} failed: {e!r}"
            raise NetworkError(msg) from e

        try:
            return json.loads(raw)
        except ValueError as e:
            msg = f"Malformed JSON from {self.url}: {e}"
            raise JobResponseError(msg) from e

    def start(self, body: dict[str, Any]) -> str:
        payload = self._post({"body": body})
        job_id = payload.get("jobId") if isinstance(payload, dict) else None
        if not job_id:
            msg = f"Backend at {self.url} did not return a jobId"
            raise JobResponseError(msg)
        return str(job_id)

    def poll(self, job_id: str) -> PollPage:
        payload = self._post({"jobId": job_id})
        try:
            return PollPage.model_validate(payload)
        except ValueError as e:
            msg = f"Invalid poll response for job {job_id}: {e}"
            raise JobResponseError(msg) from e

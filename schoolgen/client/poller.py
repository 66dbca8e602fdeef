"""Async client that submits a location and polls the job until it settles."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from schoolgen.jobs.models import JobStatus, JobView
from schoolgen.schema.school import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 2.5
DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_PARTIAL_WINDOW_SECONDS = 10.0


class JobFailedError(RuntimeError):
  """The server reported the job as failed."""

  def __init__(self, job_id: str, message: str) -> None:
    super().__init__(message)
    self.job_id = job_id


class JobTimeoutError(TimeoutError):
  """No terminal status arrived before the client deadline."""

  def __init__(self, job_id: str, timeout_seconds: float) -> None:
    super().__init__(f"Job {job_id} did not finish within {timeout_seconds:g}s")
    self.job_id = job_id
    self.timeout_seconds = timeout_seconds


class JobPoller:
  """Poll ``GET /jobs/{id}`` on a fixed interval.

  ``partial=1`` is sent only once the remaining time drops to ``partial_window``
  so normal polls never render half-finished data. A partial snapshot with data
  ends polling just like a completed job.
  """

  def __init__(
    self,
    client: httpx.AsyncClient,
    *,
    interval: float = DEFAULT_INTERVAL_SECONDS,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    partial_window: float = DEFAULT_PARTIAL_WINDOW_SECONDS,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
  ) -> None:
    self._client = client
    self._interval = interval
    self._timeout = timeout
    self._partial_window = partial_window
    self._clock = clock
    self._sleep = sleep

  async def submit(self, request: GenerationRequest) -> str:
    response = await self._client.post("/jobs", json=request.model_dump(mode="json"))
    response.raise_for_status()
    return str(response.json()["jobId"])

  async def fetch(self, job_id: str, *, partial: bool = False) -> JobView:
    params = {"partial": "1"} if partial else None
    response = await self._client.get(f"/jobs/{job_id}", params=params)
    response.raise_for_status()
    payload = response.json()
    return JobView(job_id=job_id, status=JobStatus(payload["status"]), data=payload.get("data"), error=payload.get("error"))

  async def wait(self, job_id: str) -> JobView:
    """Return the completed (or last-moment partial) view; raise on failure or timeout."""
    deadline = self._clock() + self._timeout
    while True:
      remaining = deadline - self._clock()
      if remaining <= 0:
        raise JobTimeoutError(job_id, self._timeout)

      view = await self.fetch(job_id, partial=remaining <= self._partial_window)
      if view.status is JobStatus.COMPLETED:
        return view
      if view.status is JobStatus.PARTIAL and view.data is not None:
        logger.info("Job %s returned a partial snapshot near the deadline", job_id)
        return view
      if view.status is JobStatus.FAILED:
        raise JobFailedError(job_id, view.error or "Job failed")
      if view.status is JobStatus.EXPIRED:
        raise JobFailedError(job_id, "Job expired before it finished")

      await self._sleep(min(self._interval, max(deadline - self._clock(), 0)))

  async def run(self, request: GenerationRequest) -> JobView:
    return await self.wait(await self.submit(request))

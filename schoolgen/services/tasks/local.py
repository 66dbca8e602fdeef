from __future__ import annotations

import logging
from urllib.parse import urlparse

import httpx

from schoolgen.config import Settings
from schoolgen.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)

TASK_SECRET_HEADER = "x-schoolgen-task-secret"
PROCESS_JOB_PATH = "/internal/tasks/process-job"


class LocalHttpEnqueuer(TaskEnqueuer):
  """Enqueues jobs by POSTing to the task endpoint, simulating Cloud Tasks."""

  def __init__(self, settings: Settings) -> None:
    self.settings = settings

  def _should_use_asgi_transport(self, base_url: str) -> bool:
    """Route loopback URLs in-process through ASGITransport."""
    parsed = urlparse(base_url)
    hostname = (parsed.hostname or "").lower()
    return hostname in {"localhost", "127.0.0.1", "::1", "0.0.0.0"}

  def _build_client(self, base_url: str) -> httpx.AsyncClient:
    # Never trust environment proxy variables for internal dispatch.
    if self._should_use_asgi_transport(base_url):
      from schoolgen.main import app

      transport = httpx.ASGITransport(app=app)
      return httpx.AsyncClient(transport=transport, base_url=base_url, trust_env=False)
    return httpx.AsyncClient(trust_env=False)

  def _task_headers(self) -> dict[str, str]:
    if not self.settings.task_secret:
      raise RuntimeError("Task secret not configured.")
    return {TASK_SECRET_HEADER: self.settings.task_secret}

  async def enqueue(self, job_id: str, payload: dict) -> None:
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured, strictly required for LocalHttpEnqueuer.")

    url = f"{self.settings.base_url.rstrip('/')}{PROCESS_JOB_PATH}"
    try:
      async with self._build_client(self.settings.base_url) as client:
        logger.info("Dispatching task locally to %s", url)
        response = await client.post(url, json={"job_id": job_id, **payload}, headers=self._task_headers(), timeout=30.0)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
      logger.error("Local task dispatch returned %s for job %s: %s", exc.response.status_code, job_id, exc.response.text)
      raise
    except httpx.RequestError as exc:
      logger.error("Failed to dispatch local task for job %s: %s", job_id, exc)
      raise

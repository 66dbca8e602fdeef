from __future__ import annotations

from typing import Protocol


class TaskEnqueuer(Protocol):
  """Interface for dispatching job processing."""

  async def enqueue(self, job_id: str, payload: dict) -> None:
    """Enqueue a job for processing."""
    ...

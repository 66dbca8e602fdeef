from __future__ import annotations

import logging

from schoolgen.config import Settings
from schoolgen.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)


class InlineEnqueuer(TaskEnqueuer):
  """Runs the job in the current process; the caller already runs it as a background task."""

  def __init__(self, settings: Settings) -> None:
    self.settings = settings

  async def enqueue(self, job_id: str, payload: dict) -> None:
    from schoolgen.services.jobs import process_job_sync

    logger.info("Processing job %s inline", job_id)
    await process_job_sync(job_id, self.settings)

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel

from schoolgen.api.deps import require_task_secret
from schoolgen.config import Settings, get_settings
from schoolgen.services.jobs import process_job_sync

router = APIRouter(prefix="/tasks", dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


class TaskPayload(BaseModel):
  job_id: str


@router.post("/process-job", status_code=status.HTTP_202_ACCEPTED)
async def process_job_task(payload: TaskPayload, background_tasks: BackgroundTasks, settings: Annotated[Settings, Depends(get_settings)]) -> dict[str, str]:
  """Accept a dispatched job and run it after the response is sent."""
  logger.info("Received task for job %s", payload.job_id)
  background_tasks.add_task(process_job_sync, payload.job_id, settings)
  return {"status": "accepted"}

from __future__ import annotations

import json
import logging

from google.cloud import tasks_v2
from starlette.concurrency import run_in_threadpool

from schoolgen.config import Settings
from schoolgen.services.tasks.interface import TaskEnqueuer
from schoolgen.services.tasks.local import PROCESS_JOB_PATH, TASK_SECRET_HEADER

logger = logging.getLogger(__name__)


class CloudTasksEnqueuer(TaskEnqueuer):
  """Enqueues jobs to Google Cloud Tasks."""

  def __init__(self, settings: Settings, client: tasks_v2.CloudTasksClient | None = None) -> None:
    self.settings = settings
    self.client = client or tasks_v2.CloudTasksClient()

  def build_task(self, job_id: str, payload: dict) -> dict:
    if not self.settings.cloud_tasks_queue_path:
      raise RuntimeError("Cloud Tasks queue path not configured.")
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured.")
    if not self.settings.task_secret:
      raise RuntimeError("Task secret not configured.")

    headers = {"Content-Type": "application/json", TASK_SECRET_HEADER: self.settings.task_secret}
    http_request: dict = {
      "http_method": tasks_v2.HttpMethod.POST,
      "url": f"{self.settings.base_url.rstrip('/')}{PROCESS_JOB_PATH}",
      "headers": headers,
      "body": json.dumps({"job_id": job_id, **payload}).encode(),
    }
    # Cloud Run invoker auth needs an OIDC token minted for a service account.
    if self.settings.cloud_run_invoker_service_account:
      http_request["oidc_token"] = {"service_account_email": self.settings.cloud_run_invoker_service_account}
    return {"http_request": http_request}

  async def enqueue(self, job_id: str, payload: dict) -> None:
    task = self.build_task(job_id, payload)
    request = {"parent": self.settings.cloud_tasks_queue_path, "task": task}
    response = await run_in_threadpool(self.client.create_task, request=request)
    logger.info("Enqueued task %s for job %s", response.name, job_id)

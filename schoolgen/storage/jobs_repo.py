"""Job state persisted in the key-value store."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from schoolgen.jobs.models import WORKFLOW_STEPS, JobStatus, WorkflowStep
from schoolgen.schema.school import GenerationRequest
from schoolgen.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)


def status_key(job_id: str) -> str:
  return f"job:{job_id}:status"


def partial_key(job_id: str) -> str:
  return f"job:{job_id}:partial"


def final_key(job_id: str) -> str:
  return f"job:{job_id}"


def error_key(job_id: str) -> str:
  return f"job:{job_id}:error"


def stars_key(job_id: str) -> str:
  return f"job:{job_id}:stars"


def created_key(job_id: str) -> str:
  return f"job:{job_id}:created"


def request_key(job_id: str) -> str:
  return f"job:{job_id}:request"


def step_key(job_id: str, step: WorkflowStep | str) -> str:
  name = step.value if isinstance(step, WorkflowStep) else step
  return f"job:{job_id}:step:{name}"


def job_keys(job_id: str) -> list[str]:
  """Every key namespaced under a job id."""
  keys = [status_key(job_id), partial_key(job_id), final_key(job_id), error_key(job_id), stars_key(job_id), created_key(job_id), request_key(job_id)]
  keys.extend(step_key(job_id, step) for step in WORKFLOW_STEPS)
  return keys


@dataclass(frozen=True)
class StepCheckpoint:
  """A completed step and the JSON result it produced."""

  step: str
  result: Any


class JobStore:
  """Typed access to job-scoped keys; every write carries the job TTL."""

  def __init__(self, kv: KeyValueStore, *, ttl_seconds: int, marker_ttl_seconds: int) -> None:
    self.kv = kv
    self.ttl_seconds = ttl_seconds
    self.marker_ttl_seconds = marker_ttl_seconds

  async def _set_json(self, key: str, value: Any, ttl: int | None) -> None:
    await self.kv.set(key, json.dumps(value, ensure_ascii=False, separators=(",", ":")), ttl=ttl)

  async def _get_json(self, key: str) -> Any | None:
    raw = await self.kv.get(key)
    if raw is None:
      return None
    try:
      return json.loads(raw)
    except json.JSONDecodeError:
      logger.warning("Discarding unreadable JSON at %s", key)
      return None

  async def create(self, job_id: str, request: GenerationRequest) -> None:
    """Record a new pending job together with its request."""
    await self._set_json(request_key(job_id), request.model_dump(mode="json"), self.ttl_seconds)
    await self.kv.set(status_key(job_id), JobStatus.PENDING.value, ttl=self.ttl_seconds)
    # Outlives the status key so polls can tell "expired" from "never existed".
    await self.kv.set(created_key(job_id), "1", ttl=self.marker_ttl_seconds)

  async def get_request(self, job_id: str) -> GenerationRequest | None:
    payload = await self._get_json(request_key(job_id))
    if not isinstance(payload, dict):
      return None
    return GenerationRequest.model_validate(payload)

  async def was_created(self, job_id: str) -> bool:
    return await self.kv.get(created_key(job_id)) is not None

  async def set_status(self, job_id: str, status: JobStatus) -> None:
    if status in {JobStatus.PARTIAL, JobStatus.EXPIRED}:
      raise ValueError(f"Status '{status.value}' is a poll view and cannot be stored.")
    await self.kv.set(status_key(job_id), status.value, ttl=self.ttl_seconds)

  async def get_status(self, job_id: str) -> JobStatus | None:
    raw = await self.kv.get(status_key(job_id))
    if raw is None:
      return None
    try:
      return JobStatus(raw)
    except ValueError:
      logger.warning("Unknown stored status %r for job %s", raw, job_id)
      return None

  async def set_partial(self, job_id: str, artifact: dict[str, Any]) -> None:
    await self._set_json(partial_key(job_id), artifact, self.ttl_seconds)

  async def get_partial(self, job_id: str) -> dict[str, Any] | None:
    return await self._get_json(partial_key(job_id))

  async def set_final(self, job_id: str, artifact: dict[str, Any]) -> None:
    await self._set_json(final_key(job_id), artifact, self.ttl_seconds)

  async def get_final(self, job_id: str) -> dict[str, Any] | None:
    return await self._get_json(final_key(job_id))

  async def set_error(self, job_id: str, message: str) -> None:
    await self.kv.set(error_key(job_id), message, ttl=self.ttl_seconds)

  async def get_error(self, job_id: str) -> str | None:
    return await self.kv.get(error_key(job_id))

  async def get_step(self, job_id: str, step: WorkflowStep) -> StepCheckpoint | None:
    payload = await self._get_json(step_key(job_id, step))
    if not isinstance(payload, dict) or "result" not in payload:
      return None
    return StepCheckpoint(step=step.value, result=payload["result"])

  async def set_step(self, job_id: str, step: WorkflowStep, result: Any) -> None:
    await self._set_json(step_key(job_id, step), {"result": result}, self.ttl_seconds)

  async def persist_result(self, job_id: str) -> None:
    """Keep the final payload and status beyond the job TTL."""
    for key in (final_key(job_id), status_key(job_id), created_key(job_id)):
      await self.kv.persist(key)

  async def delete_job(self, job_id: str) -> int:
    return await self.kv.delete(*job_keys(job_id))

"""Domain models for school generation jobs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
  PENDING = "pending"
  RUNNING = "running"
  COMPLETED = "completed"
  FAILED = "failed"
  # Poll-only views; never written to the store.
  PARTIAL = "partial"
  EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
STORED_STATUSES = frozenset({JobStatus.PENDING, JobStatus.RUNNING, JobStatus.COMPLETED, JobStatus.FAILED})


class WorkflowStep(str, Enum):
  """Steps in execution order."""

  SET_RUNNING = "set-running"
  TEXT_AND_ANTHEM = "text-and-anthem"
  IMAGES = "images"
  ANTHEM_AUDIO = "anthem-audio"
  SAVE_FINAL = "save-final"


WORKFLOW_STEPS: tuple[WorkflowStep, ...] = tuple(WorkflowStep)


@dataclass(frozen=True)
class JobView:
  """What a poller sees for one job."""

  job_id: str
  status: JobStatus
  data: dict[str, Any] | None = None
  error: str | None = None

  def to_payload(self) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": self.status.value}
    if self.data is not None:
      payload["data"] = self.data
    if self.error is not None:
      payload["error"] = self.error
    return payload


@dataclass(frozen=True)
class ArchiveEntry:
  """One archived school; ``stars`` is merged in from its counter key on read."""

  id: str
  name: str
  thumbnail: str | None
  createdAt: str  # noqa: N815
  stars: int = 0

  def to_payload(self) -> dict[str, Any]:
    return {"id": self.id, "name": self.name, "thumbnail": self.thumbnail, "createdAt": self.createdAt, "stars": self.stars}

  @classmethod
  def from_payload(cls, payload: dict[str, Any], *, stars: int = 0) -> ArchiveEntry:
    return cls(id=str(payload["id"]), name=str(payload.get("name") or ""), thumbnail=payload.get("thumbnail"), createdAt=str(payload.get("createdAt") or ""), stars=stars)

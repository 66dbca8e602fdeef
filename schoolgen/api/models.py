"""Request and response payloads for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from schoolgen.jobs.models import ArchiveEntry, JobStatus, JobView


class JobCreateResponse(BaseModel):
  """Response payload for job creation."""

  jobId: StrictStr  # noqa: N815


class JobStatusResponse(BaseModel):
  """Poll result; ``data`` and ``error`` are present only for their statuses."""

  status: JobStatus
  data: dict[str, Any] | None = None
  error: StrictStr | None = None

  @classmethod
  def from_view(cls, view: JobView) -> JobStatusResponse:
    return cls(status=view.status, data=view.data, error=view.error)


class ArchiveItemResponse(BaseModel):
  id: StrictStr
  name: StrictStr
  thumbnail: StrictStr | None = None
  createdAt: StrictStr  # noqa: N815
  stars: int = Field(default=0, ge=0)

  @classmethod
  def from_entry(cls, entry: ArchiveEntry) -> ArchiveItemResponse:
    return cls.model_validate(entry.to_payload())


class ArchiveListResponse(BaseModel):
  items: list[ArchiveItemResponse]


class StarsResponse(BaseModel):
  stars: int = Field(ge=0)


class DeleteResponse(BaseModel):
  ok: bool = True


class ImageRequest(BaseModel):
  """Ad-hoc image generation for one slot type."""

  prompt: StrictStr = Field(max_length=4000)
  imageType: StrictStr | None = Field(default=None, description="Slot type such as emblem, principal_face or uniform.")  # noqa: N815
  model_config = ConfigDict(extra="ignore")

  @field_validator("prompt")
  @classmethod
  def _require_prompt(cls, value: str) -> str:
    if not value.strip():
      raise ValueError("prompt must not be empty")
    return value.strip()


class ImageResponse(BaseModel):
  url: StrictStr


class AudioRequest(BaseModel):
  lyrics: StrictStr = Field(max_length=8000)
  style: StrictStr | None = None
  title: StrictStr | None = None
  model_config = ConfigDict(extra="ignore")


class AudioResponse(BaseModel):
  """``url`` is None when audio is unavailable; clients treat that as still pending."""

  url: StrictStr | None = None
  message: StrictStr

"""Request and artifact models for generated school websites."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator, model_validator

DEFAULT_LANDMARK = "この地域"
DEFAULT_SCHOOL_NAME = "架空の学校"
DEFAULT_ANTHEM_TITLE = "校歌"
DEFAULT_ANTHEM_STYLE = "荘厳な合唱曲風"

NEWS_FEED_SIZE = 5
MIN_CRAZY_RULES = 3
CLUB_ACTIVITY_COUNT = 1
SCHOOL_EVENT_COUNT = 3
FACILITY_COUNT = 3
MONUMENT_COUNT = 1
UNIFORM_COUNT = 1
MAX_HISTORICAL_BUILDINGS = 3


def default_address(lat: float, lng: float) -> str:
  return f"緯度{lat:.4f}, 経度{lng:.4f}"


class GenerationRequest(BaseModel):
  """Location input for one generation job."""

  lat: float = Field(strict=True, ge=-90, le=90, allow_inf_nan=False, description="Latitude in degrees.", examples=[35.6762])
  lng: float = Field(strict=True, ge=-180, le=180, allow_inf_nan=False, description="Longitude in degrees.", examples=[139.6503])
  address: StrictStr | None = Field(default=None, max_length=300, description="Optional human-readable address.")
  landmarks: list[StrictStr] = Field(default_factory=list, max_length=20, description="Nearby landmark names.", examples=[["東京タワー"]])
  model_config = ConfigDict(extra="ignore", frozen=True)

  @field_validator("landmarks")
  @classmethod
  def _clean_landmarks(cls, value: list[str]) -> list[str]:
    cleaned = [item.strip() for item in value if item and item.strip()]
    return cleaned or [DEFAULT_LANDMARK]

  @model_validator(mode="before")
  @classmethod
  def _default_address(cls, values: Any) -> Any:
    if not isinstance(values, dict):
      return values
    address = values.get("address")
    if isinstance(address, str) and address.strip():
      return values
    lat, lng = values.get("lat"), values.get("lng")
    # Leave bad coordinates for field validation to reject.
    if not all(isinstance(item, int | float) and not isinstance(item, bool) and math.isfinite(item) for item in (lat, lng)):
      return values
    return {**values, "address": default_address(lat, lng)}

  @property
  def primary_landmark(self) -> str:
    return self.landmarks[0] if self.landmarks else DEFAULT_LANDMARK


class _Lenient(BaseModel):
  """Artifact sections keep unknown keys so provider extras survive a round trip."""

  model_config = ConfigDict(extra="allow")

  @model_validator(mode="before")
  @classmethod
  def _drop_null_fields(cls, values: Any) -> Any:
    # Models send null for text they skipped; the field default stands in for it.
    if not isinstance(values, dict):
      return values
    return {key: value for key, value in values.items() if value is not None or key not in cls.model_fields}


class HistoricalBuilding(_Lenient):
  name: str = ""
  year: str | None = None
  description: str = ""
  image_prompt: str | None = None
  image_url: str | None = None


class SchoolProfile(_Lenient):
  name: str = DEFAULT_SCHOOL_NAME
  motto: str = ""
  overview: str = ""
  established: str | None = None
  emblem_prompt: str | None = None
  emblem_url: str | None = None
  overview_image_url: str | None = None
  historical_buildings: list[HistoricalBuilding] = Field(default_factory=list)


class PrincipalMessage(_Lenient):
  name: str = ""
  title: str = "校長"
  text: str = ""
  face_prompt: str | None = None
  face_image_url: str | None = None


class SchoolAnthem(_Lenient):
  title: str = DEFAULT_ANTHEM_TITLE
  lyrics: str = ""
  style: str = DEFAULT_ANTHEM_STYLE
  audio_url: str | None = None


class NewsItem(_Lenient):
  date: str = ""
  category: str = "お知らせ"
  text: str = ""


class MediaItem(_Lenient):
  name: str = ""
  description: str = ""
  image_prompt: str | None = None
  image_url: str | None = None


class MultimediaContent(_Lenient):
  club_activities: list[MediaItem] = Field(default_factory=list)
  school_events: list[MediaItem] = Field(default_factory=list)
  facilities: list[MediaItem] = Field(default_factory=list)
  monuments: list[MediaItem] = Field(default_factory=list)
  uniforms: list[MediaItem] = Field(default_factory=list)


class SchoolArtifact(_Lenient):
  """The full generated website payload."""

  school_profile: SchoolProfile = Field(default_factory=SchoolProfile)
  principal_message: PrincipalMessage = Field(default_factory=PrincipalMessage)
  school_anthem: SchoolAnthem = Field(default_factory=SchoolAnthem)
  news_feed: list[NewsItem] = Field(default_factory=list)
  crazy_rules: list[str] = Field(default_factory=list)
  multimedia_content: MultimediaContent = Field(default_factory=MultimediaContent)
  history: list[str] | None = None
  notable_alumni: list[dict[str, Any]] | None = None
  teachers: list[dict[str, Any]] | None = None
  access: dict[str, Any] | None = None
  fallbackUsed: bool = False  # noqa: N815
  errorMessage: str | None = None  # noqa: N815

  def to_json(self) -> dict[str, Any]:
    """Dump to the JSON shape persisted in the job store."""
    return self.model_dump(mode="json")

  @classmethod
  def from_json(cls, payload: dict[str, Any]) -> SchoolArtifact:
    return cls.model_validate(payload)

"""Image slot types, their aspect-ratio policy and placeholder URLs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote


class ImageType(str, Enum):
  EMBLEM = "emblem"
  HISTORICAL_BUILDING = "historical_building"
  PRINCIPAL_FACE = "principal_face"
  MONUMENT = "monument"
  UNIFORM = "uniform"
  EVENT = "event"
  CLUB = "club"
  OVERVIEW = "overview"
  GENERIC = "generic"


@dataclass(frozen=True)
class ImageSpec:
  """Static generation and placeholder policy for one image type."""

  aspect_ratio: str
  width: int
  height: int
  background: str
  foreground: str
  label: str

  @property
  def placeholder_url(self) -> str:
    return f"https://placehold.co/{self.width}x{self.height}/{self.background}/{self.foreground}?text={quote(self.label)}"


_SQUARE = "1:1"
_WIDE = "16:9"
_TALL = "3:4"

IMAGE_SPECS: dict[ImageType, ImageSpec] = {
  ImageType.EMBLEM: ImageSpec(_SQUARE, 600, 600, "003366", "FFD700", "Emblem"),
  ImageType.PRINCIPAL_FACE: ImageSpec(_SQUARE, 600, 600, "DDDDDD", "555555", "Principal"),
  ImageType.HISTORICAL_BUILDING: ImageSpec(_WIDE, 800, 450, "8B7355", "FFFFFF", "Building"),
  ImageType.MONUMENT: ImageSpec(_WIDE, 800, 450, "6B6B6B", "FFFFFF", "Monument"),
  ImageType.EVENT: ImageSpec(_WIDE, 800, 450, "CCCCCC", "666666", "Event"),
  ImageType.CLUB: ImageSpec(_WIDE, 800, 450, "CCCCCC", "666666", "Club"),
  ImageType.OVERVIEW: ImageSpec(_WIDE, 800, 450, "8B7355", "FFFFFF", "Overview"),
  ImageType.UNIFORM: ImageSpec(_TALL, 600, 800, "1F2A44", "FFFFFF", "Uniform"),
  ImageType.GENERIC: ImageSpec(_WIDE, 800, 450, "CCCCCC", "666666", "Image"),
}


def resolve_image_type(raw: str | ImageType | None) -> ImageType:
  """Map a free-form type string onto the policy table, defaulting to a wide generic slot."""
  if isinstance(raw, ImageType):
    return raw
  try:
    return ImageType((raw or "").strip().lower())
  except ValueError:
    return ImageType.GENERIC


def image_spec(raw: str | ImageType | None) -> ImageSpec:
  return IMAGE_SPECS[resolve_image_type(raw)]


def placeholder_url(raw: str | ImageType | None) -> str:
  return image_spec(raw).placeholder_url


def is_placeholder(url: str | None) -> bool:
  """Return True for empty, placeholder-host or inline data URLs."""
  if not url:
    return True
  return "placehold.co" in url or url.startswith("data:")

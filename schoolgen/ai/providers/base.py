"""Base interfaces for AI providers and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class ModelResponse:
  """Text returned by a chat/completion model."""

  content: str
  model: str
  usage: dict[str, int] | None = None


@dataclass
class ImageResult:
  """Either a hosted URL or inline bytes; adapters never return both."""

  url: str | None = None
  data: bytes | None = None
  mime_type: str = "image/png"

  @property
  def is_inline(self) -> bool:
    return self.url is None and self.data is not None


class TextModel(ABC):
  """Abstract base class for text models."""

  provider: str
  name: str

  @property
  def candidate_id(self) -> str:
    """Stable ``provider:model`` identifier used for preference caching."""
    return f"{self.provider}:{self.name}"

  @abstractmethod
  async def generate(self, prompt: str, *, system: str | None = None) -> ModelResponse:
    """Generate a response for the given prompt."""


class ImageModel(ABC):
  """Abstract base class for image models."""

  provider: str
  name: str

  @abstractmethod
  async def generate_image(self, prompt: str, *, aspect_ratio: str) -> ImageResult:
    """Generate one image for the prompt."""

"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types

from schoolgen.ai.backoff import retry_with_backoff
from schoolgen.ai.errors import ProviderResponseError
from schoolgen.ai.providers.base import ImageModel, ImageResult, ModelResponse, TextModel

logger = logging.getLogger("schoolgen.ai.providers.gemini")


def _usage(response: Any) -> dict[str, int] | None:
  metadata = getattr(response, "usage_metadata", None)
  if metadata is None:
    return None
  return {"prompt_tokens": metadata.prompt_token_count or 0, "completion_tokens": metadata.candidates_token_count or 0, "total_tokens": metadata.total_token_count or 0}


def _inline_parts(response: Any) -> list[Any]:
  """Collect inline-data parts from every candidate."""
  parts: list[Any] = []
  for candidate in getattr(response, "candidates", None) or []:
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
      inline = getattr(part, "inline_data", None)
      if inline is not None and inline.data:
        parts.append(inline)
  return parts


class GeminiModel(TextModel):
  """Gemini text model with JSON response mode."""

  def __init__(self, name: str, api_key: str, client: genai.Client | None = None) -> None:
    self.provider = "gemini"
    self.name = name
    self._client = client or genai.Client(api_key=api_key)

  async def generate(self, prompt: str, *, system: str | None = None) -> ModelResponse:
    config = types.GenerateContentConfig(system_instruction=system, response_mime_type="application/json", temperature=1.0)
    # Use the async client to avoid blocking the asyncio event loop.
    response = await retry_with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config=config)
    text = response.text or ""
    logger.debug("Gemini %s returned %d chars", self.name, len(text))
    return ModelResponse(content=text, model=self.name, usage=_usage(response))


class GeminiImageModel(ImageModel):
  """Gemini image model returning inline image bytes."""

  def __init__(self, name: str, api_key: str, client: genai.Client | None = None) -> None:
    self.provider = "gemini"
    self.name = name
    self._client = client or genai.Client(api_key=api_key)

  async def generate_image(self, prompt: str, *, aspect_ratio: str) -> ImageResult:
    config = types.GenerateContentConfig(response_modalities=["IMAGE"], image_config=types.ImageConfig(aspect_ratio=aspect_ratio))
    response = await retry_with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config=config)
    parts = _inline_parts(response)
    if not parts:
      raise ProviderResponseError(f"Gemini {self.name} returned no image data.")
    inline = parts[0]
    return ImageResult(data=inline.data, mime_type=inline.mime_type or "image/png")

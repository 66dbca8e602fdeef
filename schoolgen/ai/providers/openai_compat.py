"""OpenAI-compatible providers (OpenRouter, CometAPI, OpenAI) using the openai SDK."""

from __future__ import annotations

import base64
import logging
import os

from openai import AsyncOpenAI

from schoolgen.ai.backoff import retry_with_backoff
from schoolgen.ai.errors import ProviderResponseError
from schoolgen.ai.providers.base import ImageModel, ImageResult, ModelResponse, TextModel

logger = logging.getLogger("schoolgen.ai.providers.openai_compat")

# Sizes accepted by the images endpoint, keyed by aspect ratio.
_IMAGE_SIZES: dict[str, str] = {"1:1": "1024x1024", "16:9": "1536x1024", "3:4": "1024x1536"}


def build_client(api_key: str, base_url: str | None = None) -> AsyncOpenAI:
  """Create an AsyncOpenAI client with optional OpenRouter attribution headers."""
  default_headers = {}
  referer = os.getenv("OPENROUTER_HTTP_REFERER")
  if referer:
    default_headers["HTTP-Referer"] = referer
  title = os.getenv("OPENROUTER_TITLE")
  if title:
    default_headers["X-Title"] = title
  # Retries are owned by our backoff helper and the workflow, not the SDK.
  return AsyncOpenAI(api_key=api_key, base_url=base_url, default_headers=default_headers or None, max_retries=0)


class OpenAICompatModel(TextModel):
  """Chat-completions model behind an OpenAI-compatible endpoint."""

  def __init__(self, provider: str, name: str, client: AsyncOpenAI) -> None:
    self.provider = provider
    self.name = name
    self._client = client

  async def generate(self, prompt: str, *, system: str | None = None) -> ModelResponse:
    messages = []
    if system:
      messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    response = await retry_with_backoff(self._client.chat.completions.create, model=self.name, messages=messages, temperature=1.0, response_format={"type": "json_object"})
    if not response.choices:
      raise ProviderResponseError(f"{self.provider} {self.name} returned no choices.")
    content = response.choices[0].message.content or ""
    logger.debug("%s %s returned %d chars", self.provider, self.name, len(content))
    usage = None
    if response.usage:
      usage = {"prompt_tokens": response.usage.prompt_tokens, "completion_tokens": response.usage.completion_tokens, "total_tokens": response.usage.total_tokens}
    return ModelResponse(content=content, model=self.name, usage=usage)


class OpenAIImageModel(ImageModel):
  """Images endpoint returning either a hosted URL or base64 bytes."""

  def __init__(self, name: str, client: AsyncOpenAI, provider: str = "openai") -> None:
    self.provider = provider
    self.name = name
    self._client = client

  async def generate_image(self, prompt: str, *, aspect_ratio: str) -> ImageResult:
    size = _IMAGE_SIZES.get(aspect_ratio, _IMAGE_SIZES["1:1"])
    response = await retry_with_backoff(self._client.images.generate, model=self.name, prompt=prompt, size=size, n=1)
    if not response.data:
      raise ProviderResponseError(f"{self.provider} {self.name} returned no images.")
    image = response.data[0]
    if image.url:
      return ImageResult(url=image.url)
    if image.b64_json:
      return ImageResult(data=base64.b64decode(image.b64_json), mime_type="image/png")
    raise ProviderResponseError(f"{self.provider} {self.name} returned an empty image payload.")

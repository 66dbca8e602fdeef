"""Anthropic Claude provider using the anthropic SDK."""

from __future__ import annotations

import logging
from typing import Any

from anthropic import AsyncAnthropic

from schoolgen.ai.backoff import retry_with_backoff
from schoolgen.ai.errors import ProviderResponseError
from schoolgen.ai.providers.base import ModelResponse, TextModel

logger = logging.getLogger("schoolgen.ai.providers.claude")

DEFAULT_MAX_TOKENS = 4096


class ClaudeModel(TextModel):
  """Claude messages model; the system prompt carries the JSON contract."""

  def __init__(self, name: str, api_key: str, client: AsyncAnthropic | None = None, *, max_tokens: int = DEFAULT_MAX_TOKENS) -> None:
    self.provider = "anthropic"
    self.name = name
    # Retries are owned by our backoff helper and the workflow, not the SDK.
    self._client = client or AsyncAnthropic(api_key=api_key, max_retries=0)
    self._max_tokens = max_tokens

  async def generate(self, prompt: str, *, system: str | None = None) -> ModelResponse:
    request: dict[str, Any] = {"model": self.name, "max_tokens": self._max_tokens, "temperature": 1.0, "messages": [{"role": "user", "content": prompt}]}
    if system:
      request["system"] = system
    message = await retry_with_backoff(self._client.messages.create, **request)
    text = "".join(block.text for block in message.content if getattr(block, "type", None) == "text")
    if not text:
      raise ProviderResponseError(f"Claude {self.name} returned no text content.")
    logger.debug("Claude %s returned %d chars (stop_reason=%s)", self.name, len(text), getattr(message, "stop_reason", None))
    usage = None
    if message.usage is not None:
      usage = {"prompt_tokens": message.usage.input_tokens, "completion_tokens": message.usage.output_tokens, "total_tokens": message.usage.input_tokens + message.usage.output_tokens}
    return ModelResponse(content=text, model=self.name, usage=usage)

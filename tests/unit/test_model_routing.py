from __future__ import annotations

import dataclasses
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from schoolgen.ai import router
from schoolgen.ai.errors import ProviderResponseError
from schoolgen.ai.providers.claude import ClaudeModel
from schoolgen.ai.router import ProviderMode, resolve_text_candidates, split_candidate


def test_split_candidate_keeps_colons_in_model_name() -> None:
  assert split_candidate("openrouter:google/gemini-2.5-flash:free") == (ProviderMode.OPENROUTER, "google/gemini-2.5-flash:free")


@pytest.mark.parametrize("candidate", ["vertex:gemini", "gemini:", "no-colon"])
def test_split_candidate_rejects_malformed(candidate: str) -> None:
  with pytest.raises(ValueError):
    split_candidate(candidate)


def test_no_credentials_means_no_candidates(settings) -> None:
  assert resolve_text_candidates(settings) == []


def test_defaults_follow_available_credentials(settings) -> None:
  configured = dataclasses.replace(settings, gemini_api_key="g-key")
  assert resolve_text_candidates(configured) == ["gemini:gemini-2.5-flash", "gemini:gemini-2.0-flash"]


def test_configured_list_is_filtered_deduplicated_and_capped(settings) -> None:
  models = ("bogus", "gemini:a", "openai:b", "gemini:a", "gemini:c", "gemini:d", "gemini:e", "gemini:f", "gemini:g")
  configured = dataclasses.replace(settings, text_models=models, gemini_api_key="g-key")

  assert resolve_text_candidates(configured) == ["gemini:a", "gemini:c", "gemini:d", "gemini:e", "gemini:f", "gemini:g"]


def test_image_model_disabled_without_key(settings) -> None:
  assert router.get_image_model(dataclasses.replace(settings, gemini_api_key=None, openai_api_key=None)) is None


def test_claude_is_the_first_default_when_configured(settings) -> None:
  configured = dataclasses.replace(settings, anthropic_api_key="a-key", gemini_api_key="g-key")

  candidates = resolve_text_candidates(configured)

  assert candidates[0] == "anthropic:claude-3-5-sonnet-20241022"
  assert isinstance(router.get_text_model(candidates[0], configured), ClaudeModel)


@pytest.mark.anyio
async def test_claude_model_joins_text_blocks_and_sends_system_prompt() -> None:
  message = SimpleNamespace(content=[SimpleNamespace(type="text", text='{"a": '), SimpleNamespace(type="text", text="1}")], usage=SimpleNamespace(input_tokens=10, output_tokens=4), stop_reason="end_turn")
  client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(return_value=message)))

  response = await ClaudeModel("claude-test", api_key="", client=client).generate("prompt", system="json only")

  assert response.content == '{"a": 1}'
  assert response.usage == {"prompt_tokens": 10, "completion_tokens": 4, "total_tokens": 14}
  kwargs = client.messages.create.await_args.kwargs
  assert kwargs["system"] == "json only"
  assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]


@pytest.mark.anyio
async def test_claude_model_without_text_is_an_output_error() -> None:
  message = SimpleNamespace(content=[], usage=None)
  client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(return_value=message)))

  with pytest.raises(ProviderResponseError):
    await ClaudeModel("claude-test", api_key="", client=client).generate("prompt")

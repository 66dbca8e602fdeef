from __future__ import annotations

import asyncio
import dataclasses
import json

import httpx
import pytest

from schoolgen.ai.agents import Fallback, Generated, SchoolWriter, enforce_invariants
from schoolgen.ai.agents.school_writer import REASON_NO_MODEL, REASON_TIMEOUT
from schoolgen.ai.invariants import split_verses
from schoolgen.ai.mock import build_mock_artifact
from schoolgen.ai.providers.base import ModelResponse, TextModel
from schoolgen.schema.images import is_placeholder
from schoolgen.schema.school import GenerationRequest, SchoolArtifact
from schoolgen.services.caches import ModelPreferenceCache
from schoolgen.storage.kv import InMemoryKeyValueStore

REQUEST = GenerationRequest(lat=35.6586, lng=139.7454, address="東京都港区芝公園4-2-8", landmarks=["東京タワー"])

GOOD_PAYLOAD = {
  "school_profile": {"name": "東京タワー学院", "motto": "高く、赤く", "emblem_url": "https://example.com/invented.png"},
  "principal_message": {"name": "佐藤 花子", "text": "ようこそ", "face_prompt": "Portrait of a stern man"},
  "school_anthem": {"title": "学院歌", "lyrics": "一\n赤き塔の 下に立ち", "style": "行進曲"},
  "news_feed": [{"text": f"news {index}"} for index in range(8)],
  "crazy_rules": ["one"],
  "multimedia_content": {"school_events": [{"name": "塔祭", "image_url": "https://example.com/fake.png"}]},
}


class ScriptedModel(TextModel):
  """Return or raise the scripted items in order."""

  def __init__(self, name: str, script: list) -> None:
    self.provider = "fake"
    self.name = name
    self.script = list(script)
    self.calls = 0

  async def generate(self, prompt: str, *, system: str | None = None) -> ModelResponse:
    self.calls += 1
    item = self.script.pop(0) if self.script else json.dumps(GOOD_PAYLOAD)
    if isinstance(item, BaseException):
      raise item
    if isinstance(item, float):
      await asyncio.sleep(item)
      return ModelResponse(content=json.dumps(GOOD_PAYLOAD), model=self.name)
    return ModelResponse(content=item, model=self.name)


def _writer(settings, models: dict[str, ScriptedModel], cache: ModelPreferenceCache | None = None) -> SchoolWriter:
  return SchoolWriter(settings, cache, model_factory=lambda candidate: models[candidate], candidates=list(models))


def test_mock_artifact_is_deterministic() -> None:
  first = build_mock_artifact(REQUEST)
  second = build_mock_artifact(REQUEST.model_copy())
  assert first.to_json() == second.to_json()
  assert first.school_profile.name == "東京タワー学園高等学校"
  assert len(split_verses(first.school_anthem.lyrics)) == 3
  assert len(first.news_feed) == 5
  assert len(first.crazy_rules) >= 3


def test_mock_artifact_has_placeholder_images_with_prompts() -> None:
  artifact = build_mock_artifact(REQUEST)
  assert is_placeholder(artifact.school_profile.emblem_url)
  assert artifact.school_profile.emblem_prompt
  assert is_placeholder(artifact.principal_message.face_image_url)
  assert "man" in (artifact.principal_message.face_prompt or "")
  for event in artifact.multimedia_content.school_events:
    assert event.image_prompt
    assert is_placeholder(event.image_url)


def test_enforce_invariants_fixes_counts_and_resets_images() -> None:
  artifact = enforce_invariants(SchoolArtifact.model_validate(GOOD_PAYLOAD), REQUEST)

  assert len(artifact.news_feed) == 5
  assert artifact.news_feed[0].text == "news 0"
  assert len(artifact.crazy_rules) == 3
  assert artifact.crazy_rules[0] == "one"
  assert len(artifact.multimedia_content.school_events) == 3
  assert artifact.multimedia_content.school_events[0].name == "塔祭"
  assert is_placeholder(artifact.multimedia_content.school_events[0].image_url)
  assert is_placeholder(artifact.school_profile.emblem_url)
  assert len(split_verses(artifact.school_anthem.lyrics)) == 3
  assert artifact.principal_message.face_prompt == "Portrait of a stern woman"
  assert artifact.fallbackUsed is False


@pytest.mark.anyio
async def test_no_candidates_returns_mock_fallback(settings) -> None:
  writer = SchoolWriter(settings, candidates=[])

  outcome = await writer.generate(REQUEST)

  assert isinstance(outcome, Fallback)
  assert outcome.reason == REASON_NO_MODEL
  assert outcome.artifact.fallbackUsed is True
  assert outcome.artifact.errorMessage == REASON_NO_MODEL
  assert outcome.artifact.school_profile.name == "東京タワー学園高等学校"


@pytest.mark.anyio
async def test_unparseable_output_moves_to_next_candidate(settings) -> None:
  broken = ScriptedModel("broken", ["I'm sorry, I can't produce JSON today."])
  good = ScriptedModel("good", [json.dumps(GOOD_PAYLOAD)])

  outcome = await _writer(settings, {"fake:broken": broken, "fake:good": good}).generate(REQUEST)

  assert isinstance(outcome, Generated)
  assert outcome.model == "fake:good"
  assert outcome.artifact.school_profile.name == "東京タワー学院"
  assert broken.calls == 1 and good.calls == 1


@pytest.mark.anyio
async def test_repairable_output_is_accepted(settings) -> None:
  raw = "```json\n" + json.dumps(GOOD_PAYLOAD, ensure_ascii=False)[:-1] + ",}\n```"
  outcome = await _writer(settings, {"fake:a": ScriptedModel("a", [raw])}).generate(REQUEST)
  assert isinstance(outcome, Generated)


@pytest.mark.anyio
async def test_null_text_fields_take_defaults(settings) -> None:
  payload = json.loads(json.dumps(GOOD_PAYLOAD))
  payload["school_profile"]["motto"] = None
  payload["principal_message"]["title"] = None
  payload["school_anthem"]["style"] = None

  outcome = await _writer(settings, {"fake:a": ScriptedModel("a", [json.dumps(payload)])}).generate(REQUEST)

  assert isinstance(outcome, Generated)
  assert outcome.artifact.school_profile.name == "東京タワー学院"
  assert outcome.artifact.school_profile.motto == ""
  assert outcome.artifact.principal_message.title == "校長"
  assert outcome.artifact.school_anthem.style == "荘厳な合唱曲風"


@pytest.mark.anyio
async def test_all_candidates_failing_falls_back_with_reason(settings) -> None:
  models = {
    "fake:a": ScriptedModel("a", ["not json"]),
    "fake:b": ScriptedModel("b", [RuntimeError('model not found {"error": {"message": "Model unavailable"}}')]),
  }

  outcome = await _writer(settings, models).generate(REQUEST)

  assert isinstance(outcome, Fallback)
  assert outcome.reason == "fake:b: Model unavailable"
  assert outcome.artifact.fallbackUsed is True


@pytest.mark.anyio
async def test_success_is_remembered_and_tried_first(settings) -> None:
  cache = ModelPreferenceCache(InMemoryKeyValueStore(), ttl_seconds=60)
  first = ScriptedModel("first", ["nope", json.dumps(GOOD_PAYLOAD)])
  second = ScriptedModel("second", [json.dumps(GOOD_PAYLOAD), json.dumps(GOOD_PAYLOAD)])
  writer = _writer(settings, {"fake:first": first, "fake:second": second}, cache)

  assert (await writer.generate(REQUEST)).model == "fake:second"
  assert await cache.get() == "fake:second"

  outcome = await writer.generate(REQUEST)

  assert outcome.model == "fake:second"
  assert first.calls == 1
  assert second.calls == 2


@pytest.mark.anyio
async def test_overall_timeout_returns_mock(settings) -> None:
  fast = dataclasses.replace(settings, text_timeout_seconds=0.05)
  slow = ScriptedModel("slow", [1.0])

  outcome = await _writer(fast, {"fake:slow": slow}).generate(REQUEST)

  assert isinstance(outcome, Fallback)
  assert outcome.reason == REASON_TIMEOUT


@pytest.mark.anyio
async def test_connection_failures_propagate(settings) -> None:
  models = {"fake:a": ScriptedModel("a", [httpx.ConnectError("refused")]), "fake:b": ScriptedModel("b", [ConnectionError("reset")])}

  with pytest.raises(ConnectionError):
    await _writer(settings, models).generate(REQUEST)


@pytest.mark.anyio
async def test_unexpected_errors_propagate(settings) -> None:
  models = {"fake:a": ScriptedModel("a", [KeyError("programming error")]), "fake:b": ScriptedModel("b", [])}

  with pytest.raises(KeyError):
    await _writer(settings, models).generate(REQUEST)
  assert models["fake:b"].calls == 0

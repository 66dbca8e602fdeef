from __future__ import annotations

import pytest

from schoolgen.ai.mock import build_mock_artifact
from schoolgen.ai.providers.base import ImageModel, ImageResult
from schoolgen.jobs.pipeline import collect_image_slots, fill_anthem_audio, fill_image_slots
from schoolgen.schema.images import is_placeholder
from schoolgen.schema.school import GenerationRequest
from schoolgen.services.assets import AssetGenerator
from schoolgen.services.caches import MockAssetCache
from schoolgen.storage.kv import InMemoryKeyValueStore

REQUEST = GenerationRequest(lat=34.9671, lng=135.7727, landmarks=["伏見稲荷大社"])


class CountingImageModel(ImageModel):
  provider = "fake"
  name = "counting"

  def __init__(self, *, fail_on: str | None = None) -> None:
    self.prompts: list[str] = []
    self.fail_on = fail_on

  async def generate_image(self, prompt: str, *, aspect_ratio: str) -> ImageResult:
    self.prompts.append(prompt)
    if self.fail_on and self.fail_on in prompt:
      raise RuntimeError("service unavailable")
    return ImageResult(url=f"https://cdn.example.com/{len(self.prompts)}.png")


class FakeAudio:
  def __init__(self) -> None:
    self.calls = 0

  async def generate(self, lyrics: str, *, title: str, style: str | None = None) -> str:
    self.calls += 1
    return "https://cdn.example.com/anthem.mp3"


def _fallback_artifact():
  return build_mock_artifact(REQUEST).model_copy(update={"fallbackUsed": True, "errorMessage": "no text model configured"})


def test_slots_are_collected_in_display_order() -> None:
  slots = collect_image_slots(build_mock_artifact(REQUEST))
  assert [slot.key for slot in slots] == ["emblem", "historical_building", "historical_building_latest", "principal_face", "monument", "uniform", "event", "club"]
  assert all(slot.prompt for slot in slots)


def test_slots_skip_filled_images_and_single_building() -> None:
  artifact = build_mock_artifact(REQUEST)
  artifact.school_profile.emblem_url = "https://cdn.example.com/emblem.png"
  artifact.school_profile.historical_buildings = artifact.school_profile.historical_buildings[:1]
  artifact.multimedia_content.school_events[0].image_url = "https://cdn.example.com/event.png"

  slots = collect_image_slots(artifact)

  keys = [slot.key for slot in slots]
  assert "emblem" not in keys
  assert "historical_building_latest" not in keys
  event_slot = next(slot for slot in slots if slot.key == "event")
  assert event_slot.target is artifact.multimedia_content.school_events[1]


@pytest.mark.anyio
async def test_fully_filled_artifact_makes_no_calls(settings) -> None:
  model = CountingImageModel()
  artifact = build_mock_artifact(REQUEST)
  profile = artifact.school_profile
  profile.emblem_url = "https://cdn.example.com/emblem.png"
  for building in profile.historical_buildings:
    building.image_url = "https://cdn.example.com/building.png"
  artifact.principal_message.face_image_url = "https://cdn.example.com/face.png"
  media = artifact.multimedia_content
  for item in [*media.monuments, *media.uniforms, *media.school_events, *media.club_activities]:
    item.image_url = "https://cdn.example.com/item.png"
  before = artifact.to_json()

  again = await fill_image_slots(artifact, AssetGenerator(settings, image_model=model), None)

  assert collect_image_slots(artifact) == []
  assert again.to_json() == before
  assert model.prompts == []


@pytest.mark.anyio
async def test_failed_slot_keeps_placeholder_and_others_fill(settings) -> None:
  assets = AssetGenerator(settings, image_model=CountingImageModel(fail_on="monument"))
  artifact = build_mock_artifact(REQUEST)

  await fill_image_slots(artifact, assets, None)

  assert is_placeholder(artifact.multimedia_content.monuments[0].image_url)
  assert not is_placeholder(artifact.school_profile.emblem_url)
  assert not is_placeholder(artifact.principal_message.face_image_url)


@pytest.mark.anyio
async def test_mock_assets_are_reused_for_later_fallback_jobs(settings) -> None:
  cache = MockAssetCache(InMemoryKeyValueStore(), ttl_seconds=600)
  first_model = CountingImageModel()
  first = await fill_image_slots(_fallback_artifact(), AssetGenerator(settings, image_model=first_model), cache)
  assert len(first_model.prompts) == 8

  second_model = CountingImageModel()
  second = await fill_image_slots(_fallback_artifact(), AssetGenerator(settings, image_model=second_model), cache)

  assert second_model.prompts == []
  assert second.school_profile.emblem_url == first.school_profile.emblem_url
  assert second.school_profile.historical_buildings[1].image_url == first.school_profile.historical_buildings[1].image_url


@pytest.mark.anyio
async def test_placeholders_are_never_cached(settings) -> None:
  cache = MockAssetCache(InMemoryKeyValueStore(), ttl_seconds=600)

  await fill_image_slots(_fallback_artifact(), AssetGenerator(settings), cache)

  assert await cache.get_many(["emblem"]) is None


@pytest.mark.anyio
async def test_generated_artifacts_do_not_touch_mock_cache(settings) -> None:
  cache = MockAssetCache(InMemoryKeyValueStore(), ttl_seconds=600)

  await fill_image_slots(build_mock_artifact(REQUEST), AssetGenerator(settings, image_model=CountingImageModel()), cache)

  assert await cache.get_many(["emblem"]) is None


@pytest.mark.anyio
async def test_anthem_audio_uses_cache_for_fallback(settings) -> None:
  cache = MockAssetCache(InMemoryKeyValueStore(), ttl_seconds=600)
  audio = FakeAudio()
  assets = AssetGenerator(settings, audio_client=audio)

  first = await fill_anthem_audio(_fallback_artifact(), assets, cache)
  second = await fill_anthem_audio(_fallback_artifact(), assets, cache)

  assert first.school_anthem.audio_url == "https://cdn.example.com/anthem.mp3"
  assert second.school_anthem.audio_url == first.school_anthem.audio_url
  assert audio.calls == 1


@pytest.mark.anyio
async def test_anthem_audio_left_empty_without_provider(settings) -> None:
  artifact = await fill_anthem_audio(build_mock_artifact(REQUEST), AssetGenerator(settings), None)
  assert artifact.school_anthem.audio_url is None

"""School generation steps wired into the checkpointed workflow."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from schoolgen.ai.agents.school_writer import Fallback, SchoolWriter
from schoolgen.config import Settings
from schoolgen.jobs.models import TERMINAL_STATUSES, JobStatus, WorkflowStep
from schoolgen.jobs.workflow import StepDefinition, Workflow, WorkflowContext
from schoolgen.schema.images import ImageType, is_placeholder, placeholder_url
from schoolgen.schema.normalize import normalize_artifact
from schoolgen.schema.school import GenerationRequest, MediaItem, SchoolArtifact
from schoolgen.services.assets import AssetGenerator
from schoolgen.services.caches import MockAssetCache
from schoolgen.storage.jobs_repo import JobStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageSlot:
  """One image field on the artifact that still needs an asset.

  ``key`` names the slot for the mock-asset cache; ``target`` and ``field`` point
  at the model attribute the resulting URL is written back to.
  """

  key: str
  image_type: ImageType
  prompt: str
  target: BaseModel
  field: str

  def apply(self, url: str | None) -> None:
    setattr(self.target, self.field, url or placeholder_url(self.image_type))


def _media_prompt(item: MediaItem, fallback: str) -> str:
  return (item.image_prompt or item.description or item.name or fallback).strip()


def collect_image_slots(artifact: SchoolArtifact) -> list[ImageSlot]:
  """Return the ordered slots whose URL is still a placeholder.

  Order: emblem, first historical building, most recent historical building (when
  there is more than one), principal portrait, first monument, first uniform, first
  event without an image, first club without an image.
  """
  profile = artifact.school_profile
  principal = artifact.principal_message
  media = artifact.multimedia_content
  slots: list[ImageSlot] = []

  if is_placeholder(profile.emblem_url):
    slots.append(ImageSlot("emblem", ImageType.EMBLEM, profile.emblem_prompt or f"School crest of {profile.name}", profile, "emblem_url"))

  buildings = profile.historical_buildings
  if buildings and is_placeholder(buildings[0].image_url):
    first = buildings[0]
    slots.append(ImageSlot("historical_building", ImageType.HISTORICAL_BUILDING, first.image_prompt or first.description or first.name, first, "image_url"))
  if len(buildings) > 1 and is_placeholder(buildings[-1].image_url):
    latest = buildings[-1]
    slots.append(ImageSlot("historical_building_latest", ImageType.HISTORICAL_BUILDING, latest.image_prompt or latest.description or latest.name, latest, "image_url"))

  if is_placeholder(principal.face_image_url):
    slots.append(ImageSlot("principal_face", ImageType.PRINCIPAL_FACE, principal.face_prompt or "Portrait of a Japanese school principal", principal, "face_image_url"))

  if media.monuments and is_placeholder(media.monuments[0].image_url):
    slots.append(ImageSlot("monument", ImageType.MONUMENT, _media_prompt(media.monuments[0], "School monument"), media.monuments[0], "image_url"))
  if media.uniforms and is_placeholder(media.uniforms[0].image_url):
    slots.append(ImageSlot("uniform", ImageType.UNIFORM, _media_prompt(media.uniforms[0], "Japanese school uniform"), media.uniforms[0], "image_url"))

  event = next((item for item in media.school_events if is_placeholder(item.image_url)), None)
  if event is not None:
    slots.append(ImageSlot("event", ImageType.EVENT, _media_prompt(event, "Japanese school event"), event, "image_url"))
  club = next((item for item in media.club_activities if is_placeholder(item.image_url)), None)
  if club is not None:
    slots.append(ImageSlot("club", ImageType.CLUB, _media_prompt(club, "Japanese school club activity"), club, "image_url"))
  return slots


async def fill_image_slots(artifact: SchoolArtifact, assets: AssetGenerator, mock_cache: MockAssetCache | None) -> SchoolArtifact:
  """Generate images for every placeholder slot and write the URLs back in place.

  For fallback artifacts the shared mock-asset cache is consulted first and only
  used when it holds every needed slot; fresh results refresh the cache when at
  least one real asset was produced.
  """
  slots = collect_image_slots(artifact)
  if not slots:
    return artifact

  use_mock_cache = artifact.fallbackUsed and mock_cache is not None
  if use_mock_cache:
    cached = await mock_cache.get_many(slot.key for slot in slots)
    if cached is not None:
      logger.info("Reusing %d cached mock assets", len(cached))
      for slot in slots:
        slot.apply(cached[slot.key])
      return artifact

  results = await asyncio.gather(*(assets.generate_image(slot.prompt, slot.image_type) for slot in slots), return_exceptions=True)
  produced: dict[str, str] = {}
  for slot, result in zip(slots, results, strict=True):
    if isinstance(result, BaseException):
      logger.warning("Image slot %s failed: %s", slot.key, result)
      result = None
    slot.apply(result)
    if result and not is_placeholder(result):
      produced[slot.key] = result

  if use_mock_cache and produced:
    await mock_cache.put_many(produced)
  return artifact


async def fill_anthem_audio(artifact: SchoolArtifact, assets: AssetGenerator, mock_cache: MockAssetCache | None) -> SchoolArtifact:
  anthem = artifact.school_anthem
  if not anthem.lyrics.strip() or anthem.audio_url:
    return artifact
  use_mock_cache = artifact.fallbackUsed and mock_cache is not None
  if use_mock_cache:
    cached = await mock_cache.get_audio()
    if cached:
      anthem.audio_url = cached
      return artifact
  audio_url = await assets.generate_audio(anthem.lyrics, anthem.style, anthem.title)
  if audio_url:
    anthem.audio_url = audio_url
    if use_mock_cache:
      await mock_cache.put_audio(audio_url)
  return artifact


class SchoolPipeline:
  """Steps for one school job: set-running, text, images, audio, save-final."""

  def __init__(self, settings: Settings, jobs: JobStore, writer: SchoolWriter, assets: AssetGenerator, mock_cache: MockAssetCache | None = None) -> None:
    self._settings = settings
    self._jobs = jobs
    self._writer = writer
    self._assets = assets
    self._mock_cache = mock_cache

  def build_workflow(self) -> Workflow:
    steps = [
      StepDefinition(WorkflowStep.SET_RUNNING, self._set_running),
      StepDefinition(WorkflowStep.TEXT_AND_ANTHEM, self._text_and_anthem),
      StepDefinition(WorkflowStep.IMAGES, self._images),
      StepDefinition(WorkflowStep.ANTHEM_AUDIO, self._anthem_audio),
      StepDefinition(WorkflowStep.SAVE_FINAL, self._save_final),
    ]
    return Workflow(
      self._jobs,
      steps,
      max_retries=self._settings.workflow_max_retries,
      retry_delay_seconds=self._settings.workflow_retry_delay_seconds,
      step_timeout_seconds=self._settings.step_timeout_seconds,
    )

  async def run(self, job_id: str, request: GenerationRequest) -> bool:
    return await self.build_workflow().run(WorkflowContext(job_id=job_id, request=request))

  @staticmethod
  def _artifact_from(context: WorkflowContext, step: WorkflowStep) -> SchoolArtifact:
    return SchoolArtifact.from_json(context.result_of(step)["artifact"])

  async def _set_running(self, context: WorkflowContext) -> dict[str, Any]:
    status = await self._jobs.get_status(context.job_id)
    if status not in TERMINAL_STATUSES:
      await self._jobs.set_status(context.job_id, JobStatus.RUNNING)
    return {"status": JobStatus.RUNNING.value}

  async def _text_and_anthem(self, context: WorkflowContext) -> dict[str, Any]:
    outcome = await self._writer.generate(context.request)
    artifact = outcome.artifact.to_json()
    await self._jobs.set_partial(context.job_id, artifact)
    if isinstance(outcome, Fallback):
      logger.info("Job %s using mock artifact: %s", context.job_id, outcome.reason)
      return {"artifact": artifact, "fallbackReason": outcome.reason}
    return {"artifact": artifact, "model": outcome.model}

  async def _images(self, context: WorkflowContext) -> dict[str, Any]:
    artifact = normalize_artifact(self._artifact_from(context, WorkflowStep.TEXT_AND_ANTHEM))
    artifact = await fill_image_slots(artifact, self._assets, self._mock_cache)
    payload = artifact.to_json()
    await self._jobs.set_partial(context.job_id, payload)
    return {"artifact": payload}

  async def _anthem_audio(self, context: WorkflowContext) -> dict[str, Any]:
    artifact = await fill_anthem_audio(self._artifact_from(context, WorkflowStep.IMAGES), self._assets, self._mock_cache)
    payload = artifact.to_json()
    await self._jobs.set_partial(context.job_id, payload)
    return {"artifact": payload}

  async def _save_final(self, context: WorkflowContext) -> dict[str, Any]:
    payload = context.result_of(WorkflowStep.ANTHEM_AUDIO)["artifact"]
    if await self._jobs.get_status(context.job_id) is JobStatus.FAILED:
      logger.warning("Job %s was marked failed before save-final; leaving it failed", context.job_id)
      return {"status": JobStatus.FAILED.value}
    await self._jobs.set_final(context.job_id, payload)
    await self._jobs.set_status(context.job_id, JobStatus.COMPLETED)
    return {"status": JobStatus.COMPLETED.value}

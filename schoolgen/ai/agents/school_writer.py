"""Structured text generation for school artifacts with mock fallback."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from schoolgen.ai.agents.prompts import SYSTEM_PROMPT, build_user_prompt
from schoolgen.ai.errors import ErrorKind, classify_error
from schoolgen.ai.invariants import ensure_three_verses, reconcile_face_prompt
from schoolgen.ai.json_parser import parse_json_object
from schoolgen.ai.mock import build_mock_artifact
from schoolgen.ai.providers.base import TextModel
from schoolgen.ai.router import get_text_model, resolve_text_candidates
from schoolgen.config import Settings
from schoolgen.core.exceptions import sanitize_error_message
from schoolgen.schema.images import ImageType, placeholder_url
from schoolgen.schema.normalize import normalize_artifact_payload
from schoolgen.schema.school import (
  CLUB_ACTIVITY_COUNT,
  FACILITY_COUNT,
  MAX_HISTORICAL_BUILDINGS,
  MIN_CRAZY_RULES,
  MONUMENT_COUNT,
  NEWS_FEED_SIZE,
  SCHOOL_EVENT_COUNT,
  UNIFORM_COUNT,
  GenerationRequest,
  SchoolArtifact,
)
from schoolgen.services.caches import ModelPreferenceCache

logger = logging.getLogger(__name__)

REASON_NO_MODEL = "no text model configured"
REASON_TIMEOUT = "timeout"

ModelFactory = Callable[[str], TextModel]


@dataclass(frozen=True)
class Generated:
  """A model produced a usable artifact."""

  artifact: SchoolArtifact
  model: str


@dataclass(frozen=True)
class Fallback:
  """The deterministic mock was used; ``reason`` is safe to show to users."""

  artifact: SchoolArtifact
  reason: str


GenerationOutcome = Generated | Fallback


def _pad(items: list, template: list, size: int, *, exact: bool = True) -> list:
  if exact:
    items = items[:size]
  for extra in template:
    if len(items) >= size:
      break
    items.append(extra.model_copy(deep=True) if hasattr(extra, "model_copy") else extra)
  return items


def enforce_invariants(artifact: SchoolArtifact, request: GenerationRequest) -> SchoolArtifact:
  """Apply the post-parse guarantees to a model-produced artifact.

  Lyrics are padded to three verses, the portrait prompt is made to agree with
  the principal's name, fixed-size collections are trimmed or filled from the mock
  artifact, and every image slot is reset to its placeholder.
  """
  mock = build_mock_artifact(request)
  result = artifact.model_copy(deep=True)
  profile = result.school_profile
  principal = result.principal_message
  anthem = result.school_anthem
  media = result.multimedia_content

  if not profile.name.strip():
    profile.name = mock.school_profile.name
  if not anthem.title.strip():
    anthem.title = mock.school_anthem.title
  if not anthem.style.strip():
    anthem.style = mock.school_anthem.style
  anthem.lyrics = ensure_three_verses(anthem.lyrics, school_name=profile.name, landmark=request.primary_landmark)
  if not principal.name.strip():
    principal.name = mock.principal_message.name
  principal.face_prompt = reconcile_face_prompt(principal.name, principal.face_prompt or mock.principal_message.face_prompt)

  profile.historical_buildings = _pad(profile.historical_buildings, mock.school_profile.historical_buildings, 1, exact=False)[:MAX_HISTORICAL_BUILDINGS]
  result.news_feed = _pad(result.news_feed, mock.news_feed, NEWS_FEED_SIZE)
  result.crazy_rules = _pad(result.crazy_rules, mock.crazy_rules, MIN_CRAZY_RULES, exact=False)
  media.club_activities = _pad(media.club_activities, mock.multimedia_content.club_activities, CLUB_ACTIVITY_COUNT)
  media.school_events = _pad(media.school_events, mock.multimedia_content.school_events, SCHOOL_EVENT_COUNT)
  media.facilities = _pad(media.facilities, mock.multimedia_content.facilities, FACILITY_COUNT)
  media.monuments = _pad(media.monuments, mock.multimedia_content.monuments, MONUMENT_COUNT)
  media.uniforms = _pad(media.uniforms, mock.multimedia_content.uniforms, UNIFORM_COUNT)

  # Models do not produce assets; any URL they return is invented.
  profile.emblem_url = placeholder_url(ImageType.EMBLEM)
  profile.emblem_prompt = profile.emblem_prompt or mock.school_profile.emblem_prompt
  principal.face_image_url = placeholder_url(ImageType.PRINCIPAL_FACE)
  anthem.audio_url = None
  for building in profile.historical_buildings:
    building.image_url = placeholder_url(ImageType.HISTORICAL_BUILDING)
  for items, image_type in ((media.club_activities, ImageType.CLUB), (media.school_events, ImageType.EVENT), (media.monuments, ImageType.MONUMENT), (media.uniforms, ImageType.UNIFORM)):
    for item in items:
      item.image_url = placeholder_url(image_type)

  result.fallbackUsed = False
  result.errorMessage = None
  return result


class SchoolWriter:
  """Generate a school artifact from the configured text models.

  Candidates are tried in order with the last successful one first. Bad output
  and provider errors move on to the next candidate; when all are exhausted the
  mock artifact is returned as a ``Fallback``. Only pure connection failures and
  unclassified errors propagate to the caller.
  """

  def __init__(self, settings: Settings, preference_cache: ModelPreferenceCache | None = None, *, model_factory: ModelFactory | None = None, candidates: list[str] | None = None) -> None:
    self._settings = settings
    self._preference_cache = preference_cache
    self._model_factory = model_factory or (lambda candidate: get_text_model(candidate, settings))
    self._candidates = candidates if candidates is not None else resolve_text_candidates(settings)
    self._timeout = settings.text_timeout_seconds

  async def _ordered_candidates(self) -> list[str]:
    candidates = list(self._candidates)
    if self._preference_cache is None or not candidates:
      return candidates
    preferred = await self._preference_cache.get()
    if preferred in candidates:
      candidates.remove(preferred)
      candidates.insert(0, preferred)
    return candidates

  async def generate(self, request: GenerationRequest) -> GenerationOutcome:
    candidates = await self._ordered_candidates()
    if not candidates:
      logger.info("No text model configured; using mock artifact")
      return self._fallback(request, REASON_NO_MODEL)
    try:
      return await asyncio.wait_for(self._try_candidates(request, candidates), timeout=self._timeout)
    except TimeoutError:
      logger.warning("Text generation exceeded %.1fs across candidates; using mock artifact", self._timeout)
      return self._fallback(request, REASON_TIMEOUT)

  async def _try_candidates(self, request: GenerationRequest, candidates: list[str]) -> GenerationOutcome:
    user_prompt = build_user_prompt(request)
    failures: list[tuple[str, Exception, ErrorKind]] = []

    for candidate in candidates:
      try:
        model = self._model_factory(candidate)
        response = await asyncio.wait_for(model.generate(user_prompt, system=SYSTEM_PROMPT), timeout=self._timeout)
        payload = parse_json_object(response.content)
        artifact = enforce_invariants(SchoolArtifact.model_validate(normalize_artifact_payload(payload)), request)
      except Exception as exc:  # noqa: BLE001
        kind = classify_error(exc)
        if kind == "unexpected":
          raise
        logger.warning("Text candidate %s failed (%s): %s", candidate, kind, exc)
        failures.append((candidate, exc, kind))
        continue

      if self._preference_cache is not None:
        await self._preference_cache.remember(candidate)
      logger.info("Text generated by %s", candidate)
      return Generated(artifact=artifact, model=candidate)

    if all(kind == "connection" for _, _, kind in failures):
      # Nothing reached a provider; let the workflow retry the step.
      raise failures[-1][1]
    last_candidate, last_error, _ = failures[-1]
    if isinstance(last_error, TimeoutError):
      return self._fallback(request, REASON_TIMEOUT)
    return self._fallback(request, f"{last_candidate}: {sanitize_error_message(last_error)}")

  def _fallback(self, request: GenerationRequest, reason: str) -> Fallback:
    artifact = build_mock_artifact(request).model_copy(update={"fallbackUsed": True, "errorMessage": reason})
    return Fallback(artifact=artifact, reason=reason)

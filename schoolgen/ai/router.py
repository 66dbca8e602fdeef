"""Routing utilities for provider/model selection."""

from __future__ import annotations

import logging
from enum import Enum

from schoolgen.ai.providers.base import ImageModel, TextModel
from schoolgen.ai.providers.claude import ClaudeModel
from schoolgen.ai.providers.gemini import GeminiImageModel, GeminiModel
from schoolgen.ai.providers.openai_compat import OpenAICompatModel, OpenAIImageModel, build_client
from schoolgen.config import MAX_TEXT_MODEL_CANDIDATES, Settings

logger = logging.getLogger(__name__)


class ProviderMode(str, Enum):
  """Supported provider modes."""

  ANTHROPIC = "anthropic"
  GEMINI = "gemini"
  OPENROUTER = "openrouter"
  COMET = "comet"
  OPENAI = "openai"


_DEFAULT_CANDIDATES: dict[ProviderMode, tuple[str, ...]] = {
  ProviderMode.ANTHROPIC: ("anthropic:claude-3-5-sonnet-20241022",),
  ProviderMode.GEMINI: ("gemini:gemini-2.5-flash", "gemini:gemini-2.0-flash"),
  ProviderMode.OPENROUTER: ("openrouter:google/gemini-2.5-flash", "openrouter:openai/gpt-4o-mini"),
  ProviderMode.OPENAI: ("openai:gpt-4o-mini",),
}


def split_candidate(candidate: str) -> tuple[ProviderMode, str]:
  """Split ``provider:model``; the model part may itself contain colons."""
  provider, _, model = candidate.partition(":")
  try:
    mode = ProviderMode(provider.strip().lower())
  except ValueError as exc:
    raise ValueError(f"Unsupported provider mode '{provider}'.") from exc
  if not model.strip():
    raise ValueError(f"Missing model name in candidate '{candidate}'.")
  return mode, model.strip()


def _has_credentials(mode: ProviderMode, settings: Settings) -> bool:
  if mode is ProviderMode.ANTHROPIC:
    return settings.anthropic_api_key is not None
  if mode is ProviderMode.GEMINI:
    return settings.gemini_api_key is not None
  if mode is ProviderMode.OPENAI:
    return settings.openai_api_key is not None
  return settings.openai_compat_api_key is not None


def resolve_text_candidates(settings: Settings) -> list[str]:
  """Return the ordered, credential-filtered candidate list (at most six)."""
  configured = list(settings.text_models)
  if not configured:
    for mode, defaults in _DEFAULT_CANDIDATES.items():
      if _has_credentials(mode, settings):
        configured.extend(defaults)

  usable: list[str] = []
  for candidate in configured:
    try:
      mode, _ = split_candidate(candidate)
    except ValueError:
      logger.warning("Ignoring malformed text model candidate %r", candidate)
      continue
    if _has_credentials(mode, settings):
      usable.append(candidate)
  return list(dict.fromkeys(usable))[:MAX_TEXT_MODEL_CANDIDATES]


def get_text_model(candidate: str, settings: Settings) -> TextModel:
  """Return a text model client for a ``provider:model`` candidate."""
  mode, model = split_candidate(candidate)
  if not _has_credentials(mode, settings):
    raise ValueError(f"No credentials configured for provider '{mode.value}'.")
  if mode is ProviderMode.ANTHROPIC:
    return ClaudeModel(model, api_key=settings.anthropic_api_key or "")
  if mode is ProviderMode.GEMINI:
    return GeminiModel(model, api_key=settings.gemini_api_key or "")
  if mode is ProviderMode.OPENAI:
    return OpenAICompatModel(mode.value, model, build_client(settings.openai_api_key or ""))
  return OpenAICompatModel(mode.value, model, build_client(settings.openai_compat_api_key or "", settings.openai_compat_base_url))


def get_image_model(settings: Settings) -> ImageModel | None:
  """Return the configured image model, or None when image generation is disabled."""
  if settings.image_provider == "gemini" and settings.gemini_api_key:
    return GeminiImageModel(settings.image_model, api_key=settings.gemini_api_key)
  if settings.image_provider == "openai" and settings.openai_api_key:
    return OpenAIImageModel(settings.image_model, build_client(settings.openai_api_key))
  return None

"""Image and audio asset generation that degrades to placeholders instead of raising."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import mimetypes

from schoolgen.ai.errors import ProviderResponseError
from schoolgen.ai.providers.base import ImageModel, ImageResult
from schoolgen.ai.router import get_image_model
from schoolgen.config import Settings
from schoolgen.schema.images import ImageType, image_spec
from schoolgen.schema.school import DEFAULT_ANTHEM_TITLE
from schoolgen.services.storage_client import AssetStorage, build_asset_storage
from schoolgen.services.suno import SunoClient
from schoolgen.utils.ids import generate_object_name

logger = logging.getLogger(__name__)

NO_TEXT_SUFFIX = " Do not include any text, date, watermark, timestamp, or letters/numbers in the image. Pure visual only, no text overlay."


def with_no_text_suffix(prompt: str) -> str:
  prompt = prompt.strip()
  if prompt.endswith(NO_TEXT_SUFFIX.strip()):
    return prompt
  return prompt + NO_TEXT_SUFFIX


def _decode_data_url(url: str) -> ImageResult | None:
  """Turn a ``data:`` URL into inline bytes so it is uploaded like any inline payload."""
  header, _, encoded = url.partition(",")
  if ";base64" not in header:
    return None
  try:
    data = base64.b64decode(encoded, validate=True)
  except (binascii.Error, ValueError):
    return None
  mime_type = header[len("data:") :].split(";", 1)[0] or "image/png"
  return ImageResult(data=data, mime_type=mime_type)


class AssetGenerator:
  """Generate images and anthem audio for artifact slots.

  ``generate_image`` always returns a URL (a placeholder on any failure) and
  ``generate_audio`` returns None on failure. Inline image payloads are uploaded
  to object storage so only URLs reach the job store.
  """

  def __init__(self, settings: Settings, *, image_model: ImageModel | None = None, storage: AssetStorage | None = None, audio_client: SunoClient | None = None) -> None:
    self._settings = settings
    self._image_model = image_model
    self._storage = storage
    self._audio_client = audio_client

  @property
  def can_generate_images(self) -> bool:
    return self._image_model is not None

  @property
  def can_generate_audio(self) -> bool:
    return self._audio_client is not None

  async def generate_image(self, prompt: str, image_type: ImageType | str | None) -> str:
    spec = image_spec(image_type)
    if self._image_model is None or not prompt or not prompt.strip():
      return spec.placeholder_url
    try:
      result = await asyncio.wait_for(self._image_model.generate_image(with_no_text_suffix(prompt), aspect_ratio=spec.aspect_ratio), timeout=self._settings.image_timeout_seconds)
      return await self._materialize(result)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Image generation failed type=%s; using placeholder: %s", image_type, exc)
      return spec.placeholder_url

  async def _materialize(self, result: ImageResult) -> str:
    """Return a hosted URL for the result, uploading inline bytes when needed."""
    if result.url and result.url.startswith("data:"):
      inline = _decode_data_url(result.url)
      if inline is None:
        raise ProviderResponseError("Image provider returned an unreadable data URL")
      result = inline
    if result.url:
      return result.url
    if not result.data:
      raise ProviderResponseError("Image provider returned no image payload")
    if self._storage is None:
      raise ProviderResponseError("Inline image returned but no asset bucket is configured")
    extension = (mimetypes.guess_extension(result.mime_type) or ".png").lstrip(".")
    object_name = generate_object_name(self._settings.asset_object_prefix, extension)
    return await self._storage.upload_bytes(result.data, object_name, result.mime_type)

  async def generate_audio(self, lyrics: str, style: str | None, title: str | None) -> str | None:
    if self._audio_client is None or not lyrics or not lyrics.strip():
      return None
    try:
      return await asyncio.wait_for(self._audio_client.generate(lyrics, title=title or DEFAULT_ANTHEM_TITLE, style=style), timeout=self._settings.audio_timeout_seconds)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Audio generation failed: %s", exc)
      return None


def build_asset_generator(settings: Settings) -> AssetGenerator:
  """Wire the configured image model, bucket and audio client."""
  audio_client = None
  if settings.audio_provider == "suno" and settings.suno_api_key:
    audio_client = SunoClient(settings.suno_api_key, settings.suno_base_url, poll_interval=settings.audio_poll_interval_seconds, poll_timeout=settings.audio_poll_timeout_seconds, hiragana=settings.audio_hiragana)
  return AssetGenerator(settings, image_model=get_image_model(settings), storage=build_asset_storage(settings), audio_client=audio_client)

"""Anthem audio generation through the Suno endpoints of CometAPI."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable
from typing import Any

import httpx

from schoolgen.ai.invariants import split_verses
from schoolgen.services.kana import to_hiragana

logger = logging.getLogger(__name__)

SUNO_TAGS = "chorus, school anthem, Japanese school song, solemn, classical choir, not enka"
SUNO_MODEL_VERSION = "chirp-bluejay"

_COMPLETE_RE = re.compile(r"complete|success|done|finished", re.IGNORECASE)
_FAILED_RE = re.compile(r"fail|error", re.IGNORECASE)

# Some gateway deployments answer with localized keys.
_KEY_ALIASES: dict[str, str] = {"データ": "data", "ステータス": "status", "状態": "status", "結果": "result"}

_TASK_ID_KEYS: tuple[str, ...] = ("task_id", "id", "taskId", "request_id", "job_id")
_AUDIO_KEYS: tuple[str, ...] = ("audio_url", "stream_url", "url")


class SunoError(RuntimeError):
  """Raised when the audio provider reports failure or returns nothing usable."""


def format_suno_lyrics(lyrics: str, *, reading: Callable[[str], str] | None = None) -> str:
  """Tag each verse with ``[Verse N]`` so the model sings them as sections.

  ``reading`` rewrites verse text (for example into hiragana); markers are dropped first
  so numerals like ``一`` never reach it.
  """
  verses = split_verses(lyrics)
  if not verses:
    return reading(lyrics.strip()) if reading else lyrics.strip()
  if reading:
    verses = [reading(verse) for verse in verses]
  return "\n\n".join(f"[Verse {index}]\n{verse}" for index, verse in enumerate(verses, start=1))


def normalize_keys(value: Any) -> Any:
  if isinstance(value, dict):
    return {_KEY_ALIASES.get(key, key): normalize_keys(item) for key, item in value.items()}
  if isinstance(value, list):
    return [normalize_keys(item) for item in value]
  return value


def extract_task_id(payload: Any) -> str | None:
  """Find the task id in the shapes the submit endpoint is known to return."""
  if not isinstance(payload, dict):
    return None
  data = payload.get("data")
  if isinstance(data, str) and data.strip():
    return data.strip()
  for key in _TASK_ID_KEYS:
    value = payload.get(key)
    if isinstance(value, str | int) and str(value).strip():
      return str(value).strip()
  for nested_key in ("data", "result"):
    nested = payload.get(nested_key)
    if isinstance(nested, dict):
      found = extract_task_id(nested)
      if found:
        return found
  return None


def _clips(payload: dict[str, Any]) -> list[dict[str, Any]]:
  candidates: list[Any] = []
  for key in ("data", "clips", "result"):
    value = payload.get(key)
    if isinstance(value, list):
      candidates.extend(value)
    elif isinstance(value, dict):
      candidates.append(value)
      inner = value.get("data") or value.get("clips")
      if isinstance(inner, list):
        candidates.extend(inner)
  return [clip for clip in candidates if isinstance(clip, dict)]


def _status(payload: dict[str, Any]) -> str:
  status = payload.get("status")
  data = payload.get("data")
  if not status and isinstance(data, dict):
    status = data.get("status")
  return str(status or "")


def extract_audio_url(payload: dict[str, Any]) -> str | None:
  for clip in _clips(payload):
    for key in _AUDIO_KEYS:
      value = clip.get(key)
      if isinstance(value, str) and value.startswith("http"):
        return value
  return None


def interpret_poll(payload: Any) -> tuple[str, str | None]:
  """Return ``(state, audio_url)`` where state is complete, failed or pending."""
  if not isinstance(payload, dict):
    return "pending", None
  payload = normalize_keys(payload)
  audio_url = extract_audio_url(payload)
  status = _status(payload)
  if audio_url:
    return "complete", audio_url
  # A "complete" status without a clip URL keeps polling until the deadline.
  if _FAILED_RE.search(status) and not _COMPLETE_RE.search(status):
    return "failed", None
  return "pending", None


class SunoClient:
  """Submit lyrics and poll for the finished clip."""

  def __init__(self, api_key: str, base_url: str, *, poll_interval: float = 8.0, poll_timeout: float = 60.0, hiragana: bool = True, client: httpx.AsyncClient | None = None) -> None:
    self._api_key = api_key
    self._base_url = base_url.rstrip("/")
    self._poll_interval = poll_interval
    self._poll_timeout = poll_timeout
    self._hiragana = hiragana
    self._client = client

  def _headers(self) -> dict[str, str]:
    return {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json", "Accept": "application/json"}

  async def generate(self, lyrics: str, *, title: str, style: str | None = None) -> str:
    """Return the audio URL; raises SunoError or httpx errors on failure."""
    if self._client is not None:
      return await self._generate(self._client, lyrics, title, style)
    async with httpx.AsyncClient(timeout=30.0, trust_env=False) as client:
      return await self._generate(client, lyrics, title, style)

  async def _generate(self, client: httpx.AsyncClient, lyrics: str, title: str, style: str | None) -> str:
    tags = f"{SUNO_TAGS}, {style}" if style else SUNO_TAGS
    body = {"prompt": format_suno_lyrics(lyrics, reading=to_hiragana if self._hiragana else None), "title": title, "tags": tags, "make_instrumental": False, "mv": SUNO_MODEL_VERSION}
    response = await client.post(f"{self._base_url}/suno/submit/music", json=body, headers=self._headers())
    response.raise_for_status()
    payload = normalize_keys(response.json())
    task_id = extract_task_id(payload)
    if not task_id:
      raise SunoError("Suno submit response carried no task id")
    logger.info("Suno task submitted task_id=%s", task_id)
    return await self._poll(client, task_id)

  def _poll_urls(self, task_id: str) -> list[str]:
    return [f"{self._base_url}/suno/fetch/{task_id}", f"{self._base_url}/suno/task/{task_id}", f"{self._base_url}/suno/status/{task_id}"]

  async def _poll(self, client: httpx.AsyncClient, task_id: str) -> str:
    deadline = time.monotonic() + self._poll_timeout
    while time.monotonic() < deadline:
      await asyncio.sleep(self._poll_interval)
      for url in self._poll_urls(task_id):
        try:
          response = await client.get(url, headers=self._headers())
        except httpx.RequestError as exc:
          logger.warning("Suno poll request failed url=%s: %s", url, exc)
          continue
        # Not every gateway exposes every route; 404 and HTML pages mean try the next one.
        if response.status_code == 404 or "text/html" in response.headers.get("content-type", ""):
          continue
        if response.status_code >= 400:
          logger.warning("Suno poll returned %s url=%s", response.status_code, url)
          continue
        try:
          payload = response.json()
        except ValueError:
          continue
        state, audio_url = interpret_poll(payload)
        if state == "complete" and audio_url:
          return audio_url
        if state == "failed":
          raise SunoError(f"Suno task {task_id} failed")
        break
    raise SunoError(f"Suno task {task_id} did not finish within {self._poll_timeout:g}s")

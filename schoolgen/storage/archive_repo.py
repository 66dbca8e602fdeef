"""Archive collection stored under a single well-known key."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from schoolgen.jobs.models import ArchiveEntry
from schoolgen.schema.images import is_placeholder
from schoolgen.schema.school import DEFAULT_SCHOOL_NAME
from schoolgen.storage.jobs_repo import JobStore, stars_key
from schoolgen.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

ARCHIVE_LIST_KEY = "archive:list"


def pick_thumbnail(artifact: dict[str, Any]) -> str | None:
  """Return the first real image: emblem, overview image, then first historical building."""
  profile = artifact.get("school_profile") or {}
  candidates: list[Any] = [profile.get("emblem_url"), profile.get("overview_image_url")]
  buildings = profile.get("historical_buildings") or []
  if buildings and isinstance(buildings[0], dict):
    candidates.append(buildings[0].get("image_url"))
  for url in candidates:
    if isinstance(url, str) and not is_placeholder(url):
      return url
  return None


class ArchiveStore:
  """Archive entries live without TTL; stars are a separate counter per job.

  Star increments are an unsynchronized read-then-write of ``count + 1``. Two
  concurrent stars may both read the same count and one increment is lost. The
  counter is a popularity hint only and must not be used where exact counts matter.
  List updates share the same last-writer-wins behavior.
  """

  def __init__(self, kv: KeyValueStore, jobs: JobStore) -> None:
    self.kv = kv
    self.jobs = jobs

  async def _read_entries(self) -> list[dict[str, Any]]:
    raw = await self.kv.get(ARCHIVE_LIST_KEY)
    if raw is None:
      return []
    try:
      payload = json.loads(raw)
    except json.JSONDecodeError:
      logger.warning("Archive list is not valid JSON; treating as empty")
      return []
    return [item for item in payload if isinstance(item, dict) and item.get("id")] if isinstance(payload, list) else []

  async def _write_entries(self, entries: list[dict[str, Any]]) -> None:
    await self.kv.set(ARCHIVE_LIST_KEY, json.dumps(entries, ensure_ascii=False, separators=(",", ":")), ttl=None)

  async def get_stars(self, job_id: str) -> int:
    raw = await self.kv.get(stars_key(job_id))
    try:
      return max(0, int(raw)) if raw is not None else 0
    except ValueError:
      return 0

  async def list_entries(self) -> list[ArchiveEntry]:
    """Entries sorted by star count, most starred first; ties keep insertion order."""
    entries = await self._read_entries()
    if not entries:
      return []
    counts = await self.kv.mget([stars_key(str(item["id"])) for item in entries])
    result = []
    for item, raw in zip(entries, counts, strict=True):
      stars = int(raw) if raw is not None and raw.lstrip("-").isdigit() else 0
      result.append(ArchiveEntry.from_payload(item, stars=max(0, stars)))
    return sorted(result, key=lambda entry: entry.stars, reverse=True)

  async def get(self, job_id: str) -> ArchiveEntry | None:
    for item in await self._read_entries():
      if item["id"] == job_id:
        return ArchiveEntry.from_payload(item, stars=await self.get_stars(job_id))
    return None

  async def add(self, job_id: str, artifact: dict[str, Any]) -> ArchiveEntry:
    """Archive a finished job; adding an existing id returns the stored entry."""
    existing = await self.get(job_id)
    if existing is not None:
      return existing
    profile = artifact.get("school_profile") or {}
    entry = ArchiveEntry(id=job_id, name=str(profile.get("name") or DEFAULT_SCHOOL_NAME), thumbnail=pick_thumbnail(artifact), createdAt=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"))
    await self.jobs.persist_result(job_id)
    entries = await self._read_entries()
    entries.append({key: value for key, value in entry.to_payload().items() if key != "stars"})
    await self._write_entries(entries)
    return entry

  async def add_star(self, job_id: str) -> int:
    """Read-then-write increment; see the class docstring for the race."""
    count = await self.get_stars(job_id) + 1
    await self.kv.set(stars_key(job_id), str(count), ttl=None)
    return count

  async def remove(self, job_id: str) -> bool:
    """Drop the entry and every job-scoped key; False when the id is not archived."""
    entries = await self._read_entries()
    remaining = [item for item in entries if item["id"] != job_id]
    if len(remaining) == len(entries):
      return False
    await self._write_entries(remaining)
    await self.jobs.delete_job(job_id)
    return True

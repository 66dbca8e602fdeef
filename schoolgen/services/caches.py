"""Cross-job caches kept in the injected key-value store.

Both caches are best-effort: a stale read or lost write only costs performance
(wrong model tried first, a cache miss), so store errors are logged and ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from schoolgen.schema.images import is_placeholder
from schoolgen.storage.kv import KeyValueStore, StoreUnavailableError

logger = logging.getLogger(__name__)

MODEL_PREFERENCE_KEY = "cache:text-model:last-success"
MOCK_ASSET_PREFIX = "cache:mock-asset:"
MOCK_AUDIO_SLOT = "anthem_audio"


class ModelPreferenceCache:
  """Remembers which text model candidate last succeeded."""

  def __init__(self, kv: KeyValueStore, ttl_seconds: int) -> None:
    self._kv = kv
    self._ttl_seconds = ttl_seconds

  async def get(self) -> str | None:
    try:
      return await self._kv.get(MODEL_PREFERENCE_KEY)
    except StoreUnavailableError as exc:
      logger.warning("Model preference lookup failed: %s", exc)
      return None

  async def remember(self, candidate: str) -> None:
    try:
      await self._kv.set(MODEL_PREFERENCE_KEY, candidate, ttl=self._ttl_seconds)
    except StoreUnavailableError as exc:
      logger.warning("Model preference write failed: %s", exc)


class MockAssetCache:
  """Asset URLs generated for mock artifacts, keyed by slot type."""

  def __init__(self, kv: KeyValueStore, ttl_seconds: int) -> None:
    self._kv = kv
    self._ttl_seconds = ttl_seconds

  @staticmethod
  def key(slot_type: str) -> str:
    return f"{MOCK_ASSET_PREFIX}{slot_type}"

  async def get_many(self, slot_types: Iterable[str]) -> dict[str, str] | None:
    """Return cached URLs only when every requested slot type has a real one."""
    wanted = list(dict.fromkeys(slot_types))
    if not wanted:
      return None
    try:
      values = await self._kv.mget([self.key(slot) for slot in wanted])
    except StoreUnavailableError as exc:
      logger.warning("Mock asset cache read failed: %s", exc)
      return None
    if any(value is None or is_placeholder(value) for value in values):
      return None
    return {slot: value for slot, value in zip(wanted, values, strict=True) if value is not None}

  async def put_many(self, urls: dict[str, str]) -> int:
    """Store real URLs; placeholders are never cached. Returns how many were written."""
    written = 0
    for slot, url in urls.items():
      if is_placeholder(url):
        continue
      try:
        await self._kv.set(self.key(slot), url, ttl=self._ttl_seconds)
      except StoreUnavailableError as exc:
        logger.warning("Mock asset cache write failed for %s: %s", slot, exc)
        continue
      written += 1
    return written

  async def get_audio(self) -> str | None:
    cached = await self.get_many([MOCK_AUDIO_SLOT])
    return cached[MOCK_AUDIO_SLOT] if cached else None

  async def put_audio(self, url: str) -> None:
    await self.put_many({MOCK_AUDIO_SLOT: url})

"""Key-value store contract and the in-process implementation."""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable, Sequence
from typing import Protocol

# Mirrors Redis TTL semantics.
TTL_NO_EXPIRY = -1
TTL_MISSING = -2


class StoreUnavailableError(RuntimeError):
  """Raised when the backing store cannot be reached or rejects a command."""


class KeyValueStore(Protocol):
  """String key-value store with per-key expiry."""

  async def get(self, key: str) -> str | None:
    """Return the value or None when missing/expired."""
    ...

  async def mget(self, keys: Sequence[str]) -> list[str | None]:
    """Return values for keys in order."""
    ...

  async def set(self, key: str, value: str, *, ttl: int | None) -> None:
    """Store a value; ``ttl=None`` keeps it until deleted."""
    ...

  async def delete(self, *keys: str) -> int:
    """Delete keys and return how many existed."""
    ...

  async def persist(self, key: str) -> bool:
    """Drop the expiry of a key; False when the key is missing."""
    ...

  async def ttl(self, key: str) -> int:
    """Remaining seconds, ``TTL_NO_EXPIRY`` or ``TTL_MISSING``."""
    ...

  async def close(self) -> None:
    ...


class InMemoryKeyValueStore:
  """Dict-backed store used for development and tests."""

  def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
    self._clock = clock
    self._data: dict[str, tuple[str, float | None]] = {}
    self._lock = asyncio.Lock()

  def _live(self, key: str) -> tuple[str, float | None] | None:
    entry = self._data.get(key)
    if entry is None:
      return None
    _, expires_at = entry
    if expires_at is not None and expires_at <= self._clock():
      # Lazy expiry, like Redis on access.
      self._data.pop(key, None)
      return None
    return entry

  async def get(self, key: str) -> str | None:
    entry = self._live(key)
    return entry[0] if entry else None

  async def mget(self, keys: Sequence[str]) -> list[str | None]:
    return [await self.get(key) for key in keys]

  async def set(self, key: str, value: str, *, ttl: int | None) -> None:
    if ttl is not None and ttl <= 0:
      raise ValueError("ttl must be positive when provided.")
    async with self._lock:
      expires_at = self._clock() + ttl if ttl is not None else None
      self._data[key] = (value, expires_at)

  async def delete(self, *keys: str) -> int:
    async with self._lock:
      removed = 0
      for key in keys:
        if self._live(key) is not None:
          removed += 1
        self._data.pop(key, None)
      return removed

  async def persist(self, key: str) -> bool:
    async with self._lock:
      entry = self._live(key)
      if entry is None:
        return False
      self._data[key] = (entry[0], None)
      return True

  async def ttl(self, key: str) -> int:
    entry = self._live(key)
    if entry is None:
      return TTL_MISSING
    if entry[1] is None:
      return TTL_NO_EXPIRY
    return max(0, math.ceil(entry[1] - self._clock()))

  async def close(self) -> None:
    return None

  def keys(self) -> list[str]:
    """Return live keys; handy for asserting on namespace cleanup."""
    return [key for key in list(self._data) if self._live(key) is not None]

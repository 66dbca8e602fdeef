"""Redis-backed key-value store."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from schoolgen.storage.kv import StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
  """Thin async wrapper translating redis errors into StoreUnavailableError."""

  def __init__(self, client: aioredis.Redis) -> None:
    self._client = client

  @classmethod
  def from_url(cls, url: str) -> RedisKeyValueStore:
    return cls(aioredis.from_url(url, decode_responses=True))

  async def get(self, key: str) -> str | None:
    try:
      return await self._client.get(key)
    except RedisError as exc:
      raise StoreUnavailableError(f"Redis GET failed for {key}: {exc}") from exc

  async def mget(self, keys: Sequence[str]) -> list[str | None]:
    if not keys:
      return []
    try:
      return list(await self._client.mget(list(keys)))
    except RedisError as exc:
      raise StoreUnavailableError(f"Redis MGET failed: {exc}") from exc

  async def set(self, key: str, value: str, *, ttl: int | None) -> None:
    try:
      await self._client.set(key, value, ex=ttl)
    except RedisError as exc:
      raise StoreUnavailableError(f"Redis SET failed for {key}: {exc}") from exc

  async def delete(self, *keys: str) -> int:
    if not keys:
      return 0
    try:
      return int(await self._client.delete(*keys))
    except RedisError as exc:
      raise StoreUnavailableError(f"Redis DEL failed: {exc}") from exc

  async def persist(self, key: str) -> bool:
    try:
      # PERSIST returns False both for missing keys and keys without expiry.
      if await self._client.persist(key):
        return True
      return bool(await self._client.exists(key))
    except RedisError as exc:
      raise StoreUnavailableError(f"Redis PERSIST failed for {key}: {exc}") from exc

  async def ttl(self, key: str) -> int:
    try:
      return int(await self._client.ttl(key))
    except RedisError as exc:
      raise StoreUnavailableError(f"Redis TTL failed for {key}: {exc}") from exc

  async def close(self) -> None:
    await self._client.aclose()

"""Postgres-backed key-value store using SQLAlchemy async sessions."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolgen.schema.kv_entries import KVEntry
from schoolgen.storage.kv import TTL_MISSING, TTL_NO_EXPIRY, StoreUnavailableError


def _now() -> datetime:
  return datetime.now(UTC)


def _live_clause(now: datetime):
  return or_(KVEntry.expires_at.is_(None), KVEntry.expires_at > now)


class PostgresKeyValueStore:
  """Key-value rows in ``kv_entries``; expired rows are filtered on read and purged on write."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
    self._session_factory = session_factory

  async def get(self, key: str) -> str | None:
    values = await self.mget([key])
    return values[0]

  async def mget(self, keys: Sequence[str]) -> list[str | None]:
    if not keys:
      return []
    try:
      async with self._session_factory() as session:
        stmt = select(KVEntry.key, KVEntry.value).where(KVEntry.key.in_(list(keys)), _live_clause(_now()))
        rows = (await session.execute(stmt)).all()
    except SQLAlchemyError as exc:
      raise StoreUnavailableError(f"Postgres read failed: {exc}") from exc
    found = {row.key: row.value for row in rows}
    return [found.get(key) for key in keys]

  async def set(self, key: str, value: str, *, ttl: int | None) -> None:
    expires_at = _now() + timedelta(seconds=ttl) if ttl is not None else None
    stmt = insert(KVEntry).values(key=key, value=value, expires_at=expires_at)
    stmt = stmt.on_conflict_do_update(index_elements=[KVEntry.key], set_={"value": value, "expires_at": expires_at})
    try:
      async with self._session_factory() as session:
        await session.execute(stmt)
        # Opportunistic cleanup keeps the table from growing without a sweeper.
        await session.execute(delete(KVEntry).where(KVEntry.expires_at.is_not(None), KVEntry.expires_at <= _now()))
        await session.commit()
    except SQLAlchemyError as exc:
      raise StoreUnavailableError(f"Postgres write failed for {key}: {exc}") from exc

  async def delete(self, *keys: str) -> int:
    if not keys:
      return 0
    try:
      async with self._session_factory() as session:
        live = await session.execute(select(KVEntry.key).where(KVEntry.key.in_(keys), _live_clause(_now())))
        count = len(live.all())
        await session.execute(delete(KVEntry).where(KVEntry.key.in_(keys)))
        await session.commit()
    except SQLAlchemyError as exc:
      raise StoreUnavailableError(f"Postgres delete failed: {exc}") from exc
    return count

  async def persist(self, key: str) -> bool:
    try:
      async with self._session_factory() as session:
        result = await session.execute(update(KVEntry).where(KVEntry.key == key, _live_clause(_now())).values(expires_at=None))
        await session.commit()
    except SQLAlchemyError as exc:
      raise StoreUnavailableError(f"Postgres persist failed for {key}: {exc}") from exc
    return bool(result.rowcount)

  async def ttl(self, key: str) -> int:
    try:
      async with self._session_factory() as session:
        row = (await session.execute(select(KVEntry.expires_at).where(KVEntry.key == key, _live_clause(_now())))).first()
    except SQLAlchemyError as exc:
      raise StoreUnavailableError(f"Postgres ttl failed for {key}: {exc}") from exc
    if row is None:
      return TTL_MISSING
    if row.expires_at is None:
      return TTL_NO_EXPIRY
    return max(0, math.ceil((row.expires_at - _now()).total_seconds()))

  async def close(self) -> None:
    return None

import logging

from schoolgen.config import Settings
from schoolgen.storage.archive_repo import ArchiveStore
from schoolgen.storage.jobs_repo import JobStore
from schoolgen.storage.kv import InMemoryKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)

# One store per process so API handlers and background workflows see the same state.
_KV_STORE: KeyValueStore | None = None


def _build_kv_store(settings: Settings) -> KeyValueStore:
  if settings.store_backend == "redis":
    from schoolgen.storage.redis_kv import RedisKeyValueStore

    return RedisKeyValueStore.from_url(settings.redis_url)

  if settings.store_backend == "postgres":
    from schoolgen.core.database import get_session_factory
    from schoolgen.storage.postgres_kv import PostgresKeyValueStore

    session_factory = get_session_factory(settings)
    if session_factory is None:
      raise ValueError("SCHOOLGEN_PG_DSN must be set to enable Postgres persistence.")
    return PostgresKeyValueStore(session_factory)

  return InMemoryKeyValueStore()


def _get_kv_store(settings: Settings) -> KeyValueStore:
  """Return the process-wide key-value store for the configured backend."""
  global _KV_STORE
  if _KV_STORE is None:
    _KV_STORE = _build_kv_store(settings)
    logger.info("Key-value store initialized backend=%s", settings.store_backend)
  return _KV_STORE


def _set_kv_store(store: KeyValueStore | None) -> None:
  """Swap the process-wide store; tests use this to install a fresh in-memory store."""
  global _KV_STORE
  _KV_STORE = store


def _get_job_store(settings: Settings) -> JobStore:
  return JobStore(_get_kv_store(settings), ttl_seconds=settings.job_ttl_seconds, marker_ttl_seconds=settings.job_marker_ttl_seconds)


def _get_archive_store(settings: Settings) -> ArchiveStore:
  return ArchiveStore(_get_kv_store(settings), _get_job_store(settings))


async def close_kv_store() -> None:
  global _KV_STORE
  if _KV_STORE is not None:
    await _KV_STORE.close()
  _KV_STORE = None

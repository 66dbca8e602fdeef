import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from schoolgen.core.database import create_tables, dispose_engine
from schoolgen.core.logging import _initialize_logging
from schoolgen.services.storage_client import build_asset_storage
from schoolgen.storage.factory import _get_kv_store, close_kv_store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialize logging, the key-value store and the asset bucket; release them on shutdown."""
  from schoolgen.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("schoolgen.core.lifespan")

  _initialize_logging(settings)
  logger.info("Startup complete - logging verified.")

  if settings.store_backend == "postgres":
    logger.info("Ensuring kv_entries table; SCHOOLGEN_PG_DSN=%s", _redact_dsn(settings.pg_dsn))
    await create_tables(settings)
  _get_kv_store(settings)

  # A missing bucket only degrades inline images to placeholders, so startup continues.
  try:
    storage = build_asset_storage(settings)
    if storage is not None:
      await storage.ensure_bucket()
      logger.info("Asset bucket ensured: %s", storage.bucket_name)
  except Exception as exc:  # noqa: BLE001
    logger.warning("Failed to ensure asset bucket at startup: %s", exc)

  try:
    yield
  finally:
    await close_kv_store()
    await dispose_engine()
    logger.info("Shutdown complete.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"
  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"
  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"

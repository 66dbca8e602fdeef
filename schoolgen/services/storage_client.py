"""Object storage for generated image assets."""

from __future__ import annotations

import os
from urllib.parse import quote, urlparse, urlunparse

from google.auth.credentials import AnonymousCredentials
from google.cloud import storage
from starlette.concurrency import run_in_threadpool

from schoolgen.config import Settings

_GCS_PUBLIC_HOST = "https://storage.googleapis.com"


class AssetStorage:
  """Thin wrapper over GCS (or its emulator) for public asset uploads."""

  def __init__(self, settings: Settings, client: storage.Client | None = None) -> None:
    if not settings.asset_bucket:
      raise RuntimeError("SCHOOLGEN_ASSET_BUCKET must be configured to store generated assets.")
    self._bucket_name = settings.asset_bucket
    self._storage_host = settings.gcs_storage_host
    self._public_base_url = settings.public_asset_base_url
    if client is not None:
      self._client = client
    elif self._storage_host:
      emulator_endpoint = _normalize_emulator_endpoint(self._storage_host)
      # The SDK reads the emulator host from the environment.
      os.environ["STORAGE_EMULATOR_HOST"] = emulator_endpoint
      self._client = storage.Client(project=settings.gcp_project_id or "local-dev", credentials=AnonymousCredentials(), client_options={"api_endpoint": emulator_endpoint})
    else:
      self._client = storage.Client(project=settings.gcp_project_id)

  @property
  def bucket_name(self) -> str:
    return self._bucket_name

  async def ensure_bucket(self) -> None:
    """Create the bucket when missing, only against the emulator."""
    if not self._storage_host:
      return
    bucket = self._client.bucket(self._bucket_name)

    def _create_if_missing() -> None:
      if not bucket.exists(client=self._client):
        self._client.create_bucket(bucket)

    await run_in_threadpool(_create_if_missing)

  async def upload_bytes(self, data: bytes, object_name: str, content_type: str, cache_control: str = "public, max-age=31536000") -> str:
    """Upload bytes and return their public URL."""
    bucket = self._client.bucket(self._bucket_name)
    blob = bucket.blob(object_name)
    blob.cache_control = cache_control
    blob.content_type = content_type
    await run_in_threadpool(blob.upload_from_string, data, content_type)
    return self.public_url(object_name)

  def public_url(self, object_name: str) -> str:
    encoded = quote(object_name, safe="/")
    if self._public_base_url:
      return f"{self._public_base_url.rstrip('/')}/{encoded}"
    host = _normalize_emulator_endpoint(self._storage_host) if self._storage_host else _GCS_PUBLIC_HOST
    return f"{host}/{self._bucket_name}/{encoded}"


def build_asset_storage(settings: Settings) -> AssetStorage | None:
  """Return the asset storage, or None when no bucket is configured."""
  if not settings.asset_bucket:
    return None
  return AssetStorage(settings)


def _normalize_emulator_endpoint(raw_endpoint: str) -> str:
  """Keep only scheme and host so the SDK receives a bare endpoint."""
  parsed = urlparse(raw_endpoint)
  if not parsed.scheme or not parsed.netloc:
    return raw_endpoint.rstrip("/")
  return urlunparse((parsed.scheme, parsed.netloc, "", "", "", "")).rstrip("/")

"""Shared fixtures: isolated settings, a fresh in-memory store and an ASGI client."""

from __future__ import annotations

import os

# Tests run without provider credentials so every job takes the mock path.
for _name in ("ANTHROPIC_API_KEY", "GEMINI_API_KEY", "OPENROUTER_API_KEY", "OPENAI_API_KEY", "COMET_API_KEY", "SCHOOLGEN_OPENAI_COMPAT_API_KEY", "SCHOOLGEN_SUNO_API_KEY", "SCHOOLGEN_TEXT_MODELS", "SCHOOLGEN_ASSET_BUCKET", "SCHOOLGEN_TASK_SERVICE_PROVIDER"):
  os.environ[_name] = ""
os.environ["SCHOOLGEN_ENV"] = "test"
os.environ["SCHOOLGEN_STORE_BACKEND"] = "memory"
os.environ["SCHOOLGEN_ALLOWED_ORIGINS"] = "http://localhost:3000"
os.environ["SCHOOLGEN_WORKFLOW_RETRY_DELAY_SECONDS"] = "0"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from schoolgen.config import Settings, get_settings  # noqa: E402
from schoolgen.storage.factory import _set_kv_store  # noqa: E402
from schoolgen.storage.kv import InMemoryKeyValueStore  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def settings() -> Settings:
  return get_settings()


@pytest.fixture(autouse=True)
def kv_store() -> InMemoryKeyValueStore:
  """Install a fresh process-wide store for every test."""
  store = InMemoryKeyValueStore()
  _set_kv_store(store)
  yield store
  _set_kv_store(None)


@pytest.fixture
async def async_client():
  from schoolgen.main import app

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client

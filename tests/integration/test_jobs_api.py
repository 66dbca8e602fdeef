from __future__ import annotations

import asyncio
import dataclasses

import pytest

from schoolgen.ai.agents import SchoolWriter
from schoolgen.ai.invariants import split_verses
from schoolgen.jobs.models import JobStatus
from schoolgen.jobs.pipeline import SchoolPipeline
from schoolgen.schema.images import ImageType, is_placeholder
from schoolgen.services import jobs as job_service
from schoolgen.services.assets import AssetGenerator
from schoolgen.storage.factory import _get_job_store
from schoolgen.utils.ids import is_job_id

TOKYO = {"lat": 35.6762, "lng": 139.6503, "address": "東京都千代田区", "landmarks": ["東京タワー", "皇居"]}


def _image_urls(data: dict) -> list[str | None]:
  profile = data["school_profile"]
  media = data["multimedia_content"]
  urls = [profile["emblem_url"], data["principal_message"]["face_image_url"]]
  urls.extend(building["image_url"] for building in profile["historical_buildings"])
  for key in ("club_activities", "school_events", "monuments", "uniforms"):
    urls.extend(item["image_url"] for item in media[key])
  return urls


@pytest.mark.anyio
async def test_tokyo_job_completes_with_mock_content(async_client) -> None:
  created = await async_client.post("/jobs", json=TOKYO)

  assert created.status_code == 201
  job_id = created.json()["jobId"]
  assert is_job_id(job_id)

  polled = await async_client.get(f"/jobs/{job_id}")
  body = polled.json()

  assert polled.status_code == 200
  assert body["status"] == "completed"
  data = body["data"]
  assert data["fallbackUsed"] is True
  assert data["errorMessage"]
  assert data["school_profile"]["name"] == "東京タワー学園高等学校"
  assert len(split_verses(data["school_anthem"]["lyrics"])) == 3
  assert len(data["news_feed"]) == 5
  assert all(url and is_placeholder(url) for url in _image_urls(data))
  assert data["school_anthem"].get("audio_url") is None
  assert "error" not in body


@pytest.mark.anyio
async def test_unknown_job_reports_pending(async_client) -> None:
  response = await async_client.get("/jobs/school-0-unknown0")
  assert response.status_code == 200
  assert response.json() == {"status": "pending"}


@pytest.mark.anyio
async def test_expired_job_reports_expired(async_client, kv_store) -> None:
  created = await async_client.post("/jobs", json=TOKYO)
  job_id = created.json()["jobId"]
  await kv_store.delete(f"job:{job_id}:status", f"job:{job_id}")

  response = await async_client.get(f"/jobs/{job_id}")

  assert response.json() == {"status": "expired"}


@pytest.mark.anyio
@pytest.mark.parametrize(
  "payload",
  [
    {"lng": 139.0},
    {"lat": "35.0", "lng": 139.0},
    {"lat": 91.0, "lng": 139.0},
    {"lat": 35.0, "lng": -181.0},
    {"lat": 35.0, "lng": 139.0, "landmarks": "東京タワー"},
  ],
)
async def test_invalid_requests_are_rejected(async_client, kv_store, payload: dict) -> None:
  response = await async_client.post("/jobs", json=payload)

  assert response.status_code == 400
  body = response.json()
  assert body["error"].startswith("Invalid request")
  assert all("input" not in error for error in body["detail"])
  assert kv_store.keys() == []


@pytest.mark.anyio
@pytest.mark.parametrize(
  ("raw", "field"),
  [
    (b'{"lat": NaN, "lng": 139.0}', "lat"),
    (b'{"lat": 35.0, "lng": Infinity}', "lng"),
    (b'{"lat": -Infinity, "lng": 139.0}', "lat"),
    (b"", "body"),
    (b"{}", "lat"),
  ],
)
async def test_non_finite_or_missing_input_creates_no_job(async_client, kv_store, raw: bytes, field: str) -> None:
  response = await async_client.post("/jobs", content=raw, headers={"content-type": "application/json"})

  assert response.status_code == 400
  assert field in response.json()["error"]
  assert kv_store.keys() == []


@pytest.mark.anyio
async def test_non_json_body_is_rejected(async_client, kv_store) -> None:
  response = await async_client.post("/jobs", content=b"lat=35", headers={"content-type": "text/plain"})
  assert response.status_code == 400
  assert kv_store.keys() == []


@pytest.mark.anyio
async def test_address_defaults_to_coordinates(async_client, settings) -> None:
  created = await async_client.post("/jobs", json={"lat": 35.0, "lng": 135.5})
  stored = await _get_job_store(settings).get_request(created.json()["jobId"])
  assert stored.address == "緯度35.0000, 経度135.5000"
  assert stored.primary_landmark == "この地域"


class HangingAssets(AssetGenerator):
  """Image generation that never returns before the step deadline."""

  def __init__(self, settings) -> None:
    super().__init__(settings)
    self.started = asyncio.Event()

  async def generate_image(self, prompt: str, image_type: ImageType | str | None) -> str:
    self.started.set()
    await asyncio.sleep(60)
    return "https://cdn.example.com/never.png"


@pytest.mark.anyio
async def test_partial_snapshot_visible_while_running_and_hidden_after_failure(async_client, settings, monkeypatch: pytest.MonkeyPatch) -> None:
  fast = dataclasses.replace(settings, step_timeout_seconds=0.5, workflow_max_retries=1, workflow_retry_delay_seconds=0)
  assets = HangingAssets(fast)

  def _pipeline(_settings) -> SchoolPipeline:
    return SchoolPipeline(fast, _get_job_store(fast), SchoolWriter(fast, candidates=[]), assets)

  # Create the job without dispatching it, then drive it from the test.
  monkeypatch.setattr(job_service, "trigger_job_processing", lambda *args, **kwargs: None)
  monkeypatch.setattr(job_service, "_get_pipeline", _pipeline)
  created = await async_client.post("/jobs", json=TOKYO)
  job_id = created.json()["jobId"]
  assert (await async_client.get(f"/jobs/{job_id}")).json() == {"status": "pending"}

  run = asyncio.create_task(job_service.process_job_sync(job_id, fast))
  await asyncio.wait_for(assets.started.wait(), timeout=5)

  running = (await async_client.get(f"/jobs/{job_id}")).json()
  partial = (await async_client.get(f"/jobs/{job_id}", params={"partial": "1"})).json()

  assert running == {"status": "running"}
  assert partial["status"] == "partial"
  assert partial["data"]["school_profile"]["name"] == "東京タワー学園高等学校"

  assert await run is False

  failed = (await async_client.get(f"/jobs/{job_id}", params={"partial": "1"})).json()
  assert failed["status"] == "failed"
  assert "data" not in failed
  assert failed["error"] == "Step 'images' timed out after 0.5s"
  assert not failed["error"].startswith("{")
  assert await _get_job_store(fast).get_status(job_id) is JobStatus.FAILED

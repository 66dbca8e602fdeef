from __future__ import annotations

import pytest

from schoolgen.schema.images import ImageType, placeholder_url
from schoolgen.storage.jobs_repo import job_keys

REQUEST = {"lat": 34.6873, "lng": 135.5262, "landmarks": ["大阪城"]}


async def _completed_job(async_client) -> str:
  created = await async_client.post("/jobs", json=REQUEST)
  job_id = created.json()["jobId"]
  assert (await async_client.get(f"/jobs/{job_id}")).json()["status"] == "completed"
  return job_id


@pytest.mark.anyio
async def test_archive_star_and_delete_flow(async_client, kv_store) -> None:
  job_id = await _completed_job(async_client)

  archived = await async_client.post(f"/archive/{job_id}")
  assert archived.status_code == 201
  assert archived.json()["name"] == "大阪城学園高等学校"
  assert archived.json()["thumbnail"] is None

  for expected in (1, 2, 3):
    starred = await async_client.post(f"/archive/{job_id}/star")
    assert starred.json() == {"stars": expected}

  listing = (await async_client.get("/archive")).json()
  assert [(item["id"], item["stars"]) for item in listing["items"]] == [(job_id, 3)]
  assert (await async_client.get(f"/archive/{job_id}/stars")).json() == {"stars": 3}

  deleted = await async_client.delete(f"/archive/{job_id}")
  assert deleted.json() == {"ok": True}

  assert (await async_client.get("/archive")).json() == {"items": []}
  assert not set(job_keys(job_id)) & set(kv_store.keys())
  assert (await async_client.delete(f"/archive/{job_id}")).status_code == 404


@pytest.mark.anyio
async def test_archive_sorts_by_stars(async_client) -> None:
  first = await _completed_job(async_client)
  second = await _completed_job(async_client)
  await async_client.post(f"/archive/{first}")
  await async_client.post(f"/archive/{second}")
  await async_client.post(f"/archive/{second}/star")

  items = (await async_client.get("/archive")).json()["items"]

  assert [item["id"] for item in items] == [second, first]


@pytest.mark.anyio
async def test_archiving_unknown_or_unfinished_jobs_fails(async_client, monkeypatch: pytest.MonkeyPatch) -> None:
  from schoolgen.services import jobs as job_service

  assert (await async_client.post("/archive/school-0-missing0")).status_code == 404

  monkeypatch.setattr(job_service, "trigger_job_processing", lambda *args, **kwargs: None)
  pending = (await async_client.post("/jobs", json=REQUEST)).json()["jobId"]
  assert (await async_client.post(f"/archive/{pending}")).status_code == 409


@pytest.mark.anyio
async def test_starring_unarchived_job_is_not_found(async_client) -> None:
  response = await async_client.post("/archive/school-0-missing0/star")
  assert response.status_code == 404
  assert response.json()["error"] == "Archive entry not found."
  assert (await async_client.get("/archive/school-0-missing0/stars")).json() == {"stars": 0}


@pytest.mark.anyio
async def test_image_endpoint_returns_placeholder_without_provider(async_client) -> None:
  response = await async_client.post("/assets/image", json={"prompt": "A school crest", "imageType": "emblem"})
  assert response.status_code == 200
  assert response.json() == {"url": placeholder_url(ImageType.EMBLEM)}


@pytest.mark.anyio
async def test_image_endpoint_rejects_empty_prompt(async_client) -> None:
  response = await async_client.post("/assets/image", json={"prompt": "   "})
  assert response.status_code == 400


@pytest.mark.anyio
async def test_audio_endpoint_reports_pending_without_provider(async_client) -> None:
  response = await async_client.post("/assets/audio", json={"lyrics": "一\n朝日に", "title": "校歌"})
  assert response.status_code == 200
  assert response.json() == {"url": None, "message": "音声は準備中です"}


@pytest.mark.anyio
async def test_health(async_client) -> None:
  response = await async_client.get("/health")
  assert response.json()["status"] == "ok"
  assert response.headers["x-content-type-options"] == "nosniff"

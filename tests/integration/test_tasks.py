from __future__ import annotations

import dataclasses
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import BackgroundTasks

from schoolgen.config import get_settings
from schoolgen.jobs.models import JobStatus
from schoolgen.schema.school import GenerationRequest
from schoolgen.services import jobs as job_service
from schoolgen.services.tasks.factory import get_task_enqueuer
from schoolgen.services.tasks.inline import InlineEnqueuer
from schoolgen.services.tasks.local import PROCESS_JOB_PATH, TASK_SECRET_HEADER, LocalHttpEnqueuer
from schoolgen.storage.factory import _get_job_store


@pytest.mark.anyio
async def test_local_task_dispatch(settings) -> None:
  """Verify that the local enqueuer posts to the task endpoint with the shared secret."""
  settings = dataclasses.replace(settings, task_service_provider="local-http", base_url="http://localhost:8080", task_secret="test-task-secret")

  with patch("schoolgen.services.tasks.local.httpx.AsyncClient") as mock_client_cls:
    mock_client = AsyncMock()
    mock_client_cls.return_value.__aenter__.return_value = mock_client
    mock_response = Mock()
    mock_response.raise_for_status = Mock()
    mock_client.post.return_value = mock_response

    enqueuer = get_task_enqueuer(settings)
    assert isinstance(enqueuer, LocalHttpEnqueuer)

    await enqueuer.enqueue("school-1-abcdefgh", {})

    mock_client.post.assert_called_once()
    args, kwargs = mock_client.post.call_args
    assert args[0] == f"http://localhost:8080{PROCESS_JOB_PATH}"
    assert kwargs["json"] == {"job_id": "school-1-abcdefgh"}
    assert kwargs["headers"] == {TASK_SECRET_HEADER: "test-task-secret"}


@pytest.mark.anyio
async def test_local_dispatch_requires_base_url(settings) -> None:
  enqueuer = LocalHttpEnqueuer(dataclasses.replace(settings, base_url=None, task_secret="s"))
  with pytest.raises(RuntimeError):
    await enqueuer.enqueue("school-1-abcdefgh", {})


def test_inline_enqueuer_is_the_default(settings) -> None:
  assert isinstance(get_task_enqueuer(settings), InlineEnqueuer)


@pytest.mark.anyio
async def test_task_endpoint_requires_secret(async_client) -> None:
  response = await async_client.post("/internal/tasks/process-job", json={"job_id": "job-abc"})
  assert response.status_code == 403


@pytest.mark.anyio
async def test_task_handler_endpoint(async_client, monkeypatch: pytest.MonkeyPatch) -> None:
  """Verify the handler endpoint accepts the job and schedules processing."""
  monkeypatch.setenv("SCHOOLGEN_TASK_SECRET", "test-task-secret")
  get_settings.cache_clear()
  try:
    with patch("schoolgen.api.routes.tasks.process_job_sync", new_callable=AsyncMock) as mock_process:
      wrong = await async_client.post("/internal/tasks/process-job", json={"job_id": "job-abc"}, headers={TASK_SECRET_HEADER: "nope"})
      response = await async_client.post("/internal/tasks/process-job", json={"job_id": "job-abc"}, headers={"authorization": "Bearer test-task-secret"})

      assert wrong.status_code == 403
      assert response.status_code == 202
      assert response.json() == {"status": "accepted"}
      mock_process.assert_called_once()
      args, _ = mock_process.call_args
      assert args[0] == "job-abc"
  finally:
    get_settings.cache_clear()


@pytest.mark.anyio
async def test_enqueue_failure_marks_job_failed(settings) -> None:
  broken = dataclasses.replace(settings, task_service_provider="local-http", base_url=None)
  request = GenerationRequest(lat=35.0, lng=135.0)
  background_tasks = BackgroundTasks()

  job_id = await job_service.create_job(request, broken, background_tasks)
  await background_tasks()

  jobs = _get_job_store(settings)
  assert await jobs.get_status(job_id) is JobStatus.FAILED
  assert await jobs.get_error(job_id) == job_service.ENQUEUE_FAILED_MESSAGE


@pytest.mark.anyio
async def test_process_job_without_request_is_a_no_op(settings) -> None:
  assert await job_service.process_job_sync("school-0-missing0", settings) is False
  assert await _get_job_store(settings).get_status("school-0-missing0") is None

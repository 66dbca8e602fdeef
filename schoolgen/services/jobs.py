import logging

from fastapi import BackgroundTasks

from schoolgen.ai.agents.school_writer import SchoolWriter
from schoolgen.config import Settings
from schoolgen.core.exceptions import DEFAULT_FAILURE_MESSAGE, sanitize_error_message
from schoolgen.jobs.models import TERMINAL_STATUSES, JobStatus, JobView
from schoolgen.jobs.pipeline import SchoolPipeline
from schoolgen.schema.school import GenerationRequest
from schoolgen.services.assets import build_asset_generator
from schoolgen.services.caches import MockAssetCache, ModelPreferenceCache
from schoolgen.services.tasks.factory import get_task_enqueuer
from schoolgen.storage.factory import _get_job_store, _get_kv_store
from schoolgen.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

ENQUEUE_FAILED_MESSAGE = "ジョブの登録に失敗しました"


def _get_pipeline(settings: Settings) -> SchoolPipeline:
  """Wire the pipeline against the process-wide store and configured providers."""
  kv = _get_kv_store(settings)
  writer = SchoolWriter(settings, ModelPreferenceCache(kv, settings.model_preference_ttl_seconds))
  mock_cache = MockAssetCache(kv, settings.mock_asset_ttl_seconds)
  return SchoolPipeline(settings, _get_job_store(settings), writer, build_asset_generator(settings), mock_cache)


async def create_job(request: GenerationRequest, settings: Settings, background_tasks: BackgroundTasks) -> str:
  """Persist a pending job and schedule its processing; returns the job id."""
  job_id = generate_job_id()
  await _get_job_store(settings).create(job_id, request)
  logger.info("Created job %s lat=%.4f lng=%.4f", job_id, request.lat, request.lng)
  trigger_job_processing(background_tasks, job_id, settings)
  return job_id


async def get_job_view(job_id: str, settings: Settings, *, partial: bool = False) -> JobView:
  """Resolve what a poller should see.

  The partial snapshot is only returned on explicit request and only while the
  job is still in flight; failed jobs expose their error and nothing else.
  """
  jobs = _get_job_store(settings)
  status = await jobs.get_status(job_id)

  if status is None:
    if await jobs.was_created(job_id):
      return JobView(job_id=job_id, status=JobStatus.EXPIRED)
    return JobView(job_id=job_id, status=JobStatus.PENDING)

  if status is JobStatus.COMPLETED:
    final = await jobs.get_final(job_id)
    if final is not None:
      return JobView(job_id=job_id, status=JobStatus.COMPLETED, data=final)
    logger.warning("Job %s is completed but has no final payload", job_id)
    return JobView(job_id=job_id, status=JobStatus.EXPIRED)

  if status is JobStatus.FAILED:
    return JobView(job_id=job_id, status=JobStatus.FAILED, error=await jobs.get_error(job_id) or DEFAULT_FAILURE_MESSAGE)

  if partial:
    snapshot = await jobs.get_partial(job_id)
    if snapshot is not None:
      return JobView(job_id=job_id, status=JobStatus.PARTIAL, data=snapshot)
  return JobView(job_id=job_id, status=status)


async def _mark_failed(job_id: str, settings: Settings, message: str) -> None:
  jobs = _get_job_store(settings)
  if await jobs.get_status(job_id) in TERMINAL_STATUSES:
    return
  await jobs.set_error(job_id, message)
  await jobs.set_status(job_id, JobStatus.FAILED)


async def process_job_sync(job_id: str, settings: Settings) -> bool:
  """Run the workflow for a stored job; returns True when it completed."""
  jobs = _get_job_store(settings)
  try:
    request = await jobs.get_request(job_id)
    if request is None:
      logger.warning("No stored request for job %s; nothing to process", job_id)
      return False
    return await _get_pipeline(settings).run(job_id, request)
  except Exception as exc:
    logger.error("Job processing failed for job %s: %s", job_id, exc, exc_info=True)
    try:
      await _mark_failed(job_id, settings, sanitize_error_message(exc))
    except Exception as update_exc:  # noqa: BLE001
      logger.error("Failed to update job status after processing error: %s", update_exc)
    return False


def trigger_job_processing(background_tasks: BackgroundTasks, job_id: str, settings: Settings) -> None:
  """Schedule dispatch through the configured task enqueuer without blocking the response."""
  enqueuer = get_task_enqueuer(settings)

  async def _dispatch() -> None:
    try:
      await enqueuer.enqueue(job_id, {})
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed to enqueue job %s: %s", job_id, exc, exc_info=True)
      # A job that was never dispatched would otherwise stay pending until it expires.
      await _mark_failed(job_id, settings, ENQUEUE_FAILED_MESSAGE)

  background_tasks.add_task(_dispatch)

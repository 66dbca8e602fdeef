import logging

from fastapi import HTTPException, status

from schoolgen.config import Settings
from schoolgen.jobs.models import ArchiveEntry, JobStatus
from schoolgen.storage.factory import _get_archive_store, _get_job_store

logger = logging.getLogger(__name__)

_NOT_ARCHIVED_MSG = "Archive entry not found."


async def list_archive(settings: Settings) -> list[ArchiveEntry]:
  return await _get_archive_store(settings).list_entries()


async def archive_job(job_id: str, settings: Settings) -> ArchiveEntry:
  """Archive a completed job so its result outlives the job TTL."""
  jobs = _get_job_store(settings)
  job_status = await jobs.get_status(job_id)
  if job_status is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found.")
  final = await jobs.get_final(job_id) if job_status is JobStatus.COMPLETED else None
  if final is None:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Only completed jobs can be archived.")
  entry = await _get_archive_store(settings).add(job_id, final)
  logger.info("Archived job %s as %s", job_id, entry.name)
  return entry


async def star_archived(job_id: str, settings: Settings) -> int:
  archive = _get_archive_store(settings)
  if await archive.get(job_id) is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_ARCHIVED_MSG)
  return await archive.add_star(job_id)


async def get_stars(job_id: str, settings: Settings) -> int:
  return await _get_archive_store(settings).get_stars(job_id)


async def delete_archived(job_id: str, settings: Settings) -> None:
  """Remove the entry and every key of the job; 404 when it was never archived."""
  removed = await _get_archive_store(settings).remove(job_id)
  if not removed:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_ARCHIVED_MSG)
  logger.info("Deleted archived job %s", job_id)

import logging

from fastapi import APIRouter, Depends, status

from schoolgen.api.models import ArchiveItemResponse, ArchiveListResponse, DeleteResponse, StarsResponse
from schoolgen.config import Settings, get_settings
from schoolgen.services import archive as archive_service

router = APIRouter()
logger = logging.getLogger("schoolgen.api.routes.archive")


@router.get("", response_model=ArchiveListResponse)
async def list_archive(settings: Settings = Depends(get_settings)) -> ArchiveListResponse:  # noqa: B008
  """List archived schools, most starred first."""
  entries = await archive_service.list_archive(settings)
  return ArchiveListResponse(items=[ArchiveItemResponse.from_entry(entry) for entry in entries])


@router.post("/{job_id}", response_model=ArchiveItemResponse, status_code=status.HTTP_201_CREATED)
async def archive_job(job_id: str, settings: Settings = Depends(get_settings)) -> ArchiveItemResponse:  # noqa: B008
  entry = await archive_service.archive_job(job_id, settings)
  return ArchiveItemResponse.from_entry(entry)


@router.post("/{job_id}/star", response_model=StarsResponse)
async def star_archived(job_id: str, settings: Settings = Depends(get_settings)) -> StarsResponse:  # noqa: B008
  """Add one star. Concurrent stars may undercount; see ArchiveStore."""
  return StarsResponse(stars=await archive_service.star_archived(job_id, settings))


@router.get("/{job_id}/stars", response_model=StarsResponse)
async def get_stars(job_id: str, settings: Settings = Depends(get_settings)) -> StarsResponse:  # noqa: B008
  return StarsResponse(stars=await archive_service.get_stars(job_id, settings))


@router.delete("/{job_id}", response_model=DeleteResponse)
async def delete_archived(job_id: str, settings: Settings = Depends(get_settings)) -> DeleteResponse:  # noqa: B008
  await archive_service.delete_archived(job_id, settings)
  return DeleteResponse(ok=True)

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from schoolgen.api.models import JobCreateResponse, JobStatusResponse
from schoolgen.config import Settings, get_settings
from schoolgen.schema.school import GenerationRequest
from schoolgen.services import jobs as job_service

router = APIRouter()
logger = logging.getLogger("schoolgen.api.routes.jobs")


@router.post("", response_model=JobCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_job(  # noqa: B008
  request: GenerationRequest,
  background_tasks: BackgroundTasks,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> JobCreateResponse:
  """Create a school generation job and return its id without waiting for it."""
  job_id = await job_service.create_job(request, settings, background_tasks)
  return JobCreateResponse(jobId=job_id)


@router.get("/{job_id}", response_model=JobStatusResponse, response_model_exclude_none=True)
async def get_job_status(  # noqa: B008
  job_id: str,
  partial: bool = Query(default=False, description="Return the latest checkpoint while the job is still running."),
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the status and, when available, the result of a job."""
  view = await job_service.get_job_view(job_id, settings, partial=partial)
  return JobStatusResponse.from_view(view)

import logging

from fastapi import APIRouter, Depends, status

from app.api.deps import get_orchestrator
from app.api.models import GenerateLessonRequest, JobCreateResponse, JobStatusResponse
from app.generation.orchestrator import PipelineOrchestrator
from app.jobs.models import JobNotFoundError

router = APIRouter()
logger = logging.getLogger("app.api.routes.generation")


@router.post("/episodes", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_episode_lesson(
  request: GenerateLessonRequest,
  orchestrator: PipelineOrchestrator = Depends(get_orchestrator),  # noqa: B008
) -> JobCreateResponse:
  """Start lesson generation for an episode and return the job id to poll."""
  job_id = await orchestrator.start_generation(request.to_generation_request())
  logger.info("Accepted lesson request for show %s S%sE%s as job %s", request.show_id, request.season_number, request.episode_number, job_id)
  return JobCreateResponse(job_id=job_id)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_generation_status(
  job_id: str,
  orchestrator: PipelineOrchestrator = Depends(get_orchestrator),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the progress of a generation job."""
  job = await orchestrator.get_status(job_id)
  # Unknown ids surface as 404 through the JobNotFoundError handler.
  if job is None:
    logger.info("Status requested for unknown job %s", job_id)
    raise JobNotFoundError(job_id)
  return JobStatusResponse.from_job(job)

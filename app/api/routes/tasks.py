from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status
from pydantic import BaseModel

from app.api.deps import get_orchestrator
from app.config import Settings, get_settings
from app.generation.orchestrator import PipelineOrchestrator

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


class TaskPayload(BaseModel):
  job_id: str


def verify_task_secret(
  settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_reelingo_task_secret: str | None = Header(default=None)
) -> None:
  """Reject internal task calls that do not carry the shared secret."""
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  expected_auth = f"Bearer {settings.task_secret}"
  # Cloud Tasks OIDC uses Authorization for Cloud Run invoker auth, so accept a dedicated secret header too.
  shared_secret_valid = secrets.compare_digest((x_reelingo_task_secret or ""), settings.task_secret)
  bearer_valid = secrets.compare_digest((authorization or ""), expected_auth)
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to internal task endpoint")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")


@router.post("/process-job", status_code=status.HTTP_200_OK, dependencies=[Depends(verify_task_secret)])
async def process_job_task(payload: TaskPayload, background_tasks: BackgroundTasks, orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)]) -> dict[str, str]:
  """
  Handler for Cloud Tasks (and local simulation).
  Accepts the task quickly and runs the pipeline in the background so the dispatcher gets a fast 2xx.
  """
  logger.info("Received task for job %s", payload.job_id)
  background_tasks.add_task(orchestrator.process_job, payload.job_id)
  return {"status": "accepted"}


@router.post("/purge-script-cache", status_code=status.HTTP_200_OK, dependencies=[Depends(verify_task_secret)])
async def purge_script_cache_task(orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)]) -> dict[str, int]:
  """Delete expired cached scripts; intended for a scheduled Cloud Tasks or cron trigger."""
  deleted = await orchestrator.script_store.purge_expired()
  return {"deleted": deleted}

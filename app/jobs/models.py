"""Domain models and state transitions for episode lesson generation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Literal

JobStatus = Literal["PENDING", "PROCESSING", "COMPLETED", "FAILED"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"COMPLETED", "FAILED"})
COMPLETED_STEP = "Completed"


class InvalidJobTransitionError(ValueError):
  """Raised when a transition is not allowed from the job's current status."""


class JobNotFoundError(LookupError):
  """Raised when a job id does not resolve to a stored job."""

  def __init__(self, job_id: str) -> None:
    super().__init__(f"Job not found: {job_id}")
    self.job_id = job_id


@dataclass(frozen=True)
class GenerationJob:
  """Persisted record for a lesson generation job."""

  job_id: str
  status: JobStatus
  created_at: str
  updated_at: str
  progress: int = 0
  current_step: str | None = None
  error_message: str | None = None
  result_id: str | None = None
  completed_at: str | None = None
  request: dict[str, Any] = field(default_factory=dict)


def now_iso() -> str:
  return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def create_job(job_id: str, request: dict[str, Any]) -> GenerationJob:
  """Build a fresh PENDING job."""
  timestamp = now_iso()
  return GenerationJob(job_id=job_id, status="PENDING", created_at=timestamp, updated_at=timestamp, progress=0, request=dict(request))


def is_terminal(job: GenerationJob) -> bool:
  return job.status in TERMINAL_STATUSES


def is_successful(job: GenerationJob) -> bool:
  return job.status == "COMPLETED"


def mark_processing(job: GenerationJob, step: str) -> GenerationJob:
  """Move a PENDING job into PROCESSING at the given step."""
  if is_terminal(job):
    return job
  if job.status != "PENDING":
    raise InvalidJobTransitionError(f"Cannot start job {job.job_id} from status {job.status}")
  return replace(job, status="PROCESSING", progress=0, current_step=step, updated_at=now_iso())


def update_progress(job: GenerationJob, progress: int, step: str) -> GenerationJob:
  """Record progress for a PROCESSING job.

  The range check runs before any status check so out-of-range values are always rejected.
  Progress is not required to be monotonic.
  """
  # Range first, so out-of-range values fail even on terminal jobs.
  if progress < 0 or progress > 100:
    raise ValueError("Progress must be between 0 and 100")
  if is_terminal(job):
    return job
  if job.status != "PROCESSING":
    raise InvalidJobTransitionError(f"Cannot update progress of job {job.job_id} in status {job.status}")
  return replace(job, progress=progress, current_step=step, updated_at=now_iso())


def mark_completed(job: GenerationJob, result_id: str) -> GenerationJob:
  """Finish a job successfully with the id of the persisted lesson."""
  if not result_id or not result_id.strip():
    raise ValueError("Result id is required to complete a job")
  if is_terminal(job):
    return job
  timestamp = now_iso()
  return replace(job, status="COMPLETED", progress=100, current_step=COMPLETED_STEP, result_id=result_id, updated_at=timestamp, completed_at=timestamp)


def mark_failed(job: GenerationJob, message: str) -> GenerationJob:
  """Finish a job with an error, keeping its last progress and step."""
  if is_terminal(job):
    return job
  timestamp = now_iso()
  return replace(job, status="FAILED", error_message=message, updated_at=timestamp, completed_at=timestamp)

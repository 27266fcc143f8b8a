"""Job progress steps and the tracker that commits them."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.jobs.models import GenerationJob, JobNotFoundError, is_terminal, mark_completed, mark_failed, mark_processing, update_progress
from app.storage.jobs_repo import JobsRepository, JobTransition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressStep:
  """A pipeline checkpoint reported to polling clients."""

  progress: int
  description: str


RESOLVING_EPISODE = ProgressStep(5, "Resolving episode")
FETCHING_SCRIPT = ProgressStep(10, "Fetching script")
PARSING_SCRIPT = ProgressStep(20, "Parsing script")
EXTRACTING_VOCABULARY = ProgressStep(35, "Extracting vocabulary...")
EXTRACTING_GRAMMAR = ProgressStep(45, "Extracting grammar...")
EXTRACTING_EXPRESSIONS = ProgressStep(55, "Extracting expressions...")
GENERATING_EXERCISES = ProgressStep(70, "Generating exercises...")
GENERATING_AUDIO = ProgressStep(85, "Generating audio...")
ASSEMBLING_LESSON = ProgressStep(90, "Assembling lesson...")
SAVING = ProgressStep(95, "Saving...")
COMPLETED = ProgressStep(100, "Completed")

PIPELINE_STEPS: tuple[ProgressStep, ...] = (
  RESOLVING_EPISODE,
  FETCHING_SCRIPT,
  PARSING_SCRIPT,
  EXTRACTING_VOCABULARY,
  EXTRACTING_GRAMMAR,
  EXTRACTING_EXPRESSIONS,
  GENERATING_EXERCISES,
  GENERATING_AUDIO,
  ASSEMBLING_LESSON,
  SAVING,
  COMPLETED,
)


def _advance_to(step: ProgressStep) -> JobTransition:
  def _transition(job: GenerationJob) -> GenerationJob:
    # The first step also starts the job.
    if job.status == "PENDING":
      job = mark_processing(job, step.description)
    return update_progress(job, step.progress, step.description)

  return _transition


class JobProgressTracker:
  """Commit job progress as independent writes.

  Every call is a separate repository write, so a polling reader sees the last
  committed step even when a later stage fails or the worker dies.
  """

  def __init__(self, *, job_id: str, jobs_repo: JobsRepository) -> None:
    self._job_id = job_id
    self._jobs_repo = jobs_repo

  @property
  def job_id(self) -> str:
    return self._job_id

  async def start(self, step: ProgressStep) -> GenerationJob | None:
    """Claim a PENDING job for this worker and move it to its first step.

    The status check and the write happen in one repository call, so when two
    deliveries race only one of them gets the job back. Returns None when the
    job was already claimed or finished.
    """

    claimed = False

    def _claim(current: GenerationJob) -> GenerationJob:
      nonlocal claimed
      # Anything past PENDING belongs to another delivery.
      if current.status != "PENDING":
        return current
      claimed = True
      return update_progress(mark_processing(current, step.description), step.progress, step.description)

    job = await self._jobs_repo.update_job(self._job_id, _claim)
    if job is None:
      raise JobNotFoundError(self._job_id)
    if not claimed:
      logger.info("Job %s already %s; not claimed", self._job_id, job.status)
      return None
    logger.info("Job %s claimed at %d%% - %s", self._job_id, job.progress, job.current_step)
    return job

  async def advance(self, step: ProgressStep) -> GenerationJob:
    """Move the job to a pipeline step, starting it when still pending."""

    job = await self._apply(_advance_to(step))
    logger.info("Job %s progress %d%% - %s", self._job_id, job.progress, job.current_step)
    return job

  async def complete(self, result_id: str) -> GenerationJob:
    """Mark the job completed with the id of the saved lesson."""

    job = await self._apply(lambda current: mark_completed(current, result_id))
    logger.info("Job %s completed with result %s", self._job_id, job.result_id)
    return job

  async def fail(self, message: str) -> GenerationJob:
    """Mark the job failed, keeping its last reported progress."""

    job = await self._apply(lambda current: mark_failed(current, message))
    logger.error("Job %s failed: %s", self._job_id, message)
    return job

  async def _apply(self, transition: JobTransition) -> GenerationJob:
    def _guarded(current: GenerationJob) -> GenerationJob:
      # Late writes from a worker that lost the job are dropped.
      if is_terminal(current):
        logger.debug("Ignoring update for terminal job %s (%s)", current.job_id, current.status)
        return current
      return transition(current)

    job = await self._jobs_repo.update_job(self._job_id, _guarded)
    if job is None:
      raise JobNotFoundError(self._job_id)
    return job

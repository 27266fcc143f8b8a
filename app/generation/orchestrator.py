"""Drive one episode lesson job through the generation stages."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from app.generation.audio import AudioSynthesisPipeline
from app.generation.contracts import GenerationRequest
from app.generation.lesson import LessonAssembler
from app.generation.ports import ContentExtraction, ExerciseGeneration, LessonPersistence, ShowMetadata
from app.generation.scripts import ScriptStore
from app.jobs import progress
from app.jobs.models import GenerationJob, create_job, mark_failed
from app.jobs.progress import JobProgressTracker
from app.services.tasks.interface import TaskEnqueuer
from app.storage.jobs_repo import JobsRepository
from app.utils.ids import generate_job_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageOutcome:
  """Result of a pipeline run: a saved lesson id, or a not-found message."""

  result_id: str | None = None
  not_found: str | None = None

  @classmethod
  def saved(cls, result_id: str) -> StageOutcome:
    return cls(result_id=result_id)

  @classmethod
  def missing(cls, message: str) -> StageOutcome:
    return cls(not_found=message)


def _failure_message(exc: BaseException) -> str:
  return str(exc) or type(exc).__name__


class PipelineOrchestrator:
  """Create generation jobs and run their stages on a detached worker."""

  def __init__(
    self,
    *,
    jobs_repo: JobsRepository,
    show_metadata: ShowMetadata,
    script_store: ScriptStore,
    extraction: ContentExtraction,
    exercises: ExerciseGeneration,
    audio: AudioSynthesisPipeline,
    persistence: LessonPersistence,
    assembler: LessonAssembler | None = None,
    enqueuer: TaskEnqueuer | None = None,
  ) -> None:
    self._jobs_repo = jobs_repo
    self._show_metadata = show_metadata
    self._script_store = script_store
    self._extraction = extraction
    self._exercises = exercises
    self._audio = audio
    self._persistence = persistence
    self._assembler = assembler or LessonAssembler()
    if enqueuer is None:
      from app.services.tasks.inprocess import InProcessEnqueuer

      enqueuer = InProcessEnqueuer(self.process_job)
    self._enqueuer = enqueuer

  @property
  def enqueuer(self) -> TaskEnqueuer:
    return self._enqueuer

  @property
  def script_store(self) -> ScriptStore:
    return self._script_store

  async def start_generation(self, request: GenerationRequest) -> str:
    """Create a PENDING job, hand it to the worker and return its id without waiting."""
    job = create_job(generate_job_id(), request.to_payload())
    await self._jobs_repo.create_job(job)
    logger.info("Created generation job %s for %s", job.job_id, request.describe())

    try:
      await self._enqueuer.enqueue(job.job_id, {"job_id": job.job_id})
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed to dispatch job %s: %s", job.job_id, exc, exc_info=True)
      await self._jobs_repo.update_job(job.job_id, lambda current: mark_failed(current, f"Failed to dispatch job: {_failure_message(exc)}"))
    return job.job_id

  async def get_status(self, job_id: str) -> GenerationJob | None:
    return await self._jobs_repo.get_job(job_id)

  async def process_job(self, job_id: str) -> None:
    """Run the full pipeline for a stored job; all failures end up on the job record."""
    job = await self._jobs_repo.get_job(job_id)
    if job is None:
      logger.warning("Job %s not found; skipping", job_id)
      return
    # Cheap early exit for redeliveries; the claim below is the real guard.
    if job.status != "PENDING":
      logger.info("Job %s already %s; skipping", job_id, job.status)
      return

    tracker = JobProgressTracker(job_id=job_id, jobs_repo=self._jobs_repo)
    try:
      request = GenerationRequest.model_validate(job.request)
    except ValidationError as exc:
      logger.warning("Job %s has an invalid stored request: %s", job_id, exc)
      await self._fail_safely(tracker, f"Invalid generation request: {exc.error_count()} validation error(s)")
      return

    try:
      if await tracker.start(progress.RESOLVING_EPISODE) is None:
        return
      outcome = await self._run_pipeline(request, tracker)
      # Missing upstream data is an expected outcome, not a crash.
      if outcome.not_found is not None:
        await tracker.fail(outcome.not_found)
        return
      await tracker.complete(outcome.result_id or "")
    except Exception as exc:  # noqa: BLE001
      logger.error("Generation job %s failed: %s", job_id, exc, exc_info=True)
      await self._fail_safely(tracker, _failure_message(exc))

  async def _run_pipeline(self, request: GenerationRequest, tracker: JobProgressTracker) -> StageOutcome:
    # The claim has already moved the job to RESOLVING_EPISODE.
    external_id = await self._show_metadata.resolve_external_id(request.show_id, request.season_number, request.episode_number)
    if external_id is None:
      return StageOutcome.missing(f"Could not resolve external id for {request.describe()}")

    await tracker.advance(progress.FETCHING_SCRIPT)
    script = await self._script_store.fetch(external_id, request.season_number, request.episode_number, request.language)
    if script is None:
      return StageOutcome.missing(f"Script not found for {external_id} S{request.season_number}E{request.episode_number}")

    await tracker.advance(progress.PARSING_SCRIPT)
    logger.info("Script for %s has %d characters", external_id, len(script))

    await tracker.advance(progress.EXTRACTING_VOCABULARY)
    vocabulary = await self._extraction.extract_vocabulary(script, request.genre)

    await tracker.advance(progress.EXTRACTING_GRAMMAR)
    grammar = await self._extraction.extract_grammar(script)

    await tracker.advance(progress.EXTRACTING_EXPRESSIONS)
    expressions = await self._extraction.extract_expressions(script)

    await tracker.advance(progress.GENERATING_EXERCISES)
    exercises = await self._exercises.generate(vocabulary, grammar, expressions)

    await tracker.advance(progress.GENERATING_AUDIO)
    vocabulary, expressions = await self._audio.synthesize_lesson_items(vocabulary, expressions)

    await tracker.advance(progress.ASSEMBLING_LESSON)
    lesson = self._assembler.assemble(vocabulary, grammar, expressions, exercises)
    if not self._assembler.is_high_quality(lesson):
      logger.warning("Lesson for %s is below the high-quality thresholds", request.describe())
    logger.info("Lesson for %s assembled with %d total points", request.describe(), self._assembler.total_points(lesson))

    await tracker.advance(progress.SAVING)
    result_id = await self._persistence.save(
      lesson,
      show_id=request.show_id,
      external_id=external_id,
      season_number=request.season_number,
      episode_number=request.episode_number,
      genre=request.genre,
      user_id=request.user_id,
    )
    return StageOutcome.saved(result_id)

  async def _fail_safely(self, tracker: JobProgressTracker, message: str) -> None:
    try:
      await tracker.fail(message)
    except Exception as exc:  # noqa: BLE001
      logger.error("Could not record failure for job %s: %s", tracker.job_id, exc, exc_info=True)

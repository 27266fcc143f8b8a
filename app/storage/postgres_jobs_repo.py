"""Postgres-backed repository for generation jobs using SQLAlchemy."""

from __future__ import annotations

from sqlalchemy import select

from app.core.database import get_session_factory
from app.jobs.models import GenerationJob
from app.schema.jobs import GenerationJobRow
from app.storage.jobs_repo import JobsRepository, JobTransition


class PostgresJobsRepository(JobsRepository):
  """Persist generation jobs to Postgres, one session and commit per call."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: GenerationJob) -> None:
    async with self._session_factory() as session:
      row = GenerationJobRow(
        job_id=record.job_id,
        status=record.status,
        progress=record.progress,
        current_step=record.current_step,
        error_message=record.error_message,
        result_id=record.result_id,
        request_json=record.request,
        created_at=record.created_at,
        updated_at=record.updated_at,
        completed_at=record.completed_at,
      )
      session.add(row)
      await session.commit()

  async def get_job(self, job_id: str) -> GenerationJob | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationJobRow, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def update_job(self, job_id: str, transition: JobTransition) -> GenerationJob | None:
    async with self._session_factory() as session:
      # Lock the row so concurrent writers apply their transitions one after another.
      stmt = select(GenerationJobRow).where(GenerationJobRow.job_id == job_id).with_for_update()
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      current = self._model_to_record(row)
      updated = transition(current)
      if updated == current:
        await session.rollback()
        return current
      row.status = updated.status
      row.progress = updated.progress
      row.current_step = updated.current_step
      row.error_message = updated.error_message
      row.result_id = updated.result_id
      row.updated_at = updated.updated_at
      row.completed_at = updated.completed_at
      await session.commit()
      return updated

  def _model_to_record(self, row: GenerationJobRow) -> GenerationJob:
    return GenerationJob(
      job_id=row.job_id,
      status=row.status,  # type: ignore[arg-type]
      progress=row.progress,
      current_step=row.current_step,
      error_message=row.error_message,
      result_id=row.result_id,
      request=dict(row.request_json or {}),
      created_at=row.created_at,
      updated_at=row.updated_at,
      completed_at=row.completed_at,
    )

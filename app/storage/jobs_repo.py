"""Storage interfaces for generation jobs."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from app.jobs.models import GenerationJob

JobTransition = Callable[[GenerationJob], GenerationJob]


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, record: GenerationJob) -> None:
    """Persist an initial job record."""

  async def get_job(self, job_id: str) -> GenerationJob | None:
    """Fetch a job by identifier."""

  async def update_job(self, job_id: str, transition: JobTransition) -> GenerationJob | None:
    """Apply a state transition to the stored job and commit it atomically.

    Returns the stored record after the transition, or None when the job does not exist.
    """

"""Request and response models for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from app.generation.contracts import GenerationRequest
from app.jobs.models import GenerationJob, JobStatus


class GenerateLessonRequest(BaseModel):
  """Request payload for generating a lesson from a TV episode."""

  show_id: StrictInt = Field(ge=1, description="Catalog id of the show.")
  season_number: StrictInt = Field(ge=1)
  episode_number: StrictInt = Field(ge=1)
  genre: StrictStr | None = Field(default=None, max_length=64)
  language: StrictStr | None = Field(default=None, min_length=2, max_length=10)
  user_id: StrictStr | None = None
  model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

  @field_validator("genre", "language")
  @classmethod
  def _blank_to_none(cls, value: str | None) -> str | None:
    if value is None:
      return None
    value = value.strip()
    return value or None

  def to_generation_request(self) -> GenerationRequest:
    return GenerationRequest(
      show_id=self.show_id,
      season_number=self.season_number,
      episode_number=self.episode_number,
      genre=self.genre,
      language=self.language,
      user_id=self.user_id,
    )


class JobCreateResponse(BaseModel):
  """Response payload for job creation."""

  job_id: StrictStr
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobStatusResponse(BaseModel):
  """Status payload polled by clients while a job runs."""

  job_id: StrictStr
  status: JobStatus
  progress: StrictInt = Field(ge=0, le=100)
  current_step: StrictStr | None = None
  error_message: StrictStr | None = None
  result_id: StrictStr | None = None
  created_at: StrictStr
  completed_at: StrictStr | None = None
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

  @classmethod
  def from_job(cls, job: GenerationJob) -> JobStatusResponse:
    return cls(
      job_id=job.job_id,
      status=job.status,
      progress=job.progress,
      current_step=job.current_step,
      error_message=job.error_message,
      result_id=job.result_id,
      created_at=job.created_at,
      completed_at=job.completed_at,
    )

"""HTTP tests for the episode generation endpoints."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.generation.audio import AudioSynthesisPipeline
from app.generation.orchestrator import PipelineOrchestrator
from app.generation.scripts import ScriptStore
from app.main import app


@pytest.fixture
def orchestrator(jobs_repo, scripts_repo, fakes):
  service = PipelineOrchestrator(
    jobs_repo=jobs_repo,
    show_metadata=fakes.ShowMetadata(),
    script_store=ScriptStore(scripts_repo, fakes.Subtitles()),
    extraction=fakes.Extraction(),
    exercises=fakes.Exercises(),
    audio=AudioSynthesisPipeline(fakes.Synthesizer(), fakes.AudioStorage()),
    persistence=fakes.Persistence(),
    enqueuer=AsyncMock(),
  )
  previous = getattr(app.state, "generation", None)
  app.state.generation = service
  yield service
  app.state.generation = previous


@pytest.mark.anyio
async def test_post_episode_returns_job_id_immediately(orchestrator, jobs_repo) -> None:
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post("/v1/generation/episodes", json={"showId": 7, "seasonNumber": 1, "episodeNumber": 2, "genre": "drama"})

  assert response.status_code == 202
  job_id = response.json()["jobId"]
  assert jobs_repo.jobs[job_id].status == "PENDING"
  assert jobs_repo.jobs[job_id].request["episode_number"] == 2
  orchestrator.enqueuer.enqueue.assert_awaited_once()


@pytest.mark.anyio
async def test_get_job_reports_camel_case_status(orchestrator) -> None:
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    created = await client.post("/v1/generation/episodes", json={"showId": 7, "seasonNumber": 1, "episodeNumber": 1})
    job_id = created.json()["jobId"]

    pending = await client.get(f"/v1/generation/jobs/{job_id}")
    await orchestrator.process_job(job_id)
    done = await client.get(f"/v1/generation/jobs/{job_id}")

  assert pending.status_code == 200
  assert pending.json()["status"] == "PENDING"
  assert pending.json()["progress"] == 0
  body = done.json()
  assert body["jobId"] == job_id
  assert body["status"] == "COMPLETED"
  assert body["progress"] == 100
  assert body["currentStep"] == "Completed"
  assert body["resultId"] == "lesson-1"
  assert body["errorMessage"] is None
  assert body["completedAt"] is not None


@pytest.mark.anyio
async def test_unknown_job_returns_404(orchestrator, caplog) -> None:
  with caplog.at_level(logging.INFO, logger="app.api.routes.generation"):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
      response = await client.get("/v1/generation/jobs/does-not-exist")

  assert response.status_code == 404
  assert response.json()["detail"] == "Job not found"
  assert "Status requested for unknown job does-not-exist" in caplog.text


@pytest.mark.anyio
@pytest.mark.parametrize(
  "payload",
  [
    {"showId": 7, "seasonNumber": 0, "episodeNumber": 1},
    {"showId": 7, "seasonNumber": 1},
    {"showId": "7", "seasonNumber": 1, "episodeNumber": 1},
    {"showId": 7, "seasonNumber": 1, "episodeNumber": 1, "unexpected": True},
  ],
)
async def test_invalid_requests_are_rejected(orchestrator, jobs_repo, payload) -> None:
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.post("/v1/generation/episodes", json=payload)

  assert response.status_code == 422
  assert jobs_repo.jobs == {}


@pytest.mark.anyio
async def test_service_unavailable_without_generation_service() -> None:
  previous = getattr(app.state, "generation", None)
  app.state.generation = None
  try:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
      response = await client.get("/v1/generation/jobs/any")
  finally:
    app.state.generation = previous

  assert response.status_code == 503


@pytest.mark.anyio
async def test_health_check() -> None:
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    response = await client.get("/health")

  assert response.status_code == 200
  assert response.json()["status"] == "ok"

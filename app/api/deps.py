"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from app.generation.orchestrator import PipelineOrchestrator


def get_orchestrator(request: Request) -> PipelineOrchestrator:
  """Return the generation service wired at startup."""
  orchestrator = getattr(request.app.state, "generation", None)
  if orchestrator is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Generation service is not configured.")
  return orchestrator

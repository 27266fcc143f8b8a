from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.routes import generation, tasks
from app.config import get_settings
from app.core.exceptions import global_exception_handler, http_exception_handler, job_not_found_exception_handler, request_validation_exception_handler
from app.core.lifespan import lifespan
from app.jobs.models import JobNotFoundError

settings = get_settings()

app = FastAPI(title="Reelingo Engine", lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"])

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(JobNotFoundError, job_not_found_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(generation.router, prefix="/v1/generation", tags=["generation"])
app.include_router(tasks.router, prefix="/internal", tags=["tasks"])

# Local development serves synthesized audio straight from disk.
if settings.audio_storage_backend == "local":
  app.mount("/media/audio", StaticFiles(directory=Path(settings.local_audio_dir), check_dir=False), name="audio")

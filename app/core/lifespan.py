import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.database import create_tables, dispose_engine
from app.core.logging import _initialize_logging
from app.services.tasks.inprocess import InProcessEnqueuer

SHUTDOWN_DRAIN_SECONDS = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging, storage and the generation service for the app's lifetime."""
  from app.config import get_settings
  from app.services.generation import build_orchestrator, load_collaborators
  from app.services.storage_client import GcsAudioStorage, build_audio_storage

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except Exception:  # noqa: BLE001
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  if settings.auto_create_tables:
    await create_tables()
    logger.info("Database tables ensured.")

  # Tests and embedding apps may install a ready orchestrator before startup.
  orchestrator = getattr(app.state, "generation", None)
  if orchestrator is None:
    collaborators = load_collaborators(settings)
    if collaborators is None:
      logger.warning("No generation collaborators configured; generation endpoints will return 503.")
    else:
      storage = collaborators.audio_storage or build_audio_storage(settings)
      if isinstance(storage, GcsAudioStorage):
        try:
          await storage.ensure_bucket()
          logger.info("Audio bucket ensured: %s", storage.bucket_name)
        except Exception as exc:  # noqa: BLE001
          logger.warning("Failed to ensure audio bucket at startup: %s", exc)
      orchestrator = build_orchestrator(settings, collaborators, audio_storage=storage)
      app.state.generation = orchestrator

  yield

  if orchestrator is not None and isinstance(orchestrator.enqueuer, InProcessEnqueuer):
    await orchestrator.enqueuer.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
  await dispose_engine()

"""Wiring for the episode lesson generation service."""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from app.config import Settings
from app.generation.audio import AudioSynthesisPipeline
from app.generation.orchestrator import PipelineOrchestrator
from app.generation.ports import AudioStorage, AudioSynthesizer, ContentExtraction, ExerciseGeneration, LessonPersistence, ShowMetadata, SubtitleFetch
from app.generation.scripts import ScriptStore
from app.services.tasks.factory import get_task_enqueuer
from app.storage.jobs_repo import JobsRepository
from app.storage.scripts_repo import ScriptsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationCollaborators:
  """External services the pipeline delegates to."""

  show_metadata: ShowMetadata
  subtitles: SubtitleFetch
  extraction: ContentExtraction
  exercises: ExerciseGeneration
  synthesizer: AudioSynthesizer
  persistence: LessonPersistence
  audio_storage: AudioStorage | None = None


CollaboratorsFactory = Callable[[Settings], GenerationCollaborators]


def load_collaborators(settings: Settings) -> GenerationCollaborators | None:
  """Build collaborators from the ``module:function`` factory named in settings."""
  if not settings.collaborators_factory:
    return None
  module_name, _, attr = settings.collaborators_factory.partition(":")
  if not module_name or not attr:
    raise ValueError("REELINGO_COLLABORATORS_FACTORY must look like 'package.module:function'.")
  factory: CollaboratorsFactory = getattr(importlib.import_module(module_name), attr)
  collaborators = factory(settings)
  logger.info("Loaded generation collaborators from %s", settings.collaborators_factory)
  return collaborators


def build_script_store(settings: Settings, subtitles: SubtitleFetch, *, repo: ScriptsRepository | None = None) -> ScriptStore:
  ttl = timedelta(days=settings.script_cache_ttl_days) if settings.script_store_mode == "cache" else None
  if repo is None:
    from app.schema.scripts import CachedScriptRow, EpisodeScriptRow
    from app.storage.postgres_scripts_repo import PostgresScriptsRepository

    repo = PostgresScriptsRepository(CachedScriptRow if ttl is not None else EpisodeScriptRow)
  return ScriptStore(repo, subtitles, ttl=ttl, default_language=settings.default_language)


def build_orchestrator(
  settings: Settings,
  collaborators: GenerationCollaborators,
  *,
  jobs_repo: JobsRepository | None = None,
  scripts_repo: ScriptsRepository | None = None,
  audio_storage: AudioStorage | None = None,
) -> PipelineOrchestrator:
  """Assemble the orchestrator with Postgres repositories unless others are given."""
  if jobs_repo is None:
    from app.storage.postgres_jobs_repo import PostgresJobsRepository

    jobs_repo = PostgresJobsRepository()

  audio_storage = audio_storage or collaborators.audio_storage
  if audio_storage is None:
    from app.services.storage_client import build_audio_storage

    audio_storage = build_audio_storage(settings)

  audio = AudioSynthesisPipeline(collaborators.synthesizer, audio_storage, max_concurrency=settings.audio_max_concurrency, timeout_seconds=settings.audio_timeout_seconds)
  orchestrator = PipelineOrchestrator(
    jobs_repo=jobs_repo,
    show_metadata=collaborators.show_metadata,
    script_store=build_script_store(settings, collaborators.subtitles, repo=scripts_repo),
    extraction=collaborators.extraction,
    exercises=collaborators.exercises,
    audio=audio,
    persistence=collaborators.persistence,
    enqueuer=None if settings.task_service_provider == "inline" else get_task_enqueuer(settings),
  )
  logger.info("Generation service ready (tasks=%s, scripts=%s)", settings.task_service_provider, settings.script_store_mode)
  return orchestrator

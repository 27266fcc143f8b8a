"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_TASK_PROVIDERS = {"inline", "local-http", "gcp"}
_AUDIO_BACKENDS = {"gcs", "local"}
_SCRIPT_STORE_MODES = {"permanent", "cache"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the Reelingo lesson engine."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  auto_create_tables: bool
  collaborators_factory: str | None
  audio_storage_backend: str
  audio_bucket: str
  audio_public_base_url: str | None
  local_audio_dir: str
  gcs_storage_host: str | None
  gcp_project_id: str | None
  audio_max_concurrency: int
  audio_timeout_seconds: float
  script_store_mode: str
  script_cache_ttl_days: int
  default_language: str
  task_service_provider: str
  cloud_tasks_queue_path: str | None
  base_url: str | None
  task_secret: str | None
  cloud_run_invoker_service_account: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("REELINGO_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("REELINGO_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("REELINGO_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_choice(name: str, raw: str | None, default: str, allowed: set[str]) -> str:
  value = (raw or default).strip().lower()
  if value not in allowed:
    raise ValueError(f"{name} must be one of: {', '.join(sorted(allowed))}.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("REELINGO_ENV", "development").lower()
  debug = _parse_bool(os.getenv("REELINGO_DEBUG"))

  log_max_bytes = int(os.getenv("REELINGO_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("REELINGO_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("REELINGO_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("REELINGO_LOG_BACKUP_COUNT must be zero or a positive integer.")

  pg_connect_timeout = int(os.getenv("REELINGO_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("REELINGO_PG_CONNECT_TIMEOUT must be a positive integer.")

  # Upper bound on concurrent TTS calls per batch.
  audio_max_concurrency = int(os.getenv("REELINGO_AUDIO_MAX_CONCURRENCY", "10"))
  if audio_max_concurrency <= 0:
    raise ValueError("REELINGO_AUDIO_MAX_CONCURRENCY must be a positive integer.")

  audio_timeout_seconds = float(os.getenv("REELINGO_AUDIO_TIMEOUT_SECONDS", "900"))
  if audio_timeout_seconds <= 0:
    raise ValueError("REELINGO_AUDIO_TIMEOUT_SECONDS must be positive.")

  script_cache_ttl_days = int(os.getenv("REELINGO_SCRIPT_CACHE_TTL_DAYS", "30"))
  if script_cache_ttl_days <= 0:
    raise ValueError("REELINGO_SCRIPT_CACHE_TTL_DAYS must be a positive integer.")

  default_language = (os.getenv("REELINGO_DEFAULT_LANGUAGE") or "en").strip().lower()

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("REELINGO_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("REELINGO_LOG_HTTP_4XX")),
    pg_dsn=os.getenv("REELINGO_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=pg_connect_timeout,
    auto_create_tables=_parse_bool(os.getenv("REELINGO_AUTO_CREATE_TABLES")),
    collaborators_factory=_optional_str(os.getenv("REELINGO_COLLABORATORS_FACTORY")),
    audio_storage_backend=_parse_choice("REELINGO_AUDIO_STORAGE_BACKEND", os.getenv("REELINGO_AUDIO_STORAGE_BACKEND"), "gcs", _AUDIO_BACKENDS),
    audio_bucket=os.getenv("REELINGO_AUDIO_BUCKET", "reelingo-audio"),
    audio_public_base_url=_optional_str(os.getenv("REELINGO_AUDIO_PUBLIC_BASE_URL")),
    local_audio_dir=(os.getenv("REELINGO_LOCAL_AUDIO_DIR") or "./audio").strip(),
    gcs_storage_host=_optional_str(os.getenv("GCS_STORAGE_HOST")),
    gcp_project_id=_optional_str(os.getenv("GCP_PROJECT_ID")),
    audio_max_concurrency=audio_max_concurrency,
    audio_timeout_seconds=audio_timeout_seconds,
    script_store_mode=_parse_choice("REELINGO_SCRIPT_STORE_MODE", os.getenv("REELINGO_SCRIPT_STORE_MODE"), "permanent", _SCRIPT_STORE_MODES),
    script_cache_ttl_days=script_cache_ttl_days,
    default_language=default_language,
    task_service_provider=_parse_choice("REELINGO_TASK_SERVICE_PROVIDER", os.getenv("REELINGO_TASK_SERVICE_PROVIDER"), "inline", _TASK_PROVIDERS),
    cloud_tasks_queue_path=_optional_str(os.getenv("REELINGO_CLOUD_TASKS_QUEUE_PATH")),
    base_url=_optional_str(os.getenv("REELINGO_BASE_URL")),
    task_secret=_optional_str(os.getenv("REELINGO_TASK_SECRET")),
    cloud_run_invoker_service_account=_optional_str(os.getenv("REELINGO_CLOUD_RUN_INVOKER_SERVICE_ACCOUNT")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  debug = _parse_bool(os.getenv("REELINGO_DEBUG"))
  pg_connect_timeout = int(os.getenv("REELINGO_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("REELINGO_PG_CONNECT_TIMEOUT must be a positive integer.")

  pg_dsn = os.getenv("REELINGO_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from app.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


def test_defaults_run_jobs_in_process_with_permanent_scripts() -> None:
  with patch.dict(os.environ, {"REELINGO_ALLOWED_ORIGINS": "http://localhost:3000"}, clear=True):
    settings = get_settings()

  assert settings.task_service_provider == "inline"
  assert settings.script_store_mode == "permanent"
  assert settings.script_cache_ttl_days == 30
  assert settings.audio_max_concurrency == 10
  assert settings.audio_timeout_seconds == 900
  assert settings.default_language == "en"
  assert settings.allowed_origins == ("http://localhost:3000",)


def test_values_are_normalized() -> None:
  env = {
    "REELINGO_ALLOWED_ORIGINS": "https://a.example.com, https://b.example.com",
    "REELINGO_TASK_SERVICE_PROVIDER": " GCP ",
    "REELINGO_SCRIPT_STORE_MODE": "cache",
    "REELINGO_DEFAULT_LANGUAGE": " ES ",
    "REELINGO_TASK_SECRET": "   ",
  }
  with patch.dict(os.environ, env, clear=True):
    settings = get_settings()

  assert settings.allowed_origins == ("https://a.example.com", "https://b.example.com")
  assert settings.task_service_provider == "gcp"
  assert settings.script_store_mode == "cache"
  assert settings.default_language == "es"
  assert settings.task_secret is None


@pytest.mark.parametrize(
  "env",
  [
    {},
    {"REELINGO_ALLOWED_ORIGINS": "*"},
    {"REELINGO_ALLOWED_ORIGINS": "http://x", "REELINGO_TASK_SERVICE_PROVIDER": "celery"},
    {"REELINGO_ALLOWED_ORIGINS": "http://x", "REELINGO_AUDIO_MAX_CONCURRENCY": "0"},
    {"REELINGO_ALLOWED_ORIGINS": "http://x", "REELINGO_SCRIPT_CACHE_TTL_DAYS": "-1"},
  ],
)
def test_invalid_settings_fail_fast(env) -> None:
  with patch.dict(os.environ, env, clear=True), pytest.raises(ValueError):
    get_settings()

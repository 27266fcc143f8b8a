"""Object storage adapters for synthesized lesson audio."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import quote, urlparse, urlunparse

from google.auth.credentials import AnonymousCredentials
from google.cloud import storage
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.generation.ports import AudioStorage

logger = logging.getLogger(__name__)

AUDIO_CACHE_CONTROL = "public, max-age=31536000"


class GcsAudioStorage(AudioStorage):
  """Thin wrapper over GCS and emulator access for audio uploads."""

  def __init__(self, settings: Settings) -> None:
    self._bucket_name = settings.audio_bucket
    self._storage_host = settings.gcs_storage_host
    self._public_base_url = settings.audio_public_base_url
    # Ensure emulator endpoint is visible to the SDK in local development.
    if self._storage_host:
      emulator_endpoint = _normalize_emulator_endpoint(self._storage_host)
      os.environ["STORAGE_EMULATOR_HOST"] = emulator_endpoint
      self._emulator_endpoint: str | None = emulator_endpoint
      self._client = storage.Client(project=settings.gcp_project_id or "local-dev", credentials=AnonymousCredentials(), client_options={"api_endpoint": emulator_endpoint})
    else:
      self._emulator_endpoint = None
      self._client = storage.Client(project=settings.gcp_project_id)

  @property
  def bucket_name(self) -> str:
    return self._bucket_name

  async def ensure_bucket(self) -> None:
    """Create the bucket when missing in local/dev flows."""
    # Keep production startup side-effect free; only auto-create in emulator mode.
    if not self._storage_host:
      return
    bucket = self._client.bucket(self._bucket_name)

    def _create_if_missing() -> None:
      if not bucket.exists(client=self._client):
        self._client.create_bucket(bucket)

    await run_in_threadpool(_create_if_missing)

  async def upload(self, key: str, data: bytes, content_type: str) -> str:
    bucket = self._client.bucket(self._bucket_name)
    blob = bucket.blob(key)
    blob.cache_control = AUDIO_CACHE_CONTROL
    blob.content_type = content_type
    await run_in_threadpool(blob.upload_from_string, data, content_type)
    return self.public_url(key)

  async def delete(self, key: str) -> None:
    bucket = self._client.bucket(self._bucket_name)
    blob = bucket.blob(key)
    await run_in_threadpool(blob.delete)

  def public_url(self, key: str) -> str:
    if self._public_base_url:
      return f"{self._public_base_url.rstrip('/')}/{quote(key)}"
    if self._emulator_endpoint:
      return f"{self._emulator_endpoint}/{self._bucket_name}/{quote(key)}"
    return f"https://storage.googleapis.com/{self._bucket_name}/{quote(key)}"


class LocalAudioStorage(AudioStorage):
  """Write audio files under a local directory for development."""

  def __init__(self, root: str | Path, public_base_url: str) -> None:
    self._root = Path(root).resolve()
    self._public_base_url = public_base_url.rstrip("/")

  def _path_for(self, key: str) -> Path:
    path = (self._root / key).resolve()
    if not path.is_relative_to(self._root):
      raise ValueError(f"Storage key escapes the audio directory: {key}")
    return path

  async def upload(self, key: str, data: bytes, content_type: str) -> str:
    path = self._path_for(key)

    def _write() -> None:
      path.parent.mkdir(parents=True, exist_ok=True)
      path.write_bytes(data)

    await run_in_threadpool(_write)
    logger.debug("Stored %d bytes of %s at %s", len(data), content_type, path)
    return self.public_url(key)

  async def delete(self, key: str) -> None:
    path = self._path_for(key)
    await run_in_threadpool(path.unlink, missing_ok=True)

  def public_url(self, key: str) -> str:
    return f"{self._public_base_url}/{quote(key)}"


def build_audio_storage(settings: Settings) -> AudioStorage:
  """Create the configured audio storage backend."""
  if settings.audio_storage_backend == "local":
    base_url = settings.audio_public_base_url or f"{(settings.base_url or 'http://localhost:8000').rstrip('/')}/media/audio"
    return LocalAudioStorage(settings.local_audio_dir, base_url)
  return GcsAudioStorage(settings)


def _normalize_emulator_endpoint(raw_endpoint: str) -> str:
  """Normalize emulator endpoint so the SDK receives scheme+host+port only."""
  parsed = urlparse(raw_endpoint)
  if not parsed.scheme or not parsed.netloc:
    return raw_endpoint.rstrip("/")
  return urlunparse((parsed.scheme, parsed.netloc, "", "", "", "")).rstrip("/")

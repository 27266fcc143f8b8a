from __future__ import annotations

from dataclasses import replace
from unittest.mock import patch

import pytest

from app.config import get_settings
from app.services.storage_client import GcsAudioStorage, LocalAudioStorage, _normalize_emulator_endpoint, build_audio_storage


@pytest.mark.anyio
async def test_local_storage_writes_and_deletes_files(tmp_path) -> None:
  storage = LocalAudioStorage(tmp_path, "http://localhost:8000/media/audio/")

  url = await storage.upload("vocab/life-threatening.mp3", b"mp3-bytes", "audio/mpeg")

  assert url == "http://localhost:8000/media/audio/vocab/life-threatening.mp3"
  assert (tmp_path / "vocab" / "life-threatening.mp3").read_bytes() == b"mp3-bytes"

  await storage.delete("vocab/life-threatening.mp3")
  await storage.delete("vocab/life-threatening.mp3")
  assert not (tmp_path / "vocab" / "life-threatening.mp3").exists()


@pytest.mark.anyio
async def test_local_storage_rejects_keys_outside_its_root(tmp_path) -> None:
  storage = LocalAudioStorage(tmp_path / "audio", "http://localhost/media/audio")

  with pytest.raises(ValueError):
    await storage.upload("../escape.mp3", b"x", "audio/mpeg")


def test_build_audio_storage_uses_local_backend(tmp_path) -> None:
  settings = replace(get_settings(), audio_storage_backend="local", local_audio_dir=str(tmp_path), audio_public_base_url=None, base_url="http://engine.local")

  storage = build_audio_storage(settings)

  assert isinstance(storage, LocalAudioStorage)
  assert storage.public_url("expr/break-a-leg.mp3") == "http://engine.local/media/audio/expr/break-a-leg.mp3"


@pytest.mark.parametrize(
  ("public_base_url", "expected"),
  [
    (None, "https://storage.googleapis.com/reelingo-audio/vocab/cook.mp3"),
    ("https://cdn.example.com/audio/", "https://cdn.example.com/audio/vocab/cook.mp3"),
  ],
)
def test_gcs_public_url(public_base_url, expected) -> None:
  settings = replace(get_settings(), audio_bucket="reelingo-audio", audio_public_base_url=public_base_url, gcs_storage_host=None)

  with patch("app.services.storage_client.storage.Client"):
    storage = GcsAudioStorage(settings)

  assert storage.public_url("vocab/cook.mp3") == expected


@pytest.mark.anyio
async def test_gcs_upload_sets_content_type_and_returns_url() -> None:
  settings = replace(get_settings(), audio_bucket="reelingo-audio", audio_public_base_url=None, gcs_storage_host=None)

  with patch("app.services.storage_client.storage.Client") as mock_client_cls:
    storage = GcsAudioStorage(settings)
    url = await storage.upload("vocab/cook.mp3", b"mp3", "audio/mpeg")

  blob = mock_client_cls.return_value.bucket.return_value.blob.return_value
  blob.upload_from_string.assert_called_once_with(b"mp3", "audio/mpeg")
  assert blob.content_type == "audio/mpeg"
  assert url == "https://storage.googleapis.com/reelingo-audio/vocab/cook.mp3"


@pytest.mark.parametrize(
  ("raw", "expected"),
  [
    ("http://localhost:4443/", "http://localhost:4443"),
    ("http://fake-gcs:4443/storage/v1/", "http://fake-gcs:4443"),
    ("localhost:4443", "localhost:4443"),
  ],
)
def test_normalize_emulator_endpoint(raw, expected) -> None:
  assert _normalize_emulator_endpoint(raw) == expected

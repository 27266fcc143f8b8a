"""Test configuration and in-memory fakes for the generation pipeline."""

from __future__ import annotations

import os
import sys
from collections import defaultdict
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

os.environ.setdefault("REELINGO_ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("REELINGO_TASK_SERVICE_PROVIDER", "inline")
os.environ.setdefault("REELINGO_AUDIO_STORAGE_BACKEND", "gcs")

import pytest  # noqa: E402

from app.generation.contracts import ExtractedExpression, ExtractedGrammar, ExtractedVocabulary, GeneratedExercise, GeneratedLesson  # noqa: E402
from app.jobs.models import GenerationJob  # noqa: E402
from app.storage.jobs_repo import JobTransition  # noqa: E402
from app.storage.scripts_repo import ScriptKey, ScriptRecord  # noqa: E402

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,000
WALTER: We need to cook.

2
00:00:04,000 --> 00:00:06,500
<i>Jesse, listen to me.</i>
It's life-threatening.

3
00:00:07,000 --> 00:00:08,000
[door closes]
"""


class InMemoryJobsRepo:
  """Jobs repository that keeps every committed version of each job."""

  def __init__(self) -> None:
    self.jobs: dict[str, GenerationJob] = {}
    self.history: dict[str, list[GenerationJob]] = defaultdict(list)

  async def create_job(self, record: GenerationJob) -> None:
    self.jobs[record.job_id] = record
    self.history[record.job_id].append(record)

  async def get_job(self, job_id: str) -> GenerationJob | None:
    return self.jobs.get(job_id)

  async def update_job(self, job_id: str, transition: JobTransition) -> GenerationJob | None:
    current = self.jobs.get(job_id)
    if current is None:
      return None
    updated = transition(current)
    if updated != current:
      self.jobs[job_id] = updated
      self.history[job_id].append(updated)
    return updated


class InMemoryScriptsRepo:
  """Scripts repository with first-live-write-wins semantics."""

  def __init__(self) -> None:
    self.records: dict[ScriptKey, ScriptRecord] = {}
    self.save_calls = 0

  async def get_script(self, key: ScriptKey) -> ScriptRecord | None:
    return self.records.get(key)

  async def save_script(self, record: ScriptRecord) -> ScriptRecord:
    self.save_calls += 1
    existing = self.records.get(record.key)
    if existing is not None and not existing.is_expired(record.downloaded_at):
      return existing
    self.records[record.key] = record
    return record

  async def delete_expired(self, now: datetime) -> int:
    expired = [key for key, record in self.records.items() if record.is_expired(now)]
    for key in expired:
      del self.records[key]
    return len(expired)


class FakeShowMetadata:
  def __init__(self, external_id: str | None = "tt0903747") -> None:
    self.external_id = external_id

  async def resolve_external_id(self, show_id: int, season_number: int, episode_number: int) -> str | None:
    return self.external_id


class FakeSubtitles:
  def __init__(self, content: str | None = SAMPLE_SRT) -> None:
    self.content = content
    self.calls: list[tuple[str, int, int, str]] = []

  async def fetch(self, external_id: str, season_number: int, episode_number: int, language: str) -> str | None:
    self.calls.append((external_id, season_number, episode_number, language))
    return self.content


class FakeExtraction:
  def __init__(self, *, vocabulary: int = 15, grammar: int = 4, expressions: int = 6, error: Exception | None = None) -> None:
    self.counts = (vocabulary, grammar, expressions)
    self.error = error
    self.genres: list[str | None] = []

  async def extract_vocabulary(self, script: str, genre: str | None) -> list[ExtractedVocabulary]:
    self.genres.append(genre)
    if self.error is not None:
      raise self.error
    return make_vocabulary(self.counts[0])

  async def extract_grammar(self, script: str) -> list[ExtractedGrammar]:
    return make_grammar(self.counts[1])

  async def extract_expressions(self, script: str) -> list[ExtractedExpression]:
    return make_expressions(self.counts[2])


class FakeExercises:
  def __init__(self, count: int = 12) -> None:
    self.count = count

  async def generate(self, vocabulary, grammar, expressions) -> list[GeneratedExercise]:
    return make_exercises(self.count)


class FakeSynthesizer:
  def __init__(self, fail_on: set[str] | None = None) -> None:
    self.fail_on = fail_on or set()
    self.synthesized: list[str] = []

  async def synthesize(self, text: str) -> bytes:
    self.synthesized.append(text)
    if text in self.fail_on:
      raise RuntimeError(f"TTS failed for {text}")
    return f"wav:{text}".encode()

  async def transcode(self, raw_audio: bytes) -> bytes:
    return b"mp3:" + raw_audio


class FakeAudioStorage:
  def __init__(self) -> None:
    self.uploads: dict[str, tuple[bytes, str]] = {}

  async def upload(self, key: str, data: bytes, content_type: str) -> str:
    self.uploads[key] = (data, content_type)
    return self.public_url(key)

  async def delete(self, key: str) -> None:
    self.uploads.pop(key, None)

  def public_url(self, key: str) -> str:
    return f"https://cdn.test/{key}"


class FakePersistence:
  def __init__(self, result_id: str = "lesson-1") -> None:
    self.result_id = result_id
    self.saved: list[tuple[GeneratedLesson, dict]] = []

  async def save(self, lesson: GeneratedLesson, **kwargs) -> str:
    self.saved.append((lesson, kwargs))
    return self.result_id


def make_vocabulary(count: int) -> list[ExtractedVocabulary]:
  return [ExtractedVocabulary(term=f"term {index}", definition=f"definition {index}") for index in range(count)]


def make_grammar(count: int) -> list[ExtractedGrammar]:
  return [ExtractedGrammar(title=f"grammar {index}", explanation="explanation", examples=("example",)) for index in range(count)]


def make_expressions(count: int) -> list[ExtractedExpression]:
  return [ExtractedExpression(phrase=f"phrase {index}", meaning="meaning") for index in range(count)]


def make_exercises(count: int, points: int = 10) -> list[GeneratedExercise]:
  return [GeneratedExercise(type="MULTIPLE_CHOICE", question=f"question {index}", correct_answer="a", options=("a", "b"), points=points) for index in range(count)]


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def jobs_repo() -> InMemoryJobsRepo:
  return InMemoryJobsRepo()


@pytest.fixture
def scripts_repo() -> InMemoryScriptsRepo:
  return InMemoryScriptsRepo()


@pytest.fixture
def subtitles() -> FakeSubtitles:
  return FakeSubtitles()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
  return FakeSynthesizer()


@pytest.fixture
def audio_storage() -> FakeAudioStorage:
  return FakeAudioStorage()


@pytest.fixture
def persistence() -> FakePersistence:
  return FakePersistence()


@pytest.fixture
def content():
  """Builders for extracted lesson content."""

  class _Content:
    vocabulary = staticmethod(make_vocabulary)
    grammar = staticmethod(make_grammar)
    expressions = staticmethod(make_expressions)
    exercises = staticmethod(make_exercises)

  return _Content


@pytest.fixture
def fakes():
  """Collaborator fake classes for tests that need custom behaviour."""

  class _Fakes:
    ShowMetadata = FakeShowMetadata
    Subtitles = FakeSubtitles
    Extraction = FakeExtraction
    Exercises = FakeExercises
    Synthesizer = FakeSynthesizer
    AudioStorage = FakeAudioStorage
    Persistence = FakePersistence

  return _Fakes

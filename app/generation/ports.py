"""Contracts for the external services the lesson pipeline calls."""

from __future__ import annotations

from typing import Protocol

from app.generation.contracts import ExtractedExpression, ExtractedGrammar, ExtractedVocabulary, GeneratedExercise, GeneratedLesson


class ShowMetadata(Protocol):
  async def resolve_external_id(self, show_id: int, season_number: int, episode_number: int) -> str | None:
    """Return the external (IMDB-style) episode id, or None when it cannot be resolved."""


class SubtitleFetch(Protocol):
  async def fetch(self, external_id: str, season_number: int, episode_number: int, language: str) -> str | None:
    """Return raw subtitle markup, or None when no subtitles are available."""


class ContentExtraction(Protocol):
  async def extract_vocabulary(self, script: str, genre: str | None) -> list[ExtractedVocabulary]: ...

  async def extract_grammar(self, script: str) -> list[ExtractedGrammar]: ...

  async def extract_expressions(self, script: str) -> list[ExtractedExpression]: ...


class ExerciseGeneration(Protocol):
  async def generate(self, vocabulary: list[ExtractedVocabulary], grammar: list[ExtractedGrammar], expressions: list[ExtractedExpression]) -> list[GeneratedExercise]: ...


class AudioSynthesizer(Protocol):
  async def synthesize(self, text: str) -> bytes:
    """Return raw speech audio (e.g. WAV) for the text."""

  async def transcode(self, raw_audio: bytes) -> bytes:
    """Convert raw speech audio into the distribution format (MP3)."""


class AudioStorage(Protocol):
  async def upload(self, key: str, data: bytes, content_type: str) -> str:
    """Store bytes under key and return the public URL."""

  async def delete(self, key: str) -> None: ...

  def public_url(self, key: str) -> str: ...


class LessonPersistence(Protocol):
  async def save(
    self,
    lesson: GeneratedLesson,
    *,
    show_id: int,
    external_id: str,
    season_number: int,
    episode_number: int,
    genre: str | None,
    user_id: str | None,
  ) -> str:
    """Persist the lesson and return its id."""

"""Shared data contracts for the episode lesson pipeline."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
  """Inputs for an episode lesson generation run."""

  show_id: int = Field(ge=1)
  season_number: int = Field(ge=1)
  episode_number: int = Field(ge=1)
  genre: str | None = None
  language: str | None = None
  user_id: str | None = None

  def describe(self) -> str:
    return f"show {self.show_id} S{self.season_number}E{self.episode_number}"

  def to_payload(self) -> dict[str, Any]:
    return self.model_dump(mode="json")


class ExtractedVocabulary(BaseModel):
  """A vocabulary item pulled from an episode script."""

  model_config = ConfigDict(frozen=True)

  term: str
  definition: str
  phonetic: str | None = None
  category: str | None = None
  example_sentence: str | None = None
  audio_url: str | None = None


class ExtractedGrammar(BaseModel):
  """A grammar point illustrated by the episode."""

  model_config = ConfigDict(frozen=True)

  title: str
  explanation: str
  structure: str | None = None
  examples: tuple[str, ...] = ()


class ExtractedExpression(BaseModel):
  """An idiom or set phrase used in the episode."""

  model_config = ConfigDict(frozen=True)

  phrase: str
  meaning: str
  context: str | None = None
  usage_note: str | None = None
  audio_url: str | None = None


class GeneratedExercise(BaseModel):
  """A practice exercise built from the extracted content."""

  model_config = ConfigDict(frozen=True)

  type: str
  question: str
  correct_answer: str
  options: tuple[str, ...] = ()
  points: int = Field(default=10, ge=0)
  audio_url: str | None = None

  @property
  def is_listening(self) -> bool:
    return self.type.strip().upper() == "LISTENING"


class GeneratedLesson(BaseModel):
  """Assembled lesson content; build through LessonAssembler.assemble."""

  model_config = ConfigDict(frozen=True)

  vocabulary: tuple[ExtractedVocabulary, ...]
  grammar_points: tuple[ExtractedGrammar, ...]
  expressions: tuple[ExtractedExpression, ...]
  exercises: tuple[GeneratedExercise, ...]

"""Bounded-concurrency audio synthesis for lesson items."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from app.generation.contracts import ExtractedExpression, ExtractedVocabulary, GeneratedExercise, GeneratedLesson
from app.generation.ports import AudioStorage, AudioSynthesizer

logger = logging.getLogger(__name__)

AudioKind = Literal["vocab", "expr", "listening"]

AUDIO_CONTENT_TYPE = "audio/mpeg"
DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_TIMEOUT_SECONDS = 15 * 60
MAX_SLUG_LENGTH = 100

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_HYPHENS = re.compile(r"-+")


def slugify(text: str) -> str:
  slug = _DISALLOWED_CHARS.sub("", text.lower())
  slug = _WHITESPACE.sub("-", slug)
  slug = _REPEATED_HYPHENS.sub("-", slug).strip("-")
  return slug[:MAX_SLUG_LENGTH].rstrip("-")


def storage_key(kind: AudioKind, text: str) -> str:
  """Return the object key for an item's audio, namespaced by content kind.

  Text with no ASCII letters or digits falls back to a short digest so the key stays unique.
  """
  # Non-ASCII text slugifies to nothing.
  slug = slugify(text) or hashlib.sha1(text.encode("utf-8")).hexdigest()[:16]
  return f"{kind}/{slug}.mp3"


@dataclass(frozen=True)
class RegenerationResult:
  """Counts from regenerating audio for an existing lesson."""

  vocabulary_success: int = 0
  vocabulary_failed: int = 0
  expressions_success: int = 0
  expressions_failed: int = 0
  exercises_success: int = 0
  exercises_failed: int = 0

  @property
  def total_success(self) -> int:
    return self.vocabulary_success + self.expressions_success + self.exercises_success

  @property
  def total_failed(self) -> int:
    return self.vocabulary_failed + self.expressions_failed + self.exercises_failed


class AudioSynthesisPipeline:
  """Turn lesson items into hosted audio without letting one failure affect the rest."""

  def __init__(self, synthesizer: AudioSynthesizer, storage: AudioStorage, *, max_concurrency: int = DEFAULT_MAX_CONCURRENCY, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
    if max_concurrency <= 0:
      raise ValueError("max_concurrency must be positive")
    self._synthesizer = synthesizer
    self._storage = storage
    self._max_concurrency = max_concurrency
    self._timeout_seconds = timeout_seconds

  async def synthesize_vocabulary(self, items: Sequence[ExtractedVocabulary]) -> list[ExtractedVocabulary]:
    urls = await self.synthesize_batch([("vocab", item.term) for item in items])
    return [item.model_copy(update={"audio_url": url}) for item, url in zip(items, urls, strict=True)]

  async def synthesize_expressions(self, items: Sequence[ExtractedExpression]) -> list[ExtractedExpression]:
    urls = await self.synthesize_batch([("expr", item.phrase) for item in items])
    return [item.model_copy(update={"audio_url": url}) for item, url in zip(items, urls, strict=True)]

  async def synthesize_lesson_items(self, vocabulary: Sequence[ExtractedVocabulary], expressions: Sequence[ExtractedExpression]) -> tuple[list[ExtractedVocabulary], list[ExtractedExpression]]:
    """Synthesize vocabulary and expression audio in one bounded batch."""
    urls = await self.synthesize_batch([("vocab", item.term) for item in vocabulary] + [("expr", item.phrase) for item in expressions])
    # One batch shares the concurrency cap; split the URLs back by position.
    vocab_urls, expr_urls = urls[: len(vocabulary)], urls[len(vocabulary) :]
    return (
      [item.model_copy(update={"audio_url": url}) for item, url in zip(vocabulary, vocab_urls, strict=True)],
      [item.model_copy(update={"audio_url": url}) for item, url in zip(expressions, expr_urls, strict=True)],
    )

  async def regenerate(self, lesson: GeneratedLesson, *, force: bool = False) -> tuple[GeneratedLesson, RegenerationResult]:
    """Fill in missing audio for a saved lesson, or redo all of it when force is set.

    Listening exercises get audio for their correct answer.
    """
    vocab_todo = [index for index, item in enumerate(lesson.vocabulary) if force or not item.audio_url]
    expr_todo = [index for index, item in enumerate(lesson.expressions) if force or not item.audio_url]
    exercise_todo = [index for index, item in enumerate(lesson.exercises) if item.is_listening and item.correct_answer and (force or not item.audio_url)]

    batch: list[tuple[AudioKind, str]] = []
    batch.extend(("vocab", lesson.vocabulary[index].term) for index in vocab_todo)
    batch.extend(("expr", lesson.expressions[index].phrase) for index in expr_todo)
    batch.extend(("listening", lesson.exercises[index].correct_answer) for index in exercise_todo)
    # URLs come back in batch order, so consume them in the same order below.
    urls = iter(await self.synthesize_batch(batch))

    vocabulary = list(lesson.vocabulary)
    expressions = list(lesson.expressions)
    exercises: list[GeneratedExercise] = list(lesson.exercises)
    counts = {"vocabulary": [0, 0], "expressions": [0, 0], "exercises": [0, 0]}
    for name, items, todo in (("vocabulary", vocabulary, vocab_todo), ("expressions", expressions, expr_todo), ("exercises", exercises, exercise_todo)):
      for index in todo:
        url = next(urls)
        if url is None:
          counts[name][1] += 1
          continue
        items[index] = items[index].model_copy(update={"audio_url": url})
        counts[name][0] += 1

    result = RegenerationResult(
      vocabulary_success=counts["vocabulary"][0],
      vocabulary_failed=counts["vocabulary"][1],
      expressions_success=counts["expressions"][0],
      expressions_failed=counts["expressions"][1],
      exercises_success=counts["exercises"][0],
      exercises_failed=counts["exercises"][1],
    )
    logger.info("Audio regeneration completed: %d succeeded, %d failed", result.total_success, result.total_failed)
    updated = lesson.model_copy(update={"vocabulary": tuple(vocabulary), "expressions": tuple(expressions), "exercises": tuple(exercises)})
    return updated, result

  async def synthesize_batch(self, items: Sequence[tuple[AudioKind, str]]) -> list[str | None]:
    """Return a public URL (or None) per item, in input order.

    At most max_concurrency items run at once. Items still running when the
    timeout expires are cancelled and reported as None. No task outlives the call.
    """
    if not items:
      return []

    semaphore = asyncio.Semaphore(self._max_concurrency)

    async def _bounded(kind: AudioKind, text: str) -> str | None:
      async with semaphore:
        return await self._synthesize_one(kind, text)

    tasks = [asyncio.create_task(_bounded(kind, text)) for kind, text in items]
    try:
      await asyncio.wait(tasks, timeout=self._timeout_seconds)
    finally:
      # Cancel anything still running so no synthesis outlives the batch.
      stragglers = [task for task in tasks if not task.done()]
      if stragglers:
        logger.warning("Audio generation stopped with %d of %d items unfinished; cancelling them", len(stragglers), len(tasks))
        for task in stragglers:
          task.cancel()
        await asyncio.gather(*stragglers, return_exceptions=True)

    results = [None if task.cancelled() else task.result() for task in tasks]
    succeeded = sum(1 for url in results if url is not None)
    logger.info("Audio generation completed: %d/%d successful", succeeded, len(results))
    return results

  async def _synthesize_one(self, kind: AudioKind, text: str) -> str | None:
    if not text or not text.strip():
      return None
    key = storage_key(kind, text)
    try:
      raw_audio = await self._synthesizer.synthesize(text)
      mp3 = await self._synthesizer.transcode(raw_audio)
      url = await self._storage.upload(key, mp3, AUDIO_CONTENT_TYPE)
    except Exception as exc:  # noqa: BLE001
      # One failed item must not sink the batch.
      logger.warning("Failed to generate audio for %s '%s': %s", kind, text, exc)
      return None
    logger.debug("Generated audio for %s '%s' -> %s", kind, text, url)
    return url

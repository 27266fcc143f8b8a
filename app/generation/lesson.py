"""Business rules for turning extracted content into a lesson."""

from __future__ import annotations

from collections.abc import Sequence

from app.generation.contracts import ExtractedExpression, ExtractedGrammar, ExtractedVocabulary, GeneratedExercise, GeneratedLesson

MIN_VOCABULARY = 10
MIN_GRAMMAR = 3
MIN_EXPRESSIONS = 5
MIN_EXERCISES = 10

HIGH_QUALITY_VOCABULARY = 15
HIGH_QUALITY_GRAMMAR = 4
HIGH_QUALITY_EXPRESSIONS = 6
HIGH_QUALITY_EXERCISES = 12


class InsufficientContentError(ValueError):
  """Raised when extracted content falls below the lesson minimums."""

  def __init__(self, deficiencies: list[str]) -> None:
    super().__init__("Lesson content does not meet minimum requirements: " + ", ".join(deficiencies))
    self.deficiencies = deficiencies


class LessonAssembler:
  """Validate extracted content and build the immutable lesson."""

  def find_deficiencies(
    self,
    vocabulary: Sequence[ExtractedVocabulary],
    grammar_points: Sequence[ExtractedGrammar],
    expressions: Sequence[ExtractedExpression],
    exercises: Sequence[GeneratedExercise],
  ) -> list[str]:
    """Return one message per category below its minimum, in a fixed order."""
    checks = (
      ("vocabulary items", len(vocabulary), MIN_VOCABULARY),
      ("grammar points", len(grammar_points), MIN_GRAMMAR),
      ("expressions", len(expressions), MIN_EXPRESSIONS),
      ("exercises", len(exercises), MIN_EXERCISES),
    )
    return [f"Insufficient {label}: {count} (minimum {minimum} required)" for label, count, minimum in checks if count < minimum]

  def assemble(
    self,
    vocabulary: Sequence[ExtractedVocabulary],
    grammar_points: Sequence[ExtractedGrammar],
    expressions: Sequence[ExtractedExpression],
    exercises: Sequence[GeneratedExercise],
  ) -> GeneratedLesson:
    # Report every short category at once rather than the first one found.
    deficiencies = self.find_deficiencies(vocabulary, grammar_points, expressions, exercises)
    if deficiencies:
      raise InsufficientContentError(deficiencies)
    return GeneratedLesson(vocabulary=tuple(vocabulary), grammar_points=tuple(grammar_points), expressions=tuple(expressions), exercises=tuple(exercises))

  def is_high_quality(self, lesson: GeneratedLesson) -> bool:
    """Advisory only; never gates success."""
    return (
      len(lesson.vocabulary) >= HIGH_QUALITY_VOCABULARY
      and len(lesson.grammar_points) >= HIGH_QUALITY_GRAMMAR
      and len(lesson.expressions) >= HIGH_QUALITY_EXPRESSIONS
      and len(lesson.exercises) >= HIGH_QUALITY_EXERCISES
    )

  def total_points(self, lesson: GeneratedLesson) -> int:
    return sum(exercise.points for exercise in lesson.exercises)

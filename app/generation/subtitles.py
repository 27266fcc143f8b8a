"""Convert raw SRT subtitle markup into clean dialogue text."""

from __future__ import annotations

import re

_SEQUENCE_NUMBER = re.compile(r"^\d+$")
_TIMESTAMP = re.compile(r"^\d{2}:\d{2}:\d{2}[,.]\d{3}\s*-->\s*\d{2}:\d{2}:\d{2}[,.]\d{3}.*$")
_HTML_TAG = re.compile(r"<[^>]+>")
_ASS_OVERRIDE = re.compile(r"\{\\[^}]+\}")
_STAGE_DIRECTION = re.compile(r"^[\[(][^\])]+[\])]$")
_SPEAKER_LABEL = re.compile(r"^[A-Z][A-Z\s.]+:\s*")
_MUSIC_NOTES = re.compile(r"[♪♫]")
_INLINE_BRACKETS = re.compile(r"\[[^\]]+\]")
_INLINE_PARENS = re.compile(r"\([^)]+\)")
_WHITESPACE = re.compile(r"\s+")
_PUNCTUATION_ONLY = re.compile(r"^[-\s.?!,]+$")


def clean_line(line: str) -> str | None:
  """Return the dialogue left on a single subtitle line, or None when nothing useful remains."""
  stripped = line.strip()
  if not stripped:
    return None
  # Cue numbers and timing lines carry no dialogue.
  if _SEQUENCE_NUMBER.match(stripped) or _TIMESTAMP.match(stripped):
    return None
  # A line that is only a bracketed direction is dropped whole.
  if _STAGE_DIRECTION.match(stripped):
    return None

  # Strip markup before the speaker label so tagged labels still match.
  cleaned = _HTML_TAG.sub("", stripped)
  cleaned = _ASS_OVERRIDE.sub("", cleaned)
  cleaned = _MUSIC_NOTES.sub("", cleaned)
  cleaned = _SPEAKER_LABEL.sub("", cleaned.strip())
  cleaned = _INLINE_BRACKETS.sub("", cleaned)
  cleaned = _INLINE_PARENS.sub("", cleaned)
  cleaned = _WHITESPACE.sub(" ", cleaned).strip()

  # Leftover fragments like "-" or "..." are noise.
  if len(cleaned) < 2 or _PUNCTUATION_ONLY.match(cleaned):
    return None
  return cleaned


def parse_to_plain_text(content: str | None) -> str:
  """Return one cleaned dialogue line per output line."""
  if not content or not content.strip():
    return ""
  lines = (clean_line(line) for line in content.splitlines())
  return "\n".join(line for line in lines if line)


def parse_preserving_groups(content: str | None) -> str:
  """Return one paragraph per subtitle block, blocks separated by a blank line.

  Cleaned lines within a block are joined with a space so multi-line utterances
  stay together for downstream extraction.
  """
  if not content or not content.strip():
    return ""

  groups: list[str] = []
  current: list[str] = []
  for line in content.splitlines():
    # A blank line closes the current subtitle block.
    if not line.strip():
      if current:
        groups.append(" ".join(current))
        current = []
      continue
    cleaned = clean_line(line)
    if cleaned:
      current.append(cleaned)

  if current:
    groups.append(" ".join(current))
  return "\n\n".join(groups)

"""Storage interfaces for downloaded episode scripts."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

import msgspec


class ScriptKey(msgspec.Struct, frozen=True):
  """Natural key of a stored script."""

  external_id: str
  season_number: int
  episode_number: int
  language: str

  def describe(self) -> str:
    return f"{self.external_id} S{self.season_number}E{self.episode_number} ({self.language})"


class ScriptRecord(msgspec.Struct, frozen=True):
  """A downloaded subtitle file together with its parsed dialogue."""

  key: ScriptKey
  raw_content: str
  parsed_text: str
  downloaded_at: datetime
  expires_at: datetime | None = None

  def is_expired(self, now: datetime) -> bool:
    return self.expires_at is not None and self.expires_at <= now


class ScriptsRepository(Protocol):
  """Repository contract shared by the permanent store and the TTL cache."""

  async def get_script(self, key: ScriptKey) -> ScriptRecord | None:
    """Return the stored script for a key, expired or not."""

  async def save_script(self, record: ScriptRecord) -> ScriptRecord:
    """Store a script unless a live one already exists; return whichever record is kept."""

  async def delete_expired(self, now: datetime) -> int:
    """Delete scripts whose expiry has passed and return how many were removed."""

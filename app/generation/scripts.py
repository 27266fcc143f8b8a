"""Fetch-or-store access to parsed episode scripts."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from app.generation.ports import SubtitleFetch
from app.generation.subtitles import parse_preserving_groups
from app.storage.scripts_repo import ScriptKey, ScriptRecord, ScriptsRepository

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


class ScriptStore:
  """Serve parsed scripts from storage, downloading and parsing them once on a miss.

  With ``ttl=None`` stored scripts never expire (the permanent store). With a TTL,
  entries past their expiry are treated as misses and refreshed on the next store.
  """

  def __init__(self, repo: ScriptsRepository, subtitles: SubtitleFetch, *, ttl: timedelta | None = None, default_language: str = DEFAULT_LANGUAGE) -> None:
    self._repo = repo
    self._subtitles = subtitles
    self._ttl = ttl
    self._default_language = default_language

  @property
  def ttl(self) -> timedelta | None:
    return self._ttl

  def key_for(self, external_id: str, season_number: int, episode_number: int, language: str | None = None) -> ScriptKey:
    return ScriptKey(external_id=external_id, season_number=season_number, episode_number=episode_number, language=(language or self._default_language).lower())

  async def fetch(self, external_id: str, season_number: int, episode_number: int, language: str | None = None) -> str | None:
    """Return parsed script text, or None when no subtitles exist for the episode."""
    key = self.key_for(external_id, season_number, episode_number, language)
    stored = await self._lookup(key)
    if stored is not None:
      logger.info("Using stored script for %s", key.describe())
      return stored.parsed_text

    logger.info("No stored script for %s; fetching subtitles", key.describe())
    raw_content = await self._subtitles.fetch(key.external_id, key.season_number, key.episode_number, key.language)
    if raw_content is None:
      logger.warning("No subtitles available for %s", key.describe())
      return None

    # Keep subtitle blocks grouped; extraction works on whole utterances.
    parsed_text = parse_preserving_groups(raw_content)
    if not parsed_text:
      logger.warning("Subtitles for %s contained no dialogue", key.describe())
      return None

    now = datetime.now(UTC)
    expires_at = now + self._ttl if self._ttl is not None else None
    record = ScriptRecord(key=key, raw_content=raw_content, parsed_text=parsed_text, downloaded_at=now, expires_at=expires_at)
    # A concurrent writer may have stored first; serve whatever the repository kept.
    kept = await self._repo.save_script(record)
    logger.info("Stored script for %s (%d chars)", key.describe(), len(kept.parsed_text))
    return kept.parsed_text

  async def has_script(self, external_id: str, season_number: int, episode_number: int, language: str | None = None) -> bool:
    key = self.key_for(external_id, season_number, episode_number, language)
    return await self._lookup(key) is not None

  async def purge_expired(self) -> int:
    """Delete expired cache entries; a permanent store has nothing to purge."""
    if self._ttl is None:
      return 0
    deleted = await self._repo.delete_expired(datetime.now(UTC))
    if deleted:
      logger.info("Purged %d expired cached scripts", deleted)
    return deleted

  async def _lookup(self, key: ScriptKey) -> ScriptRecord | None:
    record = await self._repo.get_script(key)
    # Expired cache entries count as misses.
    if record is None or record.is_expired(datetime.now(UTC)):
      return None
    return record

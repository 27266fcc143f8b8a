"""Postgres-backed script repositories for the permanent store and the TTL cache."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session_factory
from app.schema.scripts import CachedScriptRow, EpisodeScriptRow
from app.storage.scripts_repo import ScriptKey, ScriptRecord, ScriptsRepository

logger = logging.getLogger(__name__)

ScriptRow = EpisodeScriptRow | CachedScriptRow


class PostgresScriptsRepository(ScriptsRepository):
  """Persist scripts keyed by episode and language; the first live write wins."""

  def __init__(self, row_model: type[ScriptRow] = EpisodeScriptRow) -> None:
    self._row_model = row_model
    self._has_expiry = row_model is CachedScriptRow
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_script(self, key: ScriptKey) -> ScriptRecord | None:
    async with self._session_factory() as session:
      row = await self._select(session, key)
      if row is None:
        return None
      return self._row_to_record(row)

  async def save_script(self, record: ScriptRecord) -> ScriptRecord:
    async with self._session_factory() as session:
      existing = await self._select(session, record.key)
      if existing is not None:
        existing_record = self._row_to_record(existing)
        if not existing_record.is_expired(record.downloaded_at):
          logger.warning("Script already stored for %s; keeping existing entry", record.key.describe())
          return existing_record
        # Expired cache rows are refreshed in place.
        existing.raw_content = record.raw_content
        existing.parsed_text = record.parsed_text
        existing.downloaded_at = record.downloaded_at
        existing.expires_at = record.expires_at
        await session.commit()
        return record

      session.add(self._record_to_row(record))
      try:
        await session.commit()
      except IntegrityError:
        # A concurrent writer stored the same key first; yield to it.
        await session.rollback()
        winner = await self._select(session, record.key)
        if winner is None:
          raise
        logger.warning("Concurrent script store for %s; keeping first write", record.key.describe())
        return self._row_to_record(winner)
      return record

  async def delete_expired(self, now: datetime) -> int:
    if not self._has_expiry:
      return 0
    async with self._session_factory() as session:
      result = await session.execute(delete(CachedScriptRow).where(CachedScriptRow.expires_at <= now))
      await session.commit()
      return int(result.rowcount or 0)

  async def _select(self, session: AsyncSession, key: ScriptKey) -> ScriptRow | None:
    model = self._row_model
    stmt = select(model).where(
      model.external_id == key.external_id,
      model.season_number == key.season_number,
      model.episode_number == key.episode_number,
      model.language == key.language,
    )
    return (await session.execute(stmt)).scalar_one_or_none()

  def _record_to_row(self, record: ScriptRecord) -> ScriptRow:
    fields = {
      "external_id": record.key.external_id,
      "season_number": record.key.season_number,
      "episode_number": record.key.episode_number,
      "language": record.key.language,
      "raw_content": record.raw_content,
      "parsed_text": record.parsed_text,
      "downloaded_at": record.downloaded_at,
    }
    if self._has_expiry:
      if record.expires_at is None:
        raise ValueError("Cached scripts require an expiry timestamp")
      fields["expires_at"] = record.expires_at
    return self._row_model(**fields)

  def _row_to_record(self, row: ScriptRow) -> ScriptRecord:
    key = ScriptKey(external_id=row.external_id, season_number=row.season_number, episode_number=row.episode_number, language=row.language)
    expires_at = row.expires_at if isinstance(row, CachedScriptRow) else None
    return ScriptRecord(key=key, raw_content=row.raw_content, parsed_text=row.parsed_text, downloaded_at=row.downloaded_at, expires_at=expires_at)

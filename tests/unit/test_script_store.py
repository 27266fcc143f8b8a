from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from app.generation.scripts import ScriptStore
from app.storage.scripts_repo import ScriptKey, ScriptRecord


@pytest.mark.anyio
async def test_second_fetch_uses_stored_script(scripts_repo, subtitles) -> None:
  store = ScriptStore(scripts_repo, subtitles)

  first = await store.fetch("tt0903747", 1, 1)
  second = await store.fetch("tt0903747", 1, 1)

  assert first == "We need to cook.\n\nJesse, listen to me. It's life-threatening."
  assert second == first
  assert subtitles.calls == [("tt0903747", 1, 1, "en")]
  assert scripts_repo.save_calls == 1


@pytest.mark.anyio
async def test_fetch_stores_raw_and_grouped_text(scripts_repo, subtitles) -> None:
  store = ScriptStore(scripts_repo, subtitles)

  await store.fetch("tt0903747", 1, 1, "EN")

  record = scripts_repo.records[ScriptKey(external_id="tt0903747", season_number=1, episode_number=1, language="en")]
  assert record.raw_content == subtitles.content
  assert "\n\n" in record.parsed_text
  assert record.expires_at is None


@pytest.mark.anyio
async def test_language_is_part_of_the_key(scripts_repo, subtitles) -> None:
  store = ScriptStore(scripts_repo, subtitles, default_language="en")

  await store.fetch("tt0903747", 1, 1)
  await store.fetch("tt0903747", 1, 1, "es")

  assert [call[3] for call in subtitles.calls] == ["en", "es"]


@pytest.mark.anyio
async def test_missing_subtitles_return_none_without_storing(scripts_repo, fakes) -> None:
  store = ScriptStore(scripts_repo, fakes.Subtitles(content=None))

  assert await store.fetch("tt0000001", 2, 3) is None
  assert scripts_repo.save_calls == 0
  assert not await store.has_script("tt0000001", 2, 3)


@pytest.mark.anyio
async def test_subtitles_without_dialogue_count_as_missing(scripts_repo, fakes) -> None:
  store = ScriptStore(scripts_repo, fakes.Subtitles(content="1\n00:00:01,000 --> 00:00:02,000\n[silence]\n"))

  assert await store.fetch("tt0000001", 1, 1) is None
  assert scripts_repo.save_calls == 0


@pytest.mark.anyio
async def test_existing_entry_wins_over_a_concurrent_store(scripts_repo, subtitles) -> None:
  key = ScriptKey(external_id="tt0903747", season_number=1, episode_number=1, language="en")
  store = ScriptStore(scripts_repo, subtitles)
  # Simulate a writer that stores the key between our lookup and our save.
  original_get = scripts_repo.get_script

  async def _miss_then_race(lookup_key: ScriptKey):
    record = await original_get(lookup_key)
    if record is None:
      scripts_repo.records[key] = ScriptRecord(key=key, raw_content="raw", parsed_text="first writer", downloaded_at=datetime.now(UTC))
    return record

  scripts_repo.get_script = _miss_then_race

  assert await store.fetch("tt0903747", 1, 1) == "first writer"
  assert scripts_repo.records[key].parsed_text == "first writer"


@pytest.mark.anyio
async def test_cache_flavor_refreshes_expired_entries(scripts_repo, subtitles) -> None:
  key = ScriptKey(external_id="tt0903747", season_number=1, episode_number=1, language="en")
  long_ago = datetime.now(UTC) - timedelta(days=40)
  scripts_repo.records[key] = ScriptRecord(key=key, raw_content="old", parsed_text="stale text", downloaded_at=long_ago, expires_at=long_ago + timedelta(days=30))
  store = ScriptStore(scripts_repo, subtitles, ttl=timedelta(days=30))

  text = await store.fetch("tt0903747", 1, 1)

  assert text != "stale text"
  assert len(subtitles.calls) == 1
  refreshed = scripts_repo.records[key]
  assert refreshed.expires_at is not None
  assert refreshed.expires_at - refreshed.downloaded_at == timedelta(days=30)


@pytest.mark.anyio
async def test_purge_expired_only_applies_to_cache_flavor(scripts_repo, subtitles) -> None:
  now = datetime.now(UTC)
  expired = ScriptKey(external_id="tt1", season_number=1, episode_number=1, language="en")
  live = ScriptKey(external_id="tt2", season_number=1, episode_number=1, language="en")
  scripts_repo.records[expired] = ScriptRecord(key=expired, raw_content="r", parsed_text="p", downloaded_at=now - timedelta(days=31), expires_at=now - timedelta(days=1))
  scripts_repo.records[live] = ScriptRecord(key=live, raw_content="r", parsed_text="p", downloaded_at=now, expires_at=now + timedelta(days=30))

  assert await ScriptStore(scripts_repo, subtitles).purge_expired() == 0
  assert await ScriptStore(scripts_repo, subtitles, ttl=timedelta(days=30)).purge_expired() == 1
  assert list(scripts_repo.records) == [live]

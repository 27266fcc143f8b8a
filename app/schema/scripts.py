from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class EpisodeScriptRow(Base):
  """Permanent store of downloaded and parsed episode scripts."""

  __tablename__ = "episode_scripts"
  __table_args__ = (UniqueConstraint("external_id", "season_number", "episode_number", "language", name="ux_episode_scripts_key"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  external_id: Mapped[str] = mapped_column(String, nullable=False)
  season_number: Mapped[int] = mapped_column(Integer, nullable=False)
  episode_number: Mapped[int] = mapped_column(Integer, nullable=False)
  language: Mapped[str] = mapped_column(String(10), nullable=False)
  raw_content: Mapped[str] = mapped_column(Text, nullable=False)
  parsed_text: Mapped[str] = mapped_column(Text, nullable=False)
  downloaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CachedScriptRow(Base):
  """Bounded-TTL script cache; rows past expires_at are treated as misses."""

  __tablename__ = "cached_scripts"
  __table_args__ = (
    UniqueConstraint("external_id", "season_number", "episode_number", "language", name="ux_cached_scripts_key"),
    Index("ix_cached_scripts_expires_at", "expires_at"),
  )

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  external_id: Mapped[str] = mapped_column(String, nullable=False)
  season_number: Mapped[int] = mapped_column(Integer, nullable=False)
  episode_number: Mapped[int] = mapped_column(Integer, nullable=False)
  language: Mapped[str] = mapped_column(String(10), nullable=False)
  raw_content: Mapped[str] = mapped_column(Text, nullable=False)
  parsed_text: Mapped[str] = mapped_column(Text, nullable=False)
  downloaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

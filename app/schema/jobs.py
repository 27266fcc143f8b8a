from __future__ import annotations

from sqlalchemy import Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class GenerationJobRow(Base):
  __tablename__ = "generation_jobs"
  __table_args__ = (Index("ix_generation_jobs_status_created", "status", "created_at"),)

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  status: Mapped[str] = mapped_column(String, nullable=False)
  progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  current_step: Mapped[str | None] = mapped_column(String, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  result_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  request_json: Mapped[dict] = mapped_column(JSONB, nullable=False)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""))
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""))
  completed_at: Mapped[str | None] = mapped_column(String, nullable=True)

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import get_database_settings


class Base(DeclarativeBase):
  pass


engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def _database_url() -> str | None:
  """Build the SQLAlchemy database URL while keeping settings evaluation minimal."""
  settings = get_database_settings()
  database_url = settings.pg_dsn
  if database_url and database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

  return database_url


def get_db_engine() -> AsyncEngine | None:
  global engine
  settings = get_database_settings()
  database_url = _database_url()
  if engine is None and database_url:
    engine = create_async_engine(database_url, echo=settings.debug, future=True, connect_args={"timeout": settings.pg_connect_timeout})
  return engine


def get_session_factory() -> async_sessionmaker[AsyncSession] | None:
  global SessionLocal
  if SessionLocal is None:
    db_engine = get_db_engine()
    if db_engine:
      SessionLocal = async_sessionmaker(bind=db_engine, expire_on_commit=False, class_=AsyncSession)
  return SessionLocal


async def create_tables() -> None:
  """Create any missing tables for local development."""
  import app.schema  # noqa: F401

  db_engine = get_db_engine()
  if db_engine is None:
    raise RuntimeError("Database connection is not configured (REELINGO_PG_DSN is missing).")
  async with db_engine.begin() as connection:
    await connection.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
  global engine, SessionLocal
  if engine is not None:
    await engine.dispose()
  engine = None
  SessionLocal = None


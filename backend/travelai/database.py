"""Async SQLAlchemy engine and session factory over SQLite."""

import logging
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from travelai.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _enable_wal(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine; file-backed SQLite databases run in WAL mode."""
    engine = create_async_engine(url, **kwargs)
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        event.listen(engine.sync_engine, "connect", _enable_wal)
    return engine


engine = build_engine(settings.database_url)
async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db():
    async with async_session_factory() as session:
        yield session


async def init_db(target: AsyncEngine | None = None) -> None:
    """Create all tables, making the SQLite data directory first if needed."""
    target = target or engine
    parsed = make_url(str(target.url))
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    # Register models on the metadata
    import travelai.models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")

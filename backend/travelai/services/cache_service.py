"""SQLite-backed TTL cache for provider responses.

Entries are JSON documents stored under an opaque string key together with an
absolute expiry in epoch seconds. Expired rows stay in the table, invisible to
``get``, until the periodic sweep deletes them. The cache is advisory: storage
errors are logged and reported as a miss or a no-op, never raised.
"""

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from travelai.config import settings
from travelai.models.cache import CacheEntry

logger = logging.getLogger(__name__)

# TTLs in seconds
TTL_FLIGHTS = settings.cache_ttl_flights
TTL_HOTELS = settings.cache_ttl_hotels
TTL_SEARCH = settings.cache_ttl_search


class CacheService:
    """Key/value cache with per-entry expiry, backed by the ``cache`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._ready = False

    async def initialize(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> bool:
        """Probe the store; on failure the cache stays in degraded (no-op) mode."""
        if session_factory is not None:
            self._session_factory = session_factory
        if self._session_factory is None:
            self._ready = False
            return False
        try:
            async with self._session_factory() as session:
                await session.execute(select(func.count()).select_from(CacheEntry))
            self._ready = True
            logger.info("Cache store ready")
        except Exception as e:
            logger.warning(f"Cache store unavailable, caching disabled: {e}")
            self._ready = False
        return self._ready

    def is_ready(self) -> bool:
        return self._ready

    def _now(self) -> int:
        return int(self._clock())

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss, expiry or error."""
        if not self._ready:
            return None
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(CacheEntry.value).where(
                        CacheEntry.key == key,
                        CacheEntry.expires_at > self._now(),
                    )
                )
                raw = result.scalar_one_or_none()
        except Exception as e:
            logger.warning(f"Cache get failed for {key[:80]}: {e}")
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw

    async def set(self, key: str, value: Any, ttl: int = TTL_FLIGHTS) -> bool:
        """Insert or replace a value with a fresh expiry. Returns False on error."""
        if not self._ready:
            return False
        payload = json.dumps(value, default=str)
        expires_at = self._now() + ttl
        stmt = sqlite_insert(CacheEntry).values(key=key, value=payload, expires_at=expires_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CacheEntry.key],
            set_={"value": payload, "expires_at": expires_at, "created_at": func.now()},
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
            return True
        except Exception as e:
            logger.warning(f"Cache set failed for {key[:80]}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key."""
        if not self._ready:
            return False
        try:
            async with self._session_factory() as session:
                await session.execute(delete(CacheEntry).where(CacheEntry.key == key))
                await session.commit()
            return True
        except Exception as e:
            logger.warning(f"Cache delete failed for {key[:80]}: {e}")
            return False

    async def sweep_expired(self) -> int:
        """Physically remove expired rows. Returns the number removed."""
        if not self._ready:
            return 0
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(CacheEntry).where(CacheEntry.expires_at <= self._now())
                )
                await session.commit()
                count = result.rowcount or 0
        except Exception as e:
            logger.warning(f"Cache sweep failed: {e}")
            return 0
        if count:
            logger.info(f"Cache sweep removed {count} expired entries")
        return count

    async def clear(self) -> int:
        """Remove every entry, expired or not."""
        if not self._ready:
            return 0
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(CacheEntry))
                await session.commit()
                count = result.rowcount or 0
        except Exception as e:
            logger.warning(f"Cache clear failed: {e}")
            return 0
        logger.info(f"Cache cleared ({count} entries)")
        return count

    async def stats(self) -> dict:
        if not self._ready:
            return {"ready": False, "entries": 0, "expired": 0}
        try:
            async with self._session_factory() as session:
                total = await session.scalar(select(func.count()).select_from(CacheEntry))
                expired = await session.scalar(
                    select(func.count())
                    .select_from(CacheEntry)
                    .where(CacheEntry.expires_at <= self._now())
                )
        except Exception as e:
            logger.warning(f"Cache stats failed: {e}")
            return {"ready": self._ready, "entries": 0, "expired": 0}
        return {"ready": True, "entries": total or 0, "expired": expired or 0}

    # Typed key helpers

    def flights_key(self, params: dict) -> str:
        return f"flights:{json.dumps(params, sort_keys=True, default=str)}"

    def hotels_by_city_key(self, city_code: str, radius_km: int) -> str:
        return f"hotels_city:{city_code.upper()}:{radius_km}"

    def hotel_offers_key(self, params: dict) -> str:
        return f"hotel_offers:{json.dumps(params, sort_keys=True, default=str)}"

    def locations_key(self, keyword: str) -> str:
        return f"locations:{keyword.strip().lower()}"

    def search_key(self, query: str, options: dict) -> str:
        return f"search:{query}:{json.dumps(options, sort_keys=True, default=str)}"

    def destination_key(self, destination: str) -> str:
        return f"destination_info:{destination.strip().lower()}"


cache_service = CacheService()

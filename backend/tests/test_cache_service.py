import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from travelai.services.cache_service import CacheService


class TestCacheExpiry:
    """Entries are visible until their TTL passes."""

    @pytest.mark.asyncio
    async def test_get_returns_value_until_ttl_passes(self, cache, clock):
        await cache.set("flights:a", {"price": 100}, ttl=60)
        assert await cache.get("flights:a") == {"price": 100}

        clock.advance(59)
        assert await cache.get("flights:a") == {"price": 100}

        clock.advance(1)
        assert await cache.get("flights:a") is None

    @pytest.mark.asyncio
    async def test_expired_rows_stay_until_sweep(self, cache, clock):
        await cache.set("k1", [1, 2], ttl=10)
        await cache.set("k2", "plain text", ttl=1000)
        clock.advance(11)

        assert await cache.get("k1") is None
        stats = await cache.stats()
        assert stats == {"ready": True, "entries": 2, "expired": 1}

        removed = await cache.sweep_expired()
        assert removed == 1
        assert (await cache.stats())["entries"] == 1
        assert await cache.get("k2") == "plain text"

    @pytest.mark.asyncio
    async def test_sweep_with_nothing_expired(self, cache):
        await cache.set("k", 1, ttl=100)
        assert await cache.sweep_expired() == 0


class TestCacheWrites:
    @pytest.mark.asyncio
    async def test_overwrite_keeps_last_value_and_resets_expiry(self, cache, clock):
        await cache.set("k", "first", ttl=10)
        clock.advance(8)
        await cache.set("k", "second", ttl=10)
        clock.advance(8)

        assert await cache.get("k") == "second"
        assert (await cache.stats())["entries"] == 1

    @pytest.mark.asyncio
    async def test_delete(self, cache):
        await cache.set("k", {"a": 1}, ttl=100)
        assert await cache.delete("k") is True
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_clear_removes_everything(self, cache):
        for i in range(3):
            await cache.set(f"k{i}", i, ttl=100)
        assert await cache.clear() == 3
        assert await cache.get("k0") is None

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache):
        assert await cache.get("missing") is None


class TestDegradedMode:
    """An unavailable store turns every operation into a miss or no-op."""

    @pytest.mark.asyncio
    async def test_uninitialized_cache_is_noop(self):
        service = CacheService()
        assert service.is_ready() is False
        assert await service.set("k", 1) is False
        assert await service.get("k") is None
        assert await service.delete("k") is False
        assert await service.sweep_expired() == 0
        assert await service.clear() == 0
        assert (await service.stats())["ready"] is False

    @pytest.mark.asyncio
    async def test_initialize_fails_without_schema(self):
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        service = CacheService()
        try:
            ready = await service.initialize(async_sessionmaker(engine))
        finally:
            await engine.dispose()

        assert ready is False
        assert service.is_ready() is False
        assert await service.get("k") is None


class TestKeys:
    def test_flights_key_is_order_independent(self):
        service = CacheService()
        a = service.flights_key({"origin": "JFK", "destination": "LHR"})
        b = service.flights_key({"destination": "LHR", "origin": "JFK"})
        assert a == b
        assert a.startswith("flights:")

    def test_locations_key_is_case_insensitive(self):
        service = CacheService()
        assert service.locations_key(" London ") == service.locations_key("london")

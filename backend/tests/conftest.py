import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from travelai.config import Settings
from travelai.database import Base
from travelai.services.cache_service import CacheService
from tests.factories import FakeClock


@pytest.fixture
def settings_configured():
    """Settings with every provider credential present."""
    return Settings(
        amadeus_client_id="client-id",
        amadeus_client_secret="client-secret",
        searchapi_key="search-key",
        openai_api_key="",
        anthropic_api_key="",
        search_quota=100,
    )


@pytest.fixture
def settings_unconfigured():
    """Settings with no provider credentials."""
    return Settings(
        amadeus_client_id="",
        amadeus_client_secret="",
        searchapi_key="",
        openai_api_key="",
        anthropic_api_key="",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite with all tables created."""
    import travelai.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def cache(session_factory, clock):
    service = CacheService(clock=clock)
    await service.initialize(session_factory)
    return service


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session

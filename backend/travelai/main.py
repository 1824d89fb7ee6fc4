import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from travelai.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "travelai.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from travelai.database import async_session_factory, init_db
from travelai.exception_handlers import setup_exception_handlers
from travelai.routers import cache, flights, history, hotels, locations, recommendations, search
from travelai.services.amadeus_client import amadeus_client
from travelai.services.cache_service import cache_service
from travelai.services.web_search_client import web_search_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: schema, cache store, background sweep
    try:
        await init_db()
    except Exception as e:
        logger.error(f"Database initialization failed, cache disabled: {e}")
    else:
        await cache_service.initialize(async_session_factory)

    scheduler = None
    if settings.scheduler_enabled and cache_service.is_ready():
        try:
            scheduler = AsyncIOScheduler()

            async def _sweep_cache():
                count = await cache_service.sweep_expired()
                if count:
                    logger.info(f"Cache: {count} expired entries removed")

            scheduler.add_job(
                _sweep_cache,
                IntervalTrigger(minutes=settings.cache_sweep_interval_minutes),
                id="cache_sweep",
            )
            scheduler.start()
            logger.info("Background scheduler started")
        except Exception as e:
            logger.error(f"Scheduler failed to start: {e}")
            scheduler = None

    if not amadeus_client.is_configured:
        logger.warning("Amadeus credentials missing, flight and hotel search disabled")
    if not web_search_client.is_configured:
        logger.warning("SEARCHAPI_KEY missing, web enrichment disabled")

    yield

    # Shutdown
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
    await amadeus_client.close()
    await web_search_client.close()


app = FastAPI(
    title="TravelAI",
    description="Flight + hotel trip recommendations",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

app.include_router(locations.router, prefix="/api/locations", tags=["locations"])
app.include_router(flights.router, prefix="/api/flights", tags=["flights"])
app.include_router(hotels.router, prefix="/api/hotels", tags=["hotels"])
app.include_router(recommendations.router, prefix="/api/recommendations", tags=["recommendations"])
app.include_router(search.router, prefix="/api/search", tags=["search"])
app.include_router(history.router, prefix="/api", tags=["history"])
app.include_router(cache.router, prefix="/api/cache", tags=["cache"])


@app.get("/health")
@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "service": "travelai",
        "cacheReady": cache_service.is_ready(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

"""Cache router: inspect and clear the provider response cache."""

from fastapi import APIRouter, Depends

from travelai.dependencies import get_cache
from travelai.services.cache_service import CacheService

router = APIRouter()


@router.get("/stats")
async def cache_stats(cache: CacheService = Depends(get_cache)):
    return await cache.stats()


@router.delete("")
async def clear_cache(cache: CacheService = Depends(get_cache)):
    return {"cleared": await cache.clear()}

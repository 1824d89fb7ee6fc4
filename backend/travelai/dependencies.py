"""FastAPI dependency providers for the shared service instances."""

from travelai.services.amadeus_client import AmadeusClient, amadeus_client
from travelai.services.cache_service import CacheService, cache_service
from travelai.services.recommendation_orchestrator import (
    RecommendationOrchestrator,
    recommendation_orchestrator,
)
from travelai.services.web_search_client import WebSearchClient, web_search_client


def get_amadeus_client() -> AmadeusClient:
    return amadeus_client


def get_web_search_client() -> WebSearchClient:
    return web_search_client


def get_orchestrator() -> RecommendationOrchestrator:
    return recommendation_orchestrator


def get_cache() -> CacheService:
    return cache_service

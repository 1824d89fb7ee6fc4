"""SearchAPI client: quota-limited Google web search for trip enrichment."""

import logging
from datetime import date

import httpx
from pydantic import ValidationError

from travelai.config import Settings, settings
from travelai.schemas.search import KnowledgePanel, OrganicResult, WebSearchResult
from travelai.services.cache_service import CacheService, cache_service
from travelai.services.search_quota import SearchQuota, search_quota

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = {"engine": "google", "num": 10, "gl": "us", "hl": "en"}


class WebSearchError(Exception):
    """A web search could not be performed."""


class WebSearchUnavailable(WebSearchError):
    """No SearchAPI key is configured."""


class SearchQuotaExhausted(WebSearchError):
    """The process-wide search budget is spent."""


class WebSearchClient:
    """Adapter for SearchAPI.io. Cached results never count against the quota."""

    def __init__(
        self,
        config: Settings = settings,
        cache: CacheService = cache_service,
        quota: SearchQuota = search_quota,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._cache = cache
        self._quota = quota
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._config.searchapi_key)

    def remaining_searches(self) -> int:
        return self._quota.remaining()

    @property
    def max_searches(self) -> int:
        return self._quota.limit

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.provider_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def search(self, query: str, options: dict | None = None) -> WebSearchResult:
        """Run one web search.

        Raises:
            WebSearchUnavailable: no API key configured (checked before any I/O).
            SearchQuotaExhausted: quota is spent (checked before any I/O).
            WebSearchError: the provider call failed; the quota unit is returned.
        """
        opts = {**DEFAULT_OPTIONS, **(options or {})}
        key = self._cache.search_key(query, opts)
        cached = await self._cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: web search {query!r}")
            return WebSearchResult.model_validate(cached)

        if not self.is_configured:
            raise WebSearchUnavailable("Web search is not configured")
        if not self._quota.decrement_if_available():
            raise SearchQuotaExhausted("Search API quota exhausted")

        client = await self._get_client()
        try:
            resp = await client.get(
                self._config.searchapi_base_url,
                params={"api_key": self._config.searchapi_key, "q": query, **opts},
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            self._quota.release()
            logger.error(f"SearchAPI error {e.response.status_code} for {query!r}")
            raise WebSearchError(f"Search provider returned {e.response.status_code}") from e
        except httpx.RequestError as e:
            self._quota.release()
            logger.error(f"SearchAPI request error for {query!r}: {e}")
            raise WebSearchError(f"Search provider request failed: {e}") from e
        except ValueError as e:
            self._quota.release()
            raise WebSearchError("Search provider returned invalid JSON") from e

        try:
            result = self.normalize(data)
        except (ValidationError, TypeError, AttributeError) as e:
            logger.error(f"SearchAPI payload for {query!r} could not be normalized: {e}")
            raise WebSearchError("Search provider returned an unexpected payload") from e

        await self._cache.set(key, result.to_wire(), self._config.cache_ttl_search)
        logger.info(f"Web search {query!r}: {len(result.organic)} results, {self._quota.remaining()} searches left")
        return result

    async def search_destination_info(self, destination: str) -> WebSearchResult:
        """Travel-guide style overview of a destination."""
        key = self._cache.destination_key(destination)
        cached = await self._cache.get(key)
        if cached is not None:
            return WebSearchResult.model_validate(cached)

        result = await self.search(
            f"{destination} travel guide top attractions things to do best time to visit"
        )
        await self._cache.set(key, result.to_wire(), self._config.cache_ttl_search)
        return result

    async def search_hotel_info(
        self,
        destination: str,
        check_in: date,
        check_out: date,
        budget: float | None = None,
    ) -> WebSearchResult:
        """Web results about where to stay for the given dates."""
        query = f"best hotels in {destination} {check_in:%B %Y}"
        if budget:
            query += f" under {budget:.0f} per night"
        nights = max(1, (check_out - check_in).days)
        query += f" {nights} nights"
        return await self.search(query)

    @staticmethod
    def normalize(data: dict) -> WebSearchResult:
        organic = [
            OrganicResult(
                title=r.get("title") or "",
                link=r.get("link") or "",
                snippet=r.get("snippet") or "",
                displayed_link=r.get("displayed_link"),
                position=r.get("position"),
            )
            for r in data.get("organic_results") or []
        ]

        knowledge = None
        graph = data.get("knowledge_graph")
        if graph:
            knowledge = KnowledgePanel(
                title=graph.get("title"),
                type=graph.get("type"),
                description=graph.get("description"),
                attributes=graph.get("attributes"),
            )

        related = [
            r.get("query", "")
            for r in data.get("related_searches") or []
            if r.get("query")
        ]
        return WebSearchResult(organic=organic, knowledge=knowledge, related_searches=related)

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


web_search_client = WebSearchClient()

from typing import Any

from travelai.schemas.common import CamelModel


class OrganicResult(CamelModel):
    title: str = ""
    link: str = ""
    snippet: str = ""
    displayed_link: str | None = None
    position: int | None = None


class KnowledgePanel(CamelModel):
    title: str | None = None
    type: str | None = None
    description: str | None = None
    attributes: dict[str, Any] | None = None


class WebSearchResult(CamelModel):
    organic: list[OrganicResult] = []
    knowledge: KnowledgePanel | None = None
    related_searches: list[str] = []


class EnrichmentResult(CamelModel):
    query: str
    results: WebSearchResult


class SearchStatus(CamelModel):
    remaining_searches: int
    max_searches: int

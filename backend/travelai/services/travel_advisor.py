"""Travel advisor: LLM calls behind the recommendation flow.

Three operations:
- build_smart_search_queries(): which web searches are worth the remaining quota
- analyze_and_recommend(): ranked flight + hotel packages with insights
- generate_travel_plan(): day-by-day itinerary for a chosen package

The analysis reply is validated against ``AnalysisResult``; anything that does
not fit raises ``AnalysisError`` so the caller can fall back to rule-based
recommendations.
"""

import json
import logging
from datetime import date
from typing import Any

from pydantic import ValidationError

from travelai.schemas.flight import FlightOption
from travelai.schemas.hotel import HotelOption
from travelai.schemas.recommendation import AnalysisResult
from travelai.schemas.search import EnrichmentResult, WebSearchResult
from travelai.services.llm_client import LLMClient, LLMUnavailableError, llm_client
from travelai.services.prompts import load_prompt

logger = logging.getLogger(__name__)

MAX_PROPOSED_QUERIES = 3
MAX_RECOMMENDATIONS = 5

# Load prompts once at module level
_ANALYST_PROMPT = load_prompt("travel_analyst.md")
_OPTIMIZER_PROMPT = load_prompt("search_optimizer.md")
_PLANNER_PROMPT = load_prompt("travel_planner.md")


class AnalysisError(Exception):
    """The LLM analysis could not be obtained or did not match the expected shape."""


class TravelAdvisor:
    def __init__(self, llm: LLMClient = llm_client):
        self._llm = llm

    async def build_smart_search_queries(self, context: dict[str, Any], remaining_searches: int) -> list[str]:
        """Ask the LLM for up to three enrichment queries. Returns [] on any failure."""
        user = json.dumps({**context, "remainingSearches": remaining_searches}, default=str)
        try:
            data = await self._llm.complete_json(
                _OPTIMIZER_PROMPT, user, max_tokens=500, temperature=0.5
            )
        except (LLMUnavailableError, ValueError) as e:
            logger.warning(f"Search query planning failed: {e}")
            return []

        queries = data.get("queries") or []
        if not isinstance(queries, list):
            return []
        cleaned = [q.strip() for q in queries if isinstance(q, str) and q.strip()]
        return cleaned[:MAX_PROPOSED_QUERIES]

    async def analyze_and_recommend(
        self,
        *,
        flights: list[FlightOption],
        hotels: list[HotelOption],
        web_results: list[EnrichmentResult] | None,
        context: dict[str, Any],
        preferences: dict[str, Any],
        best_deal: FlightOption | None = None,
        price_by_date: dict[date, float] | None = None,
    ) -> AnalysisResult:
        payload = {
            "searchContext": context,
            "preferences": preferences,
            "flights": [f.to_wire() for f in flights],
            "hotels": [h.to_wire() for h in hotels],
            "webSearchResults": [r.to_wire() for r in web_results] if web_results else None,
            "bestDeal": best_deal.to_wire() if best_deal else None,
            "priceByDate": {d.isoformat(): p for d, p in (price_by_date or {}).items()} or None,
        }
        try:
            data = await self._llm.complete_json(
                _ANALYST_PROMPT,
                json.dumps(payload, default=str),
                max_tokens=2000,
                temperature=0.7,
            )
        except LLMUnavailableError as e:
            raise AnalysisError(str(e)) from e
        except ValueError as e:
            raise AnalysisError(f"Analysis reply is not valid JSON: {e}") from e

        recommendations = data.get("recommendations")
        if isinstance(recommendations, list):
            data["recommendations"] = recommendations[:MAX_RECOMMENDATIONS]
        try:
            result = AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise AnalysisError(f"Analysis reply has an unexpected shape: {e.error_count()} errors") from e
        if not result.recommendations:
            raise AnalysisError("Analysis reply contains no recommendations")

        logger.info(f"LLM analysis returned {len(result.recommendations)} recommendations")
        return result

    async def generate_travel_plan(
        self,
        recommendation: dict[str, Any],
        destination_info: WebSearchResult | None,
    ) -> str:
        """Markdown itinerary from the LLM. Raises LLMUnavailableError on failure."""
        user = json.dumps(
            {
                "recommendation": recommendation,
                "destinationInfo": destination_info.to_wire() if destination_info else None,
            },
            default=str,
        )
        return await self._llm.complete(_PLANNER_PROMPT, user, max_tokens=2500, temperature=0.8)

    @staticmethod
    def fallback_plan(recommendation: dict[str, Any], destination: str | None) -> str:
        """Plain itinerary outline built from the package fields alone."""
        place = destination or "your destination"
        dates = recommendation.get("suggestedDates") or {}
        lines = [f"# Trip to {place}", ""]
        if dates.get("departureDate"):
            span = dates["departureDate"]
            if dates.get("returnDate"):
                span += f" to {dates['returnDate']}"
            lines += [f"Travel dates: {span}", ""]

        flight = recommendation.get("flight") or {}
        outbound = flight.get("outbound") or {}
        if outbound:
            departure = outbound.get("departure") or {}
            arrival = outbound.get("arrival") or {}
            lines.append(
                f"- Outbound: {departure.get('airport', '?')} {departure.get('time', '')} "
                f"-> {arrival.get('airport', '?')} {arrival.get('time', '')}"
            )
        hotel = recommendation.get("hotel") or {}
        if hotel.get("name"):
            lines.append(f"- Stay: {hotel['name']}")
        if recommendation.get("totalPrice") is not None:
            lines.append(f"- Estimated total: {recommendation['totalPrice']}")

        lines += [
            "",
            "A detailed day-by-day plan is unavailable right now. Check local attractions, "
            "transport from the airport and opening hours before you travel.",
        ]
        return "\n".join(lines)


travel_advisor = TravelAdvisor()

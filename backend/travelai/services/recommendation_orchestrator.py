"""Recommendation orchestrator: builds ranked flight + hotel packages for a trip.

Steps run strictly in order for each request:
1. Flights: date-window sampling (range mode) or a single search (specific dates)
2. Hotels for the destination city, derived from the chosen dates
3. Web enrichment, only while search quota remains
4. LLM analysis, replaced by a rule-based ranking when it fails
5. Join each recommendation back onto the full flight and hotel records

Provider failures never abort the request: they degrade to empty or partial
data and show up in the response meta.
"""

import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any

from travelai.config import Settings, settings
from travelai.data.airports import resolve_city
from travelai.schemas.flight import FlightOption, FlightSearchCriteria
from travelai.schemas.hotel import HotelOption
from travelai.schemas.recommendation import (
    AnalysisResult,
    AnalysisSource,
    BestDeal,
    Insights,
    PlanResponse,
    Recommendation,
    RecommendationMeta,
    RecommendationPackage,
    RecommendationRequest,
    RecommendationResponse,
    SearchPeriod,
    SuggestedDates,
)
from travelai.schemas.search import EnrichmentResult
from travelai.services.amadeus_client import AmadeusClient, AmadeusError, amadeus_client
from travelai.services.llm_client import LLMUnavailableError
from travelai.services.travel_advisor import AnalysisError, TravelAdvisor, travel_advisor
from travelai.services.web_search_client import WebSearchClient, WebSearchError, web_search_client

logger = logging.getLogger(__name__)

FALLBACK_TOP_N = 5
FALLBACK_BASE_SCORE = 70
FALLBACK_SCORE_STEP = 5


class RecommendationOrchestrator:
    def __init__(
        self,
        amadeus: AmadeusClient = amadeus_client,
        web_search: WebSearchClient = web_search_client,
        advisor: TravelAdvisor = travel_advisor,
        config: Settings = settings,
    ):
        self._amadeus = amadeus
        self._web_search = web_search
        self._advisor = advisor
        self._config = config

    async def recommend(self, request: RecommendationRequest) -> RecommendationResponse:
        started = time.monotonic()
        mode = request.search_mode

        # 1. Flights
        best_deal: FlightOption | None = None
        price_by_date: dict[date, float] = {}
        if mode == "date_range":
            result = await self._amadeus.search_flights_in_range(
                request.origin,
                request.destination,
                request.period_start,
                request.period_end,
                request.trip_duration,
                adults=request.adults,
                currency=self._config.default_currency,
            )
            flights = result.flights
            best_deal = result.best_deal
            price_by_date = result.price_by_date
            if best_deal and best_deal.search_date:
                best_date = best_deal.search_date
                search_dates = SuggestedDates(
                    recommended=best_date,
                    departure_date=best_date,
                    return_date=best_date + timedelta(days=request.trip_duration),
                )
            else:
                search_dates = SuggestedDates()
        else:
            flights = await self._search_specific_dates(request)
            search_dates = SuggestedDates(
                departure_date=request.departure_date,
                return_date=request.return_date,
            )

        # Stable sort: equal prices keep provider order
        flights = sorted(flights, key=lambda f: f.price.total)

        # 2. Hotels
        city_code, city_name = resolve_city(request.destination)
        hotels = await self._search_hotels(request, search_dates, city_code)

        context = self._search_context(request, search_dates, city_name)

        # 3. Enrichment
        web_results = await self._enrich(context)

        # 4. Analysis
        analysis, source = await self._analyze(
            request, flights, hotels, web_results, context, best_deal, price_by_date, search_dates
        )

        # 5. Join
        packages = self._join(analysis.recommendations, flights, hotels, search_dates)

        logger.info(
            f"Recommendations {request.origin}->{request.destination} ({mode}): "
            f"{len(flights)} flights, {len(hotels)} hotels, {len(packages)} packages "
            f"[{source}] in {time.monotonic() - started:.1f}s"
        )

        return RecommendationResponse(
            recommendations=packages,
            insights=analysis.insights,
            summary=analysis.summary,
            search_period=(
                SearchPeriod(
                    start=request.period_start,
                    end=request.period_end,
                    trip_duration=request.trip_duration,
                )
                if mode == "date_range"
                else None
            ),
            best_deal=(
                BestDeal(deal_date=best_deal.search_date, price=best_deal.price, flight=best_deal)
                if best_deal
                else None
            ),
            price_by_date=price_by_date or None,
            meta=RecommendationMeta(
                flights_analyzed=len(flights),
                hotels_analyzed=len(hotels),
                web_searches_used=len(web_results) if web_results else 0,
                remaining_searches=self._web_search.remaining_searches(),
                generated_at=datetime.now(timezone.utc),
                search_mode=mode,
                analysis_source=source,
            ),
        )

    async def _search_specific_dates(self, request: RecommendationRequest) -> list[FlightOption]:
        criteria = FlightSearchCriteria(
            origin=request.origin,
            destination=request.destination,
            departure_date=request.departure_date,
            return_date=request.return_date,
            adults=request.adults,
            currency=self._config.default_currency,
            max_results=self._config.flight_max_results,
        )
        try:
            return await self._amadeus.search_flights(criteria)
        except (AmadeusError, ValueError) as e:
            logger.warning(f"Flight search failed, continuing without flights: {e}")
            return []

    async def _search_hotels(
        self,
        request: RecommendationRequest,
        search_dates: SuggestedDates,
        city_code: str,
    ) -> list[HotelOption]:
        check_in = search_dates.departure_date or search_dates.recommended or request.period_start
        check_out = search_dates.return_date or check_in + timedelta(days=request.trip_duration)
        if check_out <= check_in:
            check_out = check_in + timedelta(days=1)
        try:
            return await self._amadeus.search_hotels(
                city_code,
                check_in,
                check_out,
                adults=request.adults,
                currency=self._config.default_currency,
            )
        except (AmadeusError, ValueError) as e:
            logger.warning(f"Hotel search failed for {city_code}, continuing without hotels: {e}")
            return []

    def _search_context(
        self,
        request: RecommendationRequest,
        search_dates: SuggestedDates,
        city_name: str | None,
    ) -> dict[str, Any]:
        return {
            "origin": request.origin,
            "destination": request.destination,
            "destinationCity": city_name or request.destination,
            "searchMode": request.search_mode,
            "periodStart": request.period_start,
            "periodEnd": request.period_end,
            "tripDuration": request.trip_duration,
            "departureDate": search_dates.departure_date or search_dates.recommended,
            "returnDate": search_dates.return_date,
            "adults": request.adults,
            "budget": request.budget,
            "priorities": request.priorities,
            "travelStyle": request.travel_style,
            "interests": request.interests,
        }

    async def _enrich(self, context: dict[str, Any]) -> list[EnrichmentResult] | None:
        """Run the LLM-proposed web searches. None when enrichment was skipped."""
        remaining = self._web_search.remaining_searches()
        if remaining <= 0 or not self._web_search.is_configured:
            return None

        queries = await self._advisor.build_smart_search_queries(context, remaining)
        if not queries:
            return None

        outcomes: list[tuple[str, EnrichmentResult | Exception]] = []
        for query in queries[: self._config.max_enrichment_queries]:
            try:
                result = await self._web_search.search(query)
                outcomes.append((query, EnrichmentResult(query=query, results=result)))
            except (WebSearchError, ValueError) as e:
                outcomes.append((query, e))

        results = []
        for query, outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.warning(f"Enrichment search {query!r} skipped: {outcome}")
                continue
            results.append(outcome)
        return results

    async def _analyze(
        self,
        request: RecommendationRequest,
        flights: list[FlightOption],
        hotels: list[HotelOption],
        web_results: list[EnrichmentResult] | None,
        context: dict[str, Any],
        best_deal: FlightOption | None,
        price_by_date: dict[date, float],
        search_dates: SuggestedDates,
    ) -> tuple[AnalysisResult, AnalysisSource]:
        try:
            analysis = await self._advisor.analyze_and_recommend(
                flights=flights[: self._config.llm_max_flights],
                hotels=hotels[: self._config.llm_max_hotels],
                web_results=web_results,
                context=context,
                preferences=request.preferences,
                best_deal=best_deal,
                price_by_date=price_by_date,
            )
            return analysis, "llm"
        except AnalysisError as e:
            logger.warning(f"LLM analysis failed, using fallback: {e}")
            return (
                build_fallback_analysis(flights, hotels, request, search_dates, best_deal),
                "fallback",
            )

    @staticmethod
    def _join(
        recommendations: list[Recommendation],
        flights: list[FlightOption],
        hotels: list[HotelOption],
        search_dates: SuggestedDates,
    ) -> list[RecommendationPackage]:
        flights_by_id: dict[str, FlightOption] = {}
        for flight in flights:
            flights_by_id.setdefault(flight.id, flight)
        hotels_by_id: dict[str, HotelOption] = {}
        for hotel in hotels:
            hotels_by_id.setdefault(hotel.id, hotel)

        packages = []
        for rec in recommendations:
            flight = flights_by_id.get(rec.flight_id) if rec.flight_id else None
            hotel = hotels_by_id.get(rec.hotel_id) if rec.hotel_id else None
            if rec.flight_id and flight is None:
                logger.debug(f"Recommendation {rec.rank} names unknown flight {rec.flight_id}")
            packages.append(
                RecommendationPackage.model_validate(
                    {
                        **rec.model_dump(exclude={"suggested_dates"}),
                        "suggested_dates": rec.suggested_dates or search_dates,
                        "flight": flight,
                        "hotel": hotel,
                    }
                )
            )
        return packages

    async def generate_plan(self, recommendation: dict[str, Any], destination: str | None) -> PlanResponse:
        """Itinerary for a chosen package, with destination info while quota lasts."""
        destination_info = None
        if destination and self._web_search.remaining_searches() > 0:
            try:
                destination_info = await self._web_search.search_destination_info(destination)
            except WebSearchError as e:
                logger.warning(f"Destination info for {destination} unavailable: {e}")

        source: AnalysisSource = "llm"
        try:
            plan = await self._advisor.generate_travel_plan(recommendation, destination_info)
        except LLMUnavailableError as e:
            logger.warning(f"Travel plan generation failed, using outline: {e}")
            plan = self._advisor.fallback_plan(recommendation, destination)
            source = "fallback"

        return PlanResponse(
            plan=plan,
            destination=destination,
            generated_at=datetime.now(timezone.utc),
            source=source,
        )


def build_fallback_analysis(
    flights: list[FlightOption],
    hotels: list[HotelOption],
    request: RecommendationRequest,
    search_dates: SuggestedDates,
    best_deal: FlightOption | None = None,
) -> AnalysisResult:
    """Rule-based packages: the cheapest flights paired with the first hotel."""
    hotel = hotels[0] if hotels else None
    hotel_total = hotel.offers[0].price.total if hotel and hotel.offers else 0.0

    recommendations = []
    for index, flight in enumerate(flights[:FALLBACK_TOP_N]):
        if flight.search_date:
            dates = SuggestedDates(
                departure_date=flight.search_date,
                return_date=flight.search_date + timedelta(days=request.trip_duration),
            )
        else:
            dates = search_dates
        recommendations.append(
            Recommendation(
                rank=index + 1,
                flight_id=flight.id,
                hotel_id=hotel.id if hotel else None,
                total_price=round(flight.price.total + hotel_total, 2),
                value_score=FALLBACK_BASE_SCORE - index * FALLBACK_SCORE_STEP,
                reasoning=f"Flight option {index + 1} - {flight.price.currency} {flight.price.total:.2f}",
                pros=["Direct booking available"],
                cons=["AI analysis unavailable"],
                best_for="General travelers",
                suggested_dates=dates,
            )
        )

    if flights:
        prices = [f.price.total for f in flights]
        price_analysis = (
            f"Found {len(flights)} flight options. "
            f"Prices range from {min(prices):.2f} to {max(prices):.2f} {flights[0].price.currency}."
        )
    else:
        price_analysis = "No flight options were found for this search."

    if request.search_mode == "date_range":
        best_date = best_deal.search_date.isoformat() if best_deal and best_deal.search_date else "various dates"
        timing_advice = f"Best prices found around {best_date} within your selected period."
    else:
        timing_advice = "Book early for best prices."

    return AnalysisResult(
        recommendations=recommendations,
        insights=Insights(price_analysis=price_analysis, timing_advice=timing_advice, warnings=[]),
        summary=(
            f"Found {len(flights)} flights and {len(hotels)} hotels "
            f"for your trip to {request.destination}."
        ),
    )


recommendation_orchestrator = RecommendationOrchestrator()

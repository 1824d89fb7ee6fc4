from datetime import date

import pytest

from travelai.schemas.recommendation import RecommendationRequest, SuggestedDates
from travelai.services.amadeus_client import AmadeusClient
from travelai.services.cache_service import CacheService
from travelai.services.llm_client import LLMUnavailableError
from travelai.services.recommendation_orchestrator import (
    RecommendationOrchestrator,
    build_fallback_analysis,
)
from travelai.services.search_quota import SearchQuota
from travelai.services.travel_advisor import TravelAdvisor
from travelai.services.web_search_client import WebSearchClient
from tests.factories import FakeAmadeus, FakeSearchApi, ScriptedLLM, analysis_reply, make_flight, make_hotel

HOTEL_LIST_PATH = "/v1/reference-data/locations/hotels/by-city"
FLIGHT_PATH = "/v2/shopping/flight-offers"


class PlanlessLLM(ScriptedLLM):
    async def complete(self, system: str, user: str, **kwargs) -> str:
        raise LLMUnavailableError("All LLM providers failed")


def build(settings, amadeus=None, search=None, llm=None, quota=None):
    amadeus = amadeus or FakeAmadeus(prices_by_date={"2025-06-01": [450.0, 390.0]})
    search = search or FakeSearchApi()
    cache = CacheService()
    return RecommendationOrchestrator(
        amadeus=AmadeusClient(config=settings, cache=cache, transport=amadeus.transport),
        web_search=WebSearchClient(
            config=settings,
            cache=cache,
            quota=quota if quota is not None else SearchQuota(100),
            transport=search.transport,
        ),
        advisor=TravelAdvisor(llm=llm or ScriptedLLM()),
        config=settings,
    )


def specific_request(**kwargs):
    return RecommendationRequest.model_validate(
        {"origin": "jfk", "destination": "lhr", "departureDate": "2025-06-01", "returnDate": "2025-06-08", **kwargs}
    )


class TestSpecificDates:
    @pytest.mark.asyncio
    async def test_llm_packages(self, settings_configured):
        orchestrator = build(settings_configured)

        response = await orchestrator.recommend(specific_request())

        assert 1 <= len(response.recommendations) <= 5
        assert response.meta.search_mode == "specific_dates"
        assert response.meta.analysis_source == "llm"
        assert response.meta.flights_analyzed == 2
        assert response.meta.hotels_analyzed == 2
        assert response.search_period is None
        assert response.best_deal is None
        assert response.price_by_date is None

        first = response.recommendations[0]
        assert first.flight is not None
        assert first.flight.id == first.flight_id
        assert first.flight.price.total == 390.0
        assert first.hotel is not None and first.hotel.id == "HTL1"
        assert first.suggested_dates.departure_date == date(2025, 6, 1)

    @pytest.mark.asyncio
    async def test_unknown_ids_join_to_none(self, settings_configured):
        llm = ScriptedLLM(analysis=analysis_reply(["does-not-exist"], "NOPE"))
        response = await build(settings_configured, llm=llm).recommend(specific_request())

        assert len(response.recommendations) == 1
        package = response.recommendations[0]
        assert package.flight_id == "does-not-exist"
        assert package.flight is None
        assert package.hotel is None

    @pytest.mark.asyncio
    async def test_hotel_failure_is_tolerated(self, settings_configured):
        amadeus = FakeAmadeus(prices_by_date={"2025-06-01": [400.0]}, hotel_status=500)
        response = await build(settings_configured, amadeus=amadeus).recommend(specific_request())

        assert response.meta.hotels_analyzed == 0
        assert response.meta.flights_analyzed == 1
        assert response.recommendations[0].hotel is None

    @pytest.mark.asyncio
    async def test_hotels_searched_by_city_code(self, settings_configured):
        amadeus = FakeAmadeus(prices_by_date={"2025-06-01": [400.0]})
        await build(settings_configured, amadeus=amadeus).recommend(specific_request())

        hotel_request = next(r for r in amadeus.requests if r.url.path == HOTEL_LIST_PATH)
        assert hotel_request.url.params["cityCode"] == "LON"


class TestDateRange:
    @pytest.mark.asyncio
    async def test_range_response_fields(self, settings_configured):
        amadeus = FakeAmadeus(
            prices_by_date={
                "2025-06-01": [520.0],
                "2025-06-04": [480.0, 610.0],
                "2025-06-07": [350.0],
                "2025-06-10": [455.0],
            }
        )
        request = RecommendationRequest.model_validate(
            {"origin": "JFK", "destination": "LHR", "periodStart": "2025-06-01", "periodEnd": "2025-06-20", "tripDuration": 7}
        )

        response = await build(settings_configured, amadeus=amadeus).recommend(request)

        assert response.meta.search_mode == "date_range"
        assert response.search_period.start == date(2025, 6, 1)
        assert response.search_period.end == date(2025, 6, 20)
        assert response.search_period.trip_duration == 7
        assert response.best_deal is not None
        assert response.best_deal.deal_date == date(2025, 6, 7)
        assert response.best_deal.price.total == 350.0
        assert response.price_by_date == {
            date(2025, 6, 1): 520.0,
            date(2025, 6, 4): 480.0,
            date(2025, 6, 7): 350.0,
            date(2025, 6, 10): 455.0,
        }
        # stride 3 across a 20-day window
        assert amadeus.count(FLIGHT_PATH) == 7

        hotel_offers = next(r for r in amadeus.requests if r.url.path == "/v3/shopping/hotel-offers")
        assert hotel_offers.url.params["checkInDate"] == "2025-06-07"
        assert hotel_offers.url.params["checkOutDate"] == "2025-06-14"

        wire = response.to_wire()
        assert wire["bestDeal"]["date"] == "2025-06-07"
        assert wire["priceByDate"]["2025-06-07"] == 350.0

    @pytest.mark.asyncio
    async def test_failed_dates_do_not_abort(self, settings_configured):
        amadeus = FakeAmadeus(
            prices_by_date={"2025-06-01": [300.0], "2025-06-04": [200.0]},
            failing_dates={"2025-06-04"},
        )
        request = RecommendationRequest.model_validate(
            {"origin": "JFK", "destination": "LHR", "periodStart": "2025-06-01", "periodEnd": "2025-06-05"}
        )

        response = await build(settings_configured, amadeus=amadeus).recommend(request)

        assert response.best_deal.deal_date == date(2025, 6, 1)
        assert list(response.price_by_date) == [date(2025, 6, 1)]


class TestFallback:
    @pytest.mark.asyncio
    async def test_fallback_when_llm_unavailable(self, settings_configured):
        amadeus = FakeAmadeus(prices_by_date={"2025-06-01": [520.0, 410.0, 480.0, 390.0, 610.0, 450.0]})
        llm = ScriptedLLM(fail_analysis=LLMUnavailableError("No LLM provider configured"))

        response = await build(settings_configured, amadeus=amadeus, llm=llm).recommend(specific_request())

        assert response.meta.analysis_source == "fallback"
        prices = [p.flight.price.total for p in response.recommendations]
        assert prices == [390.0, 410.0, 450.0, 480.0, 520.0]
        assert [p.value_score for p in response.recommendations] == [70, 65, 60, 55, 50]
        assert [p.rank for p in response.recommendations] == [1, 2, 3, 4, 5]
        first = response.recommendations[0]
        assert first.total_price == 690.0
        assert first.reasoning == "Flight option 1 - EUR 390.00"
        assert first.pros == ["Direct booking available"]
        assert first.cons == ["AI analysis unavailable"]
        assert first.best_for == "General travelers"

    @pytest.mark.asyncio
    async def test_fallback_with_no_flights(self, settings_configured):
        amadeus = FakeAmadeus(prices_by_date={})
        llm = ScriptedLLM(fail_analysis=LLMUnavailableError("down"))

        response = await build(settings_configured, amadeus=amadeus, llm=llm).recommend(specific_request())

        assert response.recommendations == []
        assert response.meta.analysis_source == "fallback"
        assert response.insights.price_analysis == "No flight options were found for this search."

    def test_fallback_is_deterministic(self):
        flights = [make_flight(f"F{i}", price) for i, price in enumerate([300.0, 200.0, 200.0, 100.0])]
        flights = sorted(flights, key=lambda f: f.price.total)
        request = specific_request()

        first = build_fallback_analysis(flights, [make_hotel("H1", 500.0)], request, SuggestedDates())
        second = build_fallback_analysis(flights, [make_hotel("H1", 500.0)], request, SuggestedDates())

        assert first == second
        assert [r.flight_id for r in first.recommendations] == ["F3", "F1", "F2", "F0"]
        assert [r.total_price for r in first.recommendations] == [600.0, 700.0, 700.0, 800.0]

    def test_fallback_dates_follow_search_date(self):
        request = RecommendationRequest.model_validate(
            {"origin": "JFK", "destination": "LHR", "periodStart": "2025-06-01", "periodEnd": "2025-06-20", "tripDuration": 5}
        )
        flight = make_flight("F1", 250.0, search_date=date(2025, 6, 10))

        result = build_fallback_analysis([flight], [], request, SuggestedDates(), best_deal=flight)

        dates = result.recommendations[0].suggested_dates
        assert dates.departure_date == date(2025, 6, 10)
        assert dates.return_date == date(2025, 6, 15)
        assert result.recommendations[0].hotel_id is None
        assert "2025-06-10" in result.insights.timing_advice


class TestEnrichment:
    @pytest.mark.asyncio
    async def test_at_most_two_queries_and_failures_skipped(self, settings_configured):
        search = FakeSearchApi(failing_queries={"q1"})
        llm = ScriptedLLM(queries=["q1", "q2", "q3"])
        quota = SearchQuota(100)

        response = await build(settings_configured, search=search, llm=llm, quota=quota).recommend(
            specific_request()
        )

        assert search.queries() == ["q1", "q2"]
        assert response.meta.web_searches_used == 1
        assert response.meta.remaining_searches == 99
        analysis_payload = llm.calls[-1]
        assert [r["query"] for r in analysis_payload["webSearchResults"]] == ["q2"]

    @pytest.mark.asyncio
    async def test_no_planning_when_quota_spent(self, settings_configured):
        search = FakeSearchApi()
        llm = ScriptedLLM(queries=["q1"])

        response = await build(settings_configured, search=search, llm=llm, quota=SearchQuota(0)).recommend(
            specific_request()
        )

        assert search.requests == []
        assert all("flights" in call for call in llm.calls)
        assert response.meta.web_searches_used == 0
        assert response.meta.remaining_searches == 0

    @pytest.mark.asyncio
    async def test_unreadable_search_payload_is_skipped(self, settings_configured):
        search = FakeSearchApi(payload={"organic_results": [{"title": "Guide", "position": "first"}]})
        llm = ScriptedLLM(queries=["q1", "q2"])

        response = await build(settings_configured, search=search, llm=llm).recommend(specific_request())

        assert search.queries() == ["q1", "q2"]
        assert response.meta.web_searches_used == 0
        assert response.meta.analysis_source == "llm"
        assert llm.calls[-1]["webSearchResults"] is None

    @pytest.mark.asyncio
    async def test_null_titles_still_enrich(self, settings_configured):
        search = FakeSearchApi(
            payload={"organic_results": [{"title": None, "snippet": None, "link": "https://example.com"}]}
        )
        llm = ScriptedLLM(queries=["q1", "q2"])

        response = await build(settings_configured, search=search, llm=llm).recommend(specific_request())

        assert response.meta.web_searches_used == 2


class TestGeneratePlan:
    @pytest.mark.asyncio
    async def test_llm_plan_with_destination_info(self, settings_configured):
        search = FakeSearchApi()
        llm = ScriptedLLM()
        orchestrator = build(settings_configured, search=search, llm=llm)

        plan = await orchestrator.generate_plan({"rank": 1, "totalPrice": 900}, "London")

        assert plan.source == "llm"
        assert plan.plan.startswith("# Day 1")
        assert plan.destination == "London"
        assert len(search.requests) == 1
        assert llm.calls[-1]["destinationInfo"]["organic"][0]["title"].startswith("Result for London")

    @pytest.mark.asyncio
    async def test_fallback_outline(self, settings_configured):
        search = FakeSearchApi(status=503)
        orchestrator = build(settings_configured, search=search, llm=PlanlessLLM())

        plan = await orchestrator.generate_plan({"totalPrice": 900, "hotel": {"name": "Hotel HTL1"}}, "London")

        assert plan.source == "fallback"
        assert plan.plan.startswith("# Trip to London")
        assert "Hotel HTL1" in plan.plan

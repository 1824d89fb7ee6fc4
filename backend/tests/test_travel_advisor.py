import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from travelai.services.llm_client import LLMClient, LLMUnavailableError, strip_code_fences
from travelai.services.travel_advisor import AnalysisError, TravelAdvisor
from tests.factories import analysis_reply, make_flight, make_hotel


def advisor_returning(text: str) -> TravelAdvisor:
    """Advisor over a real LLMClient whose completion is stubbed."""
    llm = LLMClient.__new__(LLMClient)
    llm.complete = AsyncMock(return_value=text)
    return TravelAdvisor(llm=llm)


async def analyze(advisor: TravelAdvisor):
    return await advisor.analyze_and_recommend(
        flights=[make_flight("F1", 400.0), make_flight("F2", 450.0)],
        hotels=[make_hotel("H1", 700.0)],
        web_results=None,
        context={"origin": "JFK", "destination": "LHR"},
        preferences={},
    )


class TestStripCodeFences:
    def test_fenced_json(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestAnalyzeAndRecommend:
    @pytest.mark.asyncio
    async def test_parses_fenced_reply(self):
        reply = "```json\n" + json.dumps(analysis_reply(["F1", "F2"], "H1")) + "\n```"
        result = await analyze(advisor_returning(reply))

        assert [r.flight_id for r in result.recommendations] == ["F1", "F2"]
        assert result.recommendations[0].value_score == 90
        assert result.insights.warnings == ["Summer crowds"]
        assert result.summary == "Three solid options."

    @pytest.mark.asyncio
    async def test_truncates_to_five(self):
        reply = analysis_reply([f"F{i}" for i in range(5)], None)
        extra = dict(reply["recommendations"][0], rank=5)
        reply["recommendations"].append(extra)

        result = await analyze(advisor_returning(json.dumps(reply)))

        assert len(result.recommendations) == 5

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self):
        with pytest.raises(AnalysisError):
            await analyze(advisor_returning("Here are my picks: F1 and F2"))

    @pytest.mark.asyncio
    async def test_out_of_range_score_raises(self):
        reply = analysis_reply(["F1"], "H1")
        reply["recommendations"][0]["valueScore"] = 140
        with pytest.raises(AnalysisError):
            await analyze(advisor_returning(json.dumps(reply)))

    @pytest.mark.asyncio
    async def test_empty_recommendations_raise(self):
        with pytest.raises(AnalysisError):
            await analyze(advisor_returning(json.dumps({"recommendations": [], "summary": ""})))

    @pytest.mark.asyncio
    async def test_llm_unavailable_raises_analysis_error(self):
        llm = MagicMock()
        llm.complete_json = AsyncMock(side_effect=LLMUnavailableError("no provider"))
        with pytest.raises(AnalysisError):
            await analyze(TravelAdvisor(llm=llm))

    @pytest.mark.asyncio
    async def test_prompt_payload_carries_flights_and_hotels(self):
        advisor = advisor_returning(json.dumps(analysis_reply(["F1"], "H1")))
        await analyze(advisor)

        user = advisor._llm.complete.call_args.args[1]
        payload = json.loads(user)
        assert [f["id"] for f in payload["flights"]] == ["F1", "F2"]
        assert payload["hotels"][0]["offers"][0]["price"]["perNight"] == 100.0
        assert payload["webSearchResults"] is None


class TestSmartSearchQueries:
    @pytest.mark.asyncio
    async def test_caps_at_three(self):
        advisor = advisor_returning(json.dumps({"queries": ["a", "b", " ", "c", "d"]}))
        queries = await advisor.build_smart_search_queries({"destination": "LHR"}, 50)
        assert queries == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self):
        llm = MagicMock()
        llm.complete_json = AsyncMock(side_effect=LLMUnavailableError("down"))
        assert await TravelAdvisor(llm=llm).build_smart_search_queries({}, 10) == []

    @pytest.mark.asyncio
    async def test_non_list_returns_empty(self):
        advisor = advisor_returning(json.dumps({"queries": "just one"}))
        assert await advisor.build_smart_search_queries({}, 10) == []


class TestFallbackPlan:
    def test_outline_mentions_package(self):
        plan = TravelAdvisor.fallback_plan(
            {
                "totalPrice": 1100,
                "suggestedDates": {"departureDate": "2025-06-01", "returnDate": "2025-06-08"},
                "hotel": {"name": "Hotel H1"},
                "flight": {"outbound": {"departure": {"airport": "JFK", "time": "08:00"}, "arrival": {"airport": "LHR", "time": "20:00"}}},
            },
            "London",
        )
        assert plan.startswith("# Trip to London")
        assert "2025-06-01 to 2025-06-08" in plan
        assert "Hotel H1" in plan
        assert "JFK" in plan


class TestLLMClient:
    @pytest.mark.asyncio
    async def test_unconfigured_raises(self, settings_unconfigured):
        client = LLMClient(settings_unconfigured)
        assert client.is_configured is False
        with pytest.raises(LLMUnavailableError):
            await client.complete("system", "user")

    @pytest.mark.asyncio
    async def test_falls_back_to_anthropic(self, settings_unconfigured):
        client = LLMClient(settings_unconfigured)
        client._openai = MagicMock()
        client._openai.chat.completions.create = AsyncMock(side_effect=RuntimeError("rate limited"))
        client._anthropic = MagicMock()
        client._anthropic.messages.create = AsyncMock(
            return_value=MagicMock(content=[MagicMock(text=' {"ok": true} ')])
        )

        assert await client.complete_json("system", "user") == {"ok": True}
        assert client._anthropic.messages.create.call_args.kwargs["model"] == settings_unconfigured.anthropic_model

    @pytest.mark.asyncio
    async def test_complete_json_rejects_non_object(self, settings_unconfigured):
        client = LLMClient(settings_unconfigured)
        client.complete = AsyncMock(return_value="[1, 2]")
        with pytest.raises(ValueError):
            await client.complete_json("system", "user")

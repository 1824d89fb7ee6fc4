from datetime import date

import pytest

from travelai.services.history_service import HistoryService


@pytest.fixture
def history():
    return HistoryService()


class TestSearchHistory:
    @pytest.mark.asyncio
    async def test_recent_first(self, history, db_session):
        await history.record_search(db_session, "flight", {"origin": "JFK", "departureDate": date(2025, 6, 1)}, 3)
        await history.record_search(db_session, "hotel", {"cityCode": "LON"}, 0)

        rows = await history.recent_searches(db_session)

        assert [r["searchType"] for r in rows] == ["hotel", "flight"]
        assert rows[1]["queryParams"] == {"origin": "JFK", "departureDate": "2025-06-01"}
        assert rows[1]["resultsCount"] == 3
        assert rows[1]["createdAt"] is not None

    @pytest.mark.asyncio
    async def test_filter_and_limit(self, history, db_session):
        for i in range(3):
            await history.record_search(db_session, "flight", {"n": i}, i)
        await history.record_search(db_session, "calendar", {"n": 9}, 1)

        rows = await history.recent_searches(db_session, limit=2, search_type="flight")

        assert [r["queryParams"]["n"] for r in rows] == [2, 1]


class TestPreferences:
    @pytest.mark.asyncio
    async def test_upsert_keeps_other_keys(self, history, db_session):
        await history.set_preferences(db_session, {"cabin": "ECONOMY", "interests": ["food", "museums"]})
        prefs = await history.set_preferences(db_session, {"cabin": "BUSINESS"})

        assert prefs == {"cabin": "BUSINESS", "interests": ["food", "museums"]}

    @pytest.mark.asyncio
    async def test_empty(self, history, db_session):
        assert await history.get_preferences(db_session) == {}

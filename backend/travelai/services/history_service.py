"""Search history and user preference storage."""

import json
import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from travelai.models.history import Preference, SearchHistory

logger = logging.getLogger(__name__)


class HistoryService:
    async def record_search(
        self,
        db: AsyncSession,
        search_type: str,
        query_params: dict[str, Any],
        results_count: int | None = None,
        selected_option: dict | None = None,
    ) -> SearchHistory | None:
        """Append a history row. Best effort: failures are logged and swallowed."""
        entry = SearchHistory(
            search_type=search_type,
            query_params=json.loads(json.dumps(query_params, default=str)),
            results_count=results_count,
            selected_option=selected_option,
        )
        try:
            db.add(entry)
            await db.commit()
        except Exception as e:
            logger.warning(f"Failed to record {search_type} search: {e}")
            await db.rollback()
            return None
        return entry

    async def recent_searches(
        self, db: AsyncSession, limit: int = 20, search_type: str | None = None
    ) -> list[dict]:
        query = select(SearchHistory).order_by(SearchHistory.id.desc()).limit(limit)
        if search_type:
            query = query.where(SearchHistory.search_type == search_type)
        result = await db.execute(query)
        return [
            {
                "id": row.id,
                "searchType": row.search_type,
                "queryParams": row.query_params,
                "resultsCount": row.results_count,
                "selectedOption": row.selected_option,
                "createdAt": row.created_at.isoformat() if row.created_at else None,
            }
            for row in result.scalars().all()
        ]

    async def get_preferences(self, db: AsyncSession) -> dict[str, Any]:
        result = await db.execute(select(Preference))
        prefs = {}
        for row in result.scalars().all():
            try:
                prefs[row.key] = json.loads(row.value)
            except json.JSONDecodeError:
                prefs[row.key] = row.value
        return prefs

    async def set_preferences(self, db: AsyncSession, values: dict[str, Any]) -> dict[str, Any]:
        """Upsert each key, then return the full preference map."""
        for key, value in values.items():
            payload = json.dumps(value, default=str)
            stmt = sqlite_insert(Preference).values(key=key, value=payload)
            stmt = stmt.on_conflict_do_update(
                index_elements=[Preference.key],
                set_={"value": payload, "updated_at": func.now()},
            )
            await db.execute(stmt)
        await db.commit()
        return await self.get_preferences(db)


history_service = HistoryService()

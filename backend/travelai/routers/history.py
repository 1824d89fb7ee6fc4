"""History router: past searches and stored preferences."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from travelai.database import get_db
from travelai.services.history_service import history_service

router = APIRouter()


@router.get("/history")
async def list_history(
    limit: int = Query(20, ge=1, le=100),
    search_type: str | None = Query(None, alias="searchType"),
    db: AsyncSession = Depends(get_db),
):
    return await history_service.recent_searches(db, limit, search_type)


@router.get("/preferences")
async def get_preferences(db: AsyncSession = Depends(get_db)):
    return await history_service.get_preferences(db)


@router.put("/preferences")
async def update_preferences(
    values: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
):
    return await history_service.set_preferences(db, values)

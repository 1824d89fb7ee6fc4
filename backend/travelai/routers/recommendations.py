"""Recommendation router: ranked trip packages and travel plans."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from travelai.database import get_db
from travelai.dependencies import get_orchestrator
from travelai.schemas.recommendation import (
    PlanRequest,
    PlanResponse,
    RecommendationRequest,
    RecommendationResponse,
)
from travelai.services.history_service import history_service
from travelai.services.recommendation_orchestrator import RecommendationOrchestrator

router = APIRouter()


@router.post("", response_model=RecommendationResponse)
async def get_recommendations(
    req: RecommendationRequest,
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
    db: AsyncSession = Depends(get_db),
):
    """Search flights and hotels, then rank up to five packages."""
    response = await orchestrator.recommend(req)
    await history_service.record_search(
        db,
        "combined",
        req.model_dump(mode="json", by_alias=True),
        len(response.recommendations),
    )
    return response


@router.post("/plan", response_model=PlanResponse)
async def generate_plan(
    req: PlanRequest,
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
):
    """Day-by-day itinerary for one recommendation."""
    if not req.recommendation:
        raise HTTPException(status_code=400, detail="Missing recommendation data")
    return await orchestrator.generate_plan(req.recommendation, req.destination)

"""Web search router: quota status and destination overviews."""

from fastapi import APIRouter, Depends, HTTPException, Query

from travelai.dependencies import get_web_search_client
from travelai.schemas.search import SearchStatus
from travelai.services.web_search_client import (
    SearchQuotaExhausted,
    WebSearchClient,
    WebSearchError,
    WebSearchUnavailable,
)

router = APIRouter()


@router.get("/status", response_model=SearchStatus)
async def search_status(web_search: WebSearchClient = Depends(get_web_search_client)):
    return SearchStatus(
        remaining_searches=web_search.remaining_searches(),
        max_searches=web_search.max_searches,
    )


@router.get("/destination")
async def destination_info(
    destination: str = Query("", max_length=100),
    web_search: WebSearchClient = Depends(get_web_search_client),
):
    """Travel-guide results for a destination. Consumes one search unless cached."""
    if not destination.strip():
        raise HTTPException(status_code=400, detail="Missing required parameter: destination")
    try:
        info = await web_search.search_destination_info(destination.strip())
    except SearchQuotaExhausted:
        raise HTTPException(status_code=429, detail="Search quota exhausted")
    except WebSearchUnavailable:
        raise HTTPException(status_code=503, detail="Web search is not configured")
    except WebSearchError:
        raise HTTPException(status_code=502, detail="Web search provider unavailable")

    return {
        "destination": destination.strip(),
        "info": info.to_wire(),
        "remainingSearches": web_search.remaining_searches(),
    }

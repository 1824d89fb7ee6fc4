"""Hotel router: city hotel search with offers."""

import logging
import math
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from travelai.data.airports import resolve_city
from travelai.database import get_db
from travelai.dependencies import get_amadeus_client, get_web_search_client
from travelai.services.amadeus_client import AmadeusClient, AmadeusError
from travelai.services.history_service import history_service
from travelai.services.web_search_client import WebSearchClient, WebSearchError

logger = logging.getLogger(__name__)

router = APIRouter()


async def _resolve_city_code(destination: str, amadeus: AmadeusClient) -> str | None:
    """Turn a free-text destination into a city code via the location search."""
    candidate = destination.strip()
    if len(candidate) == 3 and candidate.isalpha():
        return resolve_city(candidate)[0]
    locations = await amadeus.search_locations(candidate)
    if not locations:
        return None
    cities = [loc for loc in locations if loc.type == "CITY"]
    return resolve_city((cities or locations)[0].code)[0]


@router.get("/search")
async def search_hotels(
    city_code: str | None = Query(None, alias="cityCode"),
    destination: str | None = Query(None),
    check_in: date | None = Query(None, alias="checkIn"),
    check_out: date | None = Query(None, alias="checkOut"),
    adults: int = Query(1, ge=1, le=9),
    min_rating: float | None = Query(None, alias="minRating", ge=0, le=5),
    max_price: float | None = Query(None, alias="maxPrice", gt=0),
    web_info: bool = Query(False, alias="webInfo"),
    amadeus: AmadeusClient = Depends(get_amadeus_client),
    web_search: WebSearchClient = Depends(get_web_search_client),
    db: AsyncSession = Depends(get_db),
):
    """Search hotels in a city; best rated first, then cheapest.

    With ``webInfo=true`` one web search about where to stay is added (uses quota).
    """
    if not check_in or not check_out or not (city_code or destination):
        raise HTTPException(
            status_code=400,
            detail="Missing required parameters: checkIn, checkOut and cityCode or destination",
        )
    if check_out <= check_in:
        raise HTTPException(status_code=400, detail="checkIn must be before checkOut")

    code = city_code.strip().upper() if city_code else await _resolve_city_code(destination, amadeus)

    hotels = []
    degraded = False
    if code:
        try:
            hotels = await amadeus.search_hotels(code, check_in, check_out, adults=adults)
        except (AmadeusError, ValueError) as e:
            logger.warning(f"Hotel search failed for {code}: {e}")
            degraded = True

    if min_rating is not None:
        hotels = [h for h in hotels if h.rating is not None and h.rating >= min_rating]
    if max_price is not None:
        hotels = [h for h in hotels if h.cheapest_total is not None and h.cheapest_total <= max_price]
    hotels.sort(key=lambda h: (-(h.rating or 0), h.cheapest_total if h.cheapest_total is not None else math.inf))

    web_results = None
    if web_info and code:
        place = destination or resolve_city(code)[1] or code
        try:
            nightly_budget = max_price / (check_out - check_in).days if max_price else None
            web_results = await web_search.search_hotel_info(place, check_in, check_out, budget=nightly_budget)
        except WebSearchError as e:
            logger.warning(f"Hotel web info for {place} unavailable: {e}")

    await history_service.record_search(
        db,
        "hotel",
        {
            "cityCode": code,
            "destination": destination,
            "checkIn": check_in,
            "checkOut": check_out,
            "adults": adults,
        },
        len(hotels),
    )

    return {
        "count": len(hotels),
        "hotels": [h.to_wire() for h in hotels],
        "webInfo": web_results.to_wire() if web_results else None,
        "meta": {
            "cityCode": code,
            "destination": destination,
            "checkIn": check_in.isoformat(),
            "checkOut": check_out.isoformat(),
            "searchedAt": datetime.now(timezone.utc).isoformat(),
            "remainingSearches": web_search.remaining_searches(),
            "degraded": degraded,
        },
    }

"""Flight router: single-date search and price calendar."""

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from travelai.config import settings
from travelai.database import get_db
from travelai.dependencies import get_amadeus_client
from travelai.schemas.flight import FlightSearchCriteria
from travelai.services.amadeus_client import AmadeusClient, AmadeusError
from travelai.services.history_service import history_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/search")
async def search_flights(
    origin: str | None = Query(None),
    destination: str | None = Query(None),
    departure_date: date | None = Query(None, alias="departureDate"),
    return_date: date | None = Query(None, alias="returnDate"),
    adults: int = Query(1, ge=1, le=9),
    travel_class: str | None = Query(None, alias="travelClass"),
    non_stop: bool = Query(False, alias="nonStop"),
    max_price: float | None = Query(None, alias="maxPrice", gt=0),
    currency: str | None = Query(None, min_length=3, max_length=3),
    amadeus: AmadeusClient = Depends(get_amadeus_client),
    db: AsyncSession = Depends(get_db),
):
    """Search flights for one departure date, cheapest first."""
    if not origin or not destination or not departure_date:
        raise HTTPException(
            status_code=400,
            detail="Missing required parameters: origin, destination, departureDate",
        )
    if return_date and return_date < departure_date:
        raise HTTPException(status_code=400, detail="returnDate must not be before departureDate")

    criteria = FlightSearchCriteria(
        origin=origin.strip().upper(),
        destination=destination.strip().upper(),
        departure_date=departure_date,
        return_date=return_date,
        adults=adults,
        travel_class=travel_class,
        non_stop=non_stop,
        currency=(currency or settings.default_currency).upper(),
        max_results=settings.flight_max_results,
    )

    degraded = False
    try:
        flights = await amadeus.search_flights(criteria)
    except (AmadeusError, ValueError) as e:
        logger.warning(f"Flight search failed: {e}")
        flights = []
        degraded = True

    if max_price is not None:
        flights = [f for f in flights if f.price.total <= max_price]
    flights.sort(key=lambda f: f.price.total)

    await history_service.record_search(
        db, "flight", criteria.model_dump(mode="json", by_alias=True), len(flights)
    )

    return {
        "count": len(flights),
        "flights": [f.to_wire() for f in flights],
        "meta": {
            "origin": criteria.origin,
            "destination": criteria.destination,
            "departureDate": departure_date.isoformat(),
            "returnDate": return_date.isoformat() if return_date else None,
            "searchedAt": datetime.now(timezone.utc).isoformat(),
            "degraded": degraded,
        },
    }


@router.get("/calendar")
async def flight_calendar(
    origin: str | None = Query(None),
    destination: str | None = Query(None),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    trip_duration: int | None = Query(None, alias="tripDuration", ge=1, le=60),
    adults: int = Query(1, ge=1, le=9),
    amadeus: AmadeusClient = Depends(get_amadeus_client),
    db: AsyncSession = Depends(get_db),
):
    """Cheapest price for each departure day in a short window."""
    if not origin or not destination or not start_date or not end_date:
        raise HTTPException(
            status_code=400,
            detail="Missing required parameters: origin, destination, startDate, endDate",
        )
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="endDate must not be before startDate")
    span = (end_date - start_date).days + 1
    if span > settings.calendar_max_days:
        raise HTTPException(
            status_code=400,
            detail=f"Calendar window is limited to {settings.calendar_max_days} days",
        )

    origin = origin.strip().upper()
    destination = destination.strip().upper()
    result = await amadeus.search_flights_in_range(
        origin,
        destination,
        start_date,
        end_date,
        trip_duration,
        adults=adults,
        stride_days=1,
        max_samples=settings.calendar_max_days,
    )

    price_matrix = []
    for day in result.sampled_dates:
        entry = {
            "date": day.isoformat(),
            "cheapestPrice": result.price_by_date.get(day),
            "hasAvailability": day in result.price_by_date,
        }
        if day in result.failed_dates:
            entry["error"] = True
        price_matrix.append(entry)

    cheapest_date = (
        min(result.price_by_date, key=result.price_by_date.get) if result.price_by_date else None
    )

    await history_service.record_search(
        db,
        "calendar",
        {
            "origin": origin,
            "destination": destination,
            "startDate": start_date,
            "endDate": end_date,
            "tripDuration": trip_duration,
            "adults": adults,
        },
        len(result.price_by_date),
    )

    return {
        "origin": origin,
        "destination": destination,
        "priceMatrix": price_matrix,
        "cheapestDate": cheapest_date.isoformat() if cheapest_date else None,
        "bestDeal": result.best_deal.to_wire() if result.best_deal else None,
        "searchedAt": datetime.now(timezone.utc).isoformat(),
    }

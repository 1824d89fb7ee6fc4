"""Location router: airport and city autocomplete."""

from fastapi import APIRouter, Depends, HTTPException, Query

from travelai.dependencies import get_amadeus_client
from travelai.services.amadeus_client import AmadeusClient

router = APIRouter()


@router.get("")
async def search_locations(
    keyword: str = Query(""),
    amadeus: AmadeusClient = Depends(get_amadeus_client),
):
    """Search airports and cities by code or name."""
    if len(keyword.strip()) < 2:
        raise HTTPException(status_code=400, detail="Keyword must be at least 2 characters")
    locations = await amadeus.search_locations(keyword)
    return [loc.to_wire() for loc in locations]

from datetime import date

from pydantic import Field, model_validator

from travelai.schemas.common import CamelModel


class Price(CamelModel):
    total: float
    currency: str
    per_traveler: float


class Endpoint(CamelModel):
    airport: str
    terminal: str | None = None
    time: str


class Segment(CamelModel):
    carrier: str
    carrier_code: str
    flight_number: str
    aircraft: str | None = None
    departure: Endpoint
    arrival: Endpoint
    duration: str | None = None


class Itinerary(CamelModel):
    departure: Endpoint
    arrival: Endpoint
    duration: str | None = None
    stops: int = Field(ge=0)
    segments: list[Segment]

    @model_validator(mode="after")
    def _stops_match_segments(self):
        if self.stops != len(self.segments) - 1:
            raise ValueError("stops must equal the number of segments minus one")
        return self


class FlightOption(CamelModel):
    id: str
    price: Price
    outbound: Itinerary
    inbound: Itinerary | None = None
    booking_class: str | None = None
    seats_remaining: int | None = None
    last_ticketing_date: str | None = None
    validating_carrier: str | None = None
    search_date: date | None = None


class FlightSearchCriteria(CamelModel):
    origin: str
    destination: str
    departure_date: date
    return_date: date | None = None
    adults: int = Field(default=1, ge=1, le=9)
    travel_class: str | None = None
    non_stop: bool = False
    currency: str = "EUR"
    max_results: int = Field(default=50, ge=1, le=250)


class FlightRangeResult(CamelModel):
    flights: list[FlightOption] = []
    best_deal: FlightOption | None = None
    price_by_date: dict[date, float] = {}
    sampled_dates: list[date] = []
    failed_dates: list[date] = []

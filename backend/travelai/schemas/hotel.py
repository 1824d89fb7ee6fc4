from datetime import date

from pydantic import Field

from travelai.schemas.common import CamelModel


class HotelLocation(CamelModel):
    latitude: float | None = None
    longitude: float | None = None
    address: dict | None = None


class HotelPrice(CamelModel):
    total: float
    currency: str
    per_night: float


class HotelOffer(CamelModel):
    id: str | None = None
    check_in: date
    check_out: date
    room_type: str | None = None
    bed_type: str | None = None
    beds: int | None = None
    description: str | None = None
    price: HotelPrice
    cancellation: dict | None = None
    payment_type: str | None = None


class HotelOption(CamelModel):
    id: str
    name: str
    rating: float | None = None
    location: HotelLocation = Field(default_factory=HotelLocation)
    offers: list[HotelOffer] = []

    @property
    def cheapest_total(self) -> float | None:
        if not self.offers:
            return None
        return min(offer.price.total for offer in self.offers)


class HotelReference(CamelModel):
    """A hotel known to exist in a city, before offers are requested."""

    hotel_id: str
    name: str = ""
    latitude: float | None = None
    longitude: float | None = None

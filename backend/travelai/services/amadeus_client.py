"""Amadeus API client: flight, hotel and location search with OAuth2 token reuse.

Every response is normalized into the typed models in ``travelai.schemas`` and
cached in the SQLite TTL cache. Without credentials the client is disabled:
searches return empty results and location lookups use the embedded airport
table.
"""

import asyncio
import hashlib
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, timedelta

import httpx
from pydantic import ValidationError

from travelai.config import Settings, settings
from travelai.data.airlines import airline_name
from travelai.data.airports import search_airports
from travelai.schemas.flight import (
    Endpoint,
    FlightOption,
    FlightRangeResult,
    FlightSearchCriteria,
    Itinerary,
    Price,
    Segment,
)
from travelai.schemas.hotel import HotelLocation, HotelOffer, HotelOption, HotelPrice, HotelReference
from travelai.schemas.location import Location
from travelai.services.cache_service import CacheService, cache_service

logger = logging.getLogger(__name__)

TOKEN_REFRESH_BUFFER = 60  # seconds before expiry at which a token is renewed


class AmadeusError(Exception):
    """Transport failure or non-2xx response from Amadeus."""


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: float  # epoch seconds

    def is_fresh(self, now: float, buffer_seconds: int = TOKEN_REFRESH_BUFFER) -> bool:
        return now < self.expires_at - buffer_seconds


class AmadeusClient:
    """Adapter for the Amadeus Self-Service API."""

    def __init__(
        self,
        config: Settings = settings,
        cache: CacheService = cache_service,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config
        self._cache = cache
        self._transport = transport
        self._clock = clock
        self._token: AccessToken | None = None
        self._token_lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(10)  # 10 req/s rate limit
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return self._config.amadeus_configured

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.amadeus_base_url,
                timeout=self._config.provider_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def _ensure_token(self) -> str:
        """Return a valid bearer token, requesting a new one when close to expiry."""
        async with self._token_lock:
            if self._token and self._token.is_fresh(self._clock()):
                return self._token.value

            client = await self._get_client()
            try:
                resp = await client.post(
                    "/v1/security/oauth2/token",
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self._config.amadeus_client_id,
                        "client_secret": self._config.amadeus_client_secret,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                resp.raise_for_status()
                data = resp.json()
                self._token = AccessToken(
                    value=data["access_token"],
                    expires_at=self._clock() + int(data.get("expires_in", 1799)),
                )
            except httpx.HTTPError as e:
                raise AmadeusError(f"Token request failed: {e}") from e
            except (KeyError, ValueError) as e:
                raise AmadeusError(f"Malformed token response: {e}") from e

            logger.info("Amadeus token refreshed")
            return self._token.value

    async def _get(self, path: str, params: dict) -> dict:
        async with self._semaphore:
            token = await self._ensure_token()
            client = await self._get_client()
            try:
                resp = await client.get(
                    path,
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
                resp.raise_for_status()
                return resp.json()
            except httpx.HTTPStatusError as e:
                logger.error(f"Amadeus {path} error: {e.response.status_code}")
                raise AmadeusError(f"{path} returned {e.response.status_code}") from e
            except httpx.RequestError as e:
                logger.error(f"Amadeus {path} request error: {e}")
                raise AmadeusError(f"{path} request failed: {e}") from e
            except ValueError as e:
                raise AmadeusError(f"{path} returned invalid JSON") from e

    # --- Flights ---

    async def search_flights(self, criteria: FlightSearchCriteria) -> list[FlightOption]:
        """Search flight offers for a single departure date."""
        if not self.is_configured:
            logger.debug("Amadeus not configured, flight search skipped")
            return []

        params = {
            "originLocationCode": criteria.origin,
            "destinationLocationCode": criteria.destination,
            "departureDate": criteria.departure_date.isoformat(),
            "adults": criteria.adults,
            "currencyCode": criteria.currency,
            "max": criteria.max_results,
        }
        if criteria.return_date:
            params["returnDate"] = criteria.return_date.isoformat()
        if criteria.travel_class:
            params["travelClass"] = criteria.travel_class.upper()
        if criteria.non_stop:
            params["nonStop"] = "true"

        key = self._cache.flights_key(params)
        cached = await self._cache.get(key)
        if cached is not None:
            try:
                flights = [FlightOption.model_validate(f) for f in cached]
                logger.debug(
                    f"Cache hit: flights {criteria.origin}->{criteria.destination} "
                    f"{criteria.departure_date}"
                )
                return flights
            except (ValidationError, TypeError):
                logger.warning(f"Discarding unreadable cached flights for {key[:80]}")

        data = await self._get("/v2/shopping/flight-offers", params)
        flights = self.normalize_flights(data)
        await self._cache.set(key, [f.to_wire() for f in flights], self._config.cache_ttl_flights)
        logger.info(
            f"Amadeus: {len(flights)} flights {criteria.origin}->{criteria.destination} "
            f"on {criteria.departure_date}"
        )
        return flights

    def sample_dates(
        self,
        start_date: date,
        end_date: date,
        stride_days: int | None = None,
        max_samples: int | None = None,
    ) -> list[date]:
        """Departure dates probed for a window: every stride-th day from the start, capped."""
        stride = max(1, stride_days or self._config.range_sample_stride_days)
        cap = max_samples or self._config.range_max_samples
        dates: list[date] = []
        current = start_date
        while current <= end_date and len(dates) < cap:
            dates.append(current)
            current += timedelta(days=stride)
        return dates

    async def search_flights_in_range(
        self,
        origin: str,
        destination: str,
        start_date: date,
        end_date: date,
        trip_duration_days: int | None,
        adults: int = 1,
        currency: str | None = None,
        travel_class: str | None = None,
        stride_days: int | None = None,
        max_samples: int | None = None,
    ) -> FlightRangeResult:
        """Sample departure dates across a window to find the cheapest travel days.

        Each sampled date gets a return date ``trip_duration_days`` later (one-way
        when None). A failing date is logged and skipped; the rest still count.
        """
        if not self.is_configured:
            logger.debug("Amadeus not configured, range search skipped")
            return FlightRangeResult()

        sampled = self.sample_dates(start_date, end_date, stride_days, max_samples)
        outcomes: list[tuple[date, list[FlightOption] | Exception]] = []
        for day in sampled:
            criteria = FlightSearchCriteria(
                origin=origin,
                destination=destination,
                departure_date=day,
                return_date=day + timedelta(days=trip_duration_days) if trip_duration_days else None,
                adults=adults,
                travel_class=travel_class,
                currency=currency or self._config.default_currency,
                max_results=self._config.flight_max_results,
            )
            try:
                outcomes.append((day, await self.search_flights(criteria)))
            except (AmadeusError, ValueError) as e:
                outcomes.append((day, e))

        flights: list[FlightOption] = []
        price_by_date: dict[date, float] = {}
        failed: list[date] = []
        for day, outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.warning(f"Range search {origin}->{destination} on {day} failed: {outcome}")
                failed.append(day)
                continue
            if not outcome:
                continue
            price_by_date[day] = min(f.price.total for f in outcome)
            flights.extend(f.model_copy(update={"search_date": day}) for f in outcome)

        # min() keeps the first flight among equal prices
        best_deal = min(flights, key=lambda f: f.price.total) if flights else None

        logger.info(
            f"Range search {origin}->{destination} {start_date}..{end_date}: "
            f"{len(sampled)} dates sampled, {len(failed)} failed, {len(flights)} flights"
        )
        return FlightRangeResult(
            flights=flights,
            best_deal=best_deal,
            price_by_date=price_by_date,
            sampled_dates=sampled,
            failed_dates=failed,
        )

    def normalize_flights(self, data: dict) -> list[FlightOption]:
        flights = []
        for offer in data.get("data", []):
            parsed = self._parse_offer(offer)
            if parsed is not None:
                flights.append(parsed)
        return flights

    def _parse_offer(self, offer: dict) -> FlightOption | None:
        """Parse an Amadeus flight offer; offers without segments are dropped."""
        itineraries = offer.get("itineraries") or []
        outbound = self._parse_itinerary(itineraries[0]) if itineraries else None
        if outbound is None:
            return None
        inbound = self._parse_itinerary(itineraries[1]) if len(itineraries) > 1 else None

        price = offer.get("price", {})
        total = float(price.get("grandTotal") or price.get("total") or 0)
        currency = price.get("currency", self._config.default_currency)
        traveler_pricings = offer.get("travelerPricings") or []
        per_traveler = round(total / len(traveler_pricings), 2) if traveler_pricings else total

        booking_class = None
        if traveler_pricings:
            fare_details = traveler_pricings[0].get("fareDetailsBySegment") or []
            if fare_details:
                booking_class = fare_details[0].get("class")

        flight_numbers = [s.flight_number for s in outbound.segments]
        if inbound:
            flight_numbers += [s.flight_number for s in inbound.segments]

        return FlightOption(
            id=self._flight_id(offer.get("id", ""), outbound.departure.time, flight_numbers, total),
            price=Price(total=total, currency=currency, per_traveler=per_traveler),
            outbound=outbound,
            inbound=inbound,
            booking_class=booking_class,
            seats_remaining=offer.get("numberOfBookableSeats"),
            last_ticketing_date=offer.get("lastTicketingDate"),
            validating_carrier=(offer.get("validatingAirlineCodes") or [None])[0],
        )

    def _parse_itinerary(self, itinerary: dict) -> Itinerary | None:
        raw_segments = itinerary.get("segments") or []
        if not raw_segments:
            return None

        segments = []
        for s in raw_segments:
            carrier_code = s.get("carrierCode", "")
            segments.append(
                Segment(
                    carrier=airline_name(carrier_code),
                    carrier_code=carrier_code,
                    flight_number=f"{carrier_code}{s.get('number', '')}",
                    aircraft=(s.get("aircraft") or {}).get("code"),
                    departure=self._parse_endpoint(s.get("departure", {})),
                    arrival=self._parse_endpoint(s.get("arrival", {})),
                    duration=s.get("duration"),
                )
            )

        return Itinerary(
            departure=segments[0].departure,
            arrival=segments[-1].arrival,
            duration=itinerary.get("duration"),
            stops=len(segments) - 1,
            segments=segments,
        )

    @staticmethod
    def _parse_endpoint(raw: dict) -> Endpoint:
        return Endpoint(
            airport=raw.get("iataCode", ""),
            terminal=raw.get("terminal"),
            time=raw.get("at", ""),
        )

    @staticmethod
    def _flight_id(offer_id: str, departure_time: str, flight_numbers: list[str], total: float) -> str:
        # Provider ids restart at "1" for every query; mix in the itinerary so
        # flights from different sampled dates stay distinct.
        raw = f"{offer_id}|{departure_time}|{'-'.join(flight_numbers)}|{total:.2f}"
        return hashlib.md5(raw.encode()).hexdigest()[:12]

    # --- Hotels ---

    async def search_hotels_by_city(self, city_code: str, radius_km: int | None = None) -> list[HotelReference]:
        """List hotels registered in a city (ids only, no prices)."""
        if not self.is_configured:
            return []

        radius = radius_km or self._config.hotel_search_radius_km
        key = self._cache.hotels_by_city_key(city_code, radius)
        cached = await self._cache.get(key)
        if cached is not None:
            try:
                return [HotelReference.model_validate(h) for h in cached]
            except (ValidationError, TypeError):
                logger.warning(f"Discarding unreadable cached hotel list for {city_code}")

        data = await self._get(
            "/v1/reference-data/locations/hotels/by-city",
            {
                "cityCode": city_code.upper(),
                "radius": radius,
                "radiusUnit": "KM",
                "hotelSource": "ALL",
            },
        )
        hotels = []
        for item in data.get("data", []):
            if not item.get("hotelId"):
                continue
            geo = item.get("geoCode") or {}
            hotels.append(
                HotelReference(
                    hotel_id=item["hotelId"],
                    name=item.get("name", ""),
                    latitude=geo.get("latitude"),
                    longitude=geo.get("longitude"),
                )
            )
        await self._cache.set(key, [h.to_wire() for h in hotels], self._config.cache_ttl_hotels)
        return hotels

    async def search_hotel_offers(
        self,
        hotel_ids: Iterable[str],
        check_in: date,
        check_out: date,
        adults: int = 1,
        rooms: int = 1,
        currency: str | None = None,
    ) -> list[HotelOption]:
        """Fetch priced offers for up to ``hotel_batch_limit`` hotels."""
        ids = list(hotel_ids)[: self._config.hotel_batch_limit]
        if not self.is_configured or not ids:
            return []

        params = {
            "hotelIds": ",".join(ids),
            "checkInDate": check_in.isoformat(),
            "checkOutDate": check_out.isoformat(),
            "adults": adults,
            "roomQuantity": rooms,
            "currency": currency or self._config.default_currency,
            "bestRateOnly": "true",
        }
        key = self._cache.hotel_offers_key(params)
        cached = await self._cache.get(key)
        if cached is not None:
            try:
                return [HotelOption.model_validate(h) for h in cached]
            except (ValidationError, TypeError):
                logger.warning(f"Discarding unreadable cached hotel offers for {key[:80]}")

        data = await self._get("/v3/shopping/hotel-offers", params)
        hotels = self.normalize_hotels(data, check_in, check_out)
        await self._cache.set(key, [h.to_wire() for h in hotels], self._config.cache_ttl_hotels)
        logger.info(f"Amadeus: {len(hotels)} hotels with offers out of {len(ids)} requested")
        return hotels

    async def search_hotels(
        self,
        city_code: str,
        check_in: date,
        check_out: date,
        adults: int = 1,
        currency: str | None = None,
    ) -> list[HotelOption]:
        """Two-step hotel search: city hotel ids, then offers for the first batch."""
        references = await self.search_hotels_by_city(city_code)
        return await self.search_hotel_offers(
            [r.hotel_id for r in references],
            check_in,
            check_out,
            adults=adults,
            currency=currency,
        )

    def normalize_hotels(self, data: dict, check_in: date, check_out: date) -> list[HotelOption]:
        hotels = []
        for item in data.get("data", []):
            hotel = item.get("hotel") or {}
            hotel_id = hotel.get("hotelId")
            if not hotel_id:
                continue
            rating = hotel.get("rating")
            hotels.append(
                HotelOption(
                    id=hotel_id,
                    name=hotel.get("name", hotel_id),
                    rating=float(rating) if rating not in (None, "") else None,
                    location=HotelLocation(
                        latitude=hotel.get("latitude"),
                        longitude=hotel.get("longitude"),
                        address=hotel.get("address"),
                    ),
                    offers=[
                        self._parse_hotel_offer(offer, check_in, check_out)
                        for offer in item.get("offers") or []
                    ],
                )
            )
        return hotels

    def _parse_hotel_offer(self, offer: dict, check_in: date, check_out: date) -> HotelOffer:
        offer_in = date.fromisoformat(offer["checkInDate"]) if offer.get("checkInDate") else check_in
        offer_out = date.fromisoformat(offer["checkOutDate"]) if offer.get("checkOutDate") else check_out
        nights = max(1, (offer_out - offer_in).days)

        price = offer.get("price", {})
        total = float(price.get("total") or price.get("base") or 0)
        room = offer.get("room") or {}
        estimated = room.get("typeEstimated") or {}
        policies = offer.get("policies") or {}

        return HotelOffer(
            id=offer.get("id"),
            check_in=offer_in,
            check_out=offer_out,
            room_type=room.get("type") or estimated.get("category"),
            bed_type=estimated.get("bedType"),
            beds=estimated.get("beds"),
            description=(room.get("description") or {}).get("text"),
            price=HotelPrice(
                total=total,
                currency=price.get("currency", self._config.default_currency),
                per_night=round(total / nights, 2),
            ),
            cancellation=(policies.get("cancellations") or [None])[0],
            payment_type=policies.get("paymentType"),
        )

    # --- Locations ---

    async def search_locations(self, keyword: str) -> list[Location]:
        """Airport and city autocomplete. Falls back to the embedded table; never raises."""
        keyword = (keyword or "").strip()
        if not keyword:
            return []
        if not self.is_configured:
            return self._fallback_locations(keyword)

        key = self._cache.locations_key(keyword)
        cached = await self._cache.get(key)
        if cached is not None:
            try:
                return [Location.model_validate(loc) for loc in cached]
            except (ValidationError, TypeError):
                logger.warning(f"Discarding unreadable cached locations for {keyword!r}")

        try:
            data = await self._get(
                "/v1/reference-data/locations",
                {"keyword": keyword.upper(), "subType": "CITY,AIRPORT", "page[limit]": 10},
            )
            locations = []
            for loc in data.get("data", []):
                sub_type = loc.get("subType")
                if not loc.get("iataCode") or sub_type not in ("AIRPORT", "CITY"):
                    continue
                address = loc.get("address") or {}
                locations.append(
                    Location(
                        code=loc["iataCode"],
                        name=loc.get("name", loc["iataCode"]),
                        city_name=address.get("cityName", ""),
                        country_code=address.get("countryCode", ""),
                        type=sub_type,
                    )
                )
        except Exception as e:
            logger.warning(f"Location search failed for {keyword!r}, using airport table: {e}")
            return self._fallback_locations(keyword)

        await self._cache.set(key, [loc.to_wire() for loc in locations], self._config.cache_ttl_search)
        return locations

    @staticmethod
    def _fallback_locations(keyword: str) -> list[Location]:
        return [Location.model_validate(row) for row in search_airports(keyword)]

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


amadeus_client = AmadeusClient()

from datetime import date, datetime
from typing import Any, Literal

from pydantic import ConfigDict, Field, field_validator, model_validator

from travelai.config import settings
from travelai.schemas.common import CamelModel
from travelai.schemas.flight import FlightOption, Price
from travelai.schemas.hotel import HotelOption

SearchMode = Literal["date_range", "specific_dates"]
AnalysisSource = Literal["llm", "fallback"]


class RecommendationRequest(CamelModel):
    origin: str
    destination: str
    period_start: date | None = None
    period_end: date | None = None
    trip_duration: int = Field(default=settings.default_trip_duration_days, ge=1, le=60)
    departure_date: date | None = None
    return_date: date | None = None
    adults: int = Field(default=1, ge=1, le=9)
    budget: float | None = Field(default=None, gt=0)
    priorities: list[str] = []
    travel_style: str | None = None
    interests: list[str] = []
    preferences: dict[str, Any] = {}

    @field_validator("origin", "destination")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def _check_dates(self):
        if self.period_start and self.period_end:
            if self.period_start > self.period_end:
                raise ValueError("periodStart must not be after periodEnd")
        elif not self.departure_date:
            raise ValueError(
                "Provide either a date range (periodStart and periodEnd) or a departureDate"
            )
        elif self.return_date and self.return_date < self.departure_date:
            raise ValueError("returnDate must not be before departureDate")
        return self

    @property
    def search_mode(self) -> SearchMode:
        if self.period_start and self.period_end:
            return "date_range"
        return "specific_dates"


class SuggestedDates(CamelModel):
    recommended: date | None = None
    departure_date: date | None = None
    return_date: date | None = None


class Recommendation(CamelModel):
    rank: int = Field(ge=1, le=5)
    flight_id: str | None = None
    hotel_id: str | None = None
    total_price: float | None = None
    value_score: int = Field(ge=0, le=100)
    reasoning: str = ""
    pros: list[str] = []
    cons: list[str] = []
    best_for: str = ""
    suggested_dates: SuggestedDates | None = None

    @field_validator("value_score", mode="before")
    @classmethod
    def _round_score(cls, v):
        if isinstance(v, float):
            return round(v)
        return v


class RecommendationPackage(Recommendation):
    """A recommendation joined with the full flight and hotel records it names."""

    flight: FlightOption | None = None
    hotel: HotelOption | None = None


class Insights(CamelModel):
    model_config = ConfigDict(extra="allow")

    price_analysis: str | None = None
    timing_advice: str | None = None
    alternative_suggestions: list[str] | str | None = None
    warnings: list[str] = []

    @field_validator("warnings", mode="before")
    @classmethod
    def _listify(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


class AnalysisResult(CamelModel):
    """Structured output expected back from the analysis prompt."""

    recommendations: list[Recommendation] = Field(default_factory=list, max_length=5)
    insights: Insights = Field(default_factory=Insights)
    summary: str = ""


class SearchPeriod(CamelModel):
    start: date
    end: date
    trip_duration: int


class BestDeal(CamelModel):
    deal_date: date | None = Field(default=None, alias="date")
    price: Price
    flight: FlightOption


class RecommendationMeta(CamelModel):
    flights_analyzed: int
    hotels_analyzed: int
    web_searches_used: int
    remaining_searches: int
    generated_at: datetime
    search_mode: SearchMode
    analysis_source: AnalysisSource


class RecommendationResponse(CamelModel):
    recommendations: list[RecommendationPackage]
    insights: Insights
    summary: str
    search_period: SearchPeriod | None = None
    best_deal: BestDeal | None = None
    price_by_date: dict[date, float] | None = None
    meta: RecommendationMeta


class PlanRequest(CamelModel):
    recommendation: dict[str, Any] | None = None
    destination: str | None = None


class PlanResponse(CamelModel):
    plan: str
    destination: str | None = None
    generated_at: datetime
    source: AnalysisSource

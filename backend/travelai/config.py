from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database (cache, search history, preferences)
    database_url: str = "sqlite+aiosqlite:///./data/travelai.db"

    # Amadeus
    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"

    # SearchAPI (web search)
    searchapi_key: str = ""
    searchapi_base_url: str = "https://www.searchapi.io/api/v1/search"
    search_quota: int = 100

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # Cache TTLs (seconds)
    cache_ttl_flights: int = 900       # 15 minutes
    cache_ttl_hotels: int = 3600       # 1 hour
    cache_ttl_search: int = 86400      # 24 hours
    cache_sweep_interval_minutes: int = 60

    # Outbound calls
    provider_timeout_seconds: float = 20.0

    # Flight search
    flight_max_results: int = 50
    default_currency: str = "EUR"
    range_sample_stride_days: int = 3
    range_max_samples: int = 10
    calendar_max_days: int = 14

    # Hotel search
    hotel_batch_limit: int = 20
    hotel_search_radius_km: int = 20

    # Recommendations
    default_trip_duration_days: int = 7
    llm_max_flights: int = 30
    llm_max_hotels: int = 20
    max_enrichment_queries: int = 2

    # Scheduler
    scheduler_enabled: bool = True

    # CORS
    cors_origins: str = "http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def amadeus_configured(self) -> bool:
        return bool(self.amadeus_client_id and self.amadeus_client_secret)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

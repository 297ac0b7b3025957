"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETOPS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Trip Costing & Compliance API"
    api_prefix: str = "/api"
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:5173", "http://127.0.0.1:5173"),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Routing provider (Google Routes API)
    routes_api_url: str = Field(
        default="https://routes.googleapis.com/directions/v2:computeRoutes",
        description="computeRoutes endpoint of the routing provider.",
    )
    routes_api_key: Optional[str] = Field(default=None, description="Routing provider API key.")
    routes_timeout_seconds: float = Field(default=10.0, gt=0.0)
    routes_max_retries: int = Field(default=1, ge=0)
    routes_backoff_seconds: float = Field(default=0.5, ge=0.0)
    toll_cache_ttl_hours: float = Field(default=24.0, ge=0.0)

    # Default organization cost rates
    fuel_price_per_liter: float = Field(default=1.789, ge=0.0)
    fuel_consumption_l100km: float = Field(default=8.5, ge=0.0)
    driver_hourly_cost: float = Field(default=30.0, ge=0.0)
    wear_cost_per_km: float = Field(default=0.10, ge=0.0)
    fallback_toll_rate_per_km: float = Field(default=0.12, ge=0.0)
    fallback_average_speed_kmh: float = Field(
        default=60.0,
        gt=0.0,
        description="Speed used to estimate durations when the routing provider is unavailable.",
    )

    # Compliance
    compliance_warning_ratio: float = Field(default=0.9, gt=0.0, le=1.0)

    # Subcontracting
    subcontractor_rate_per_km: float = Field(default=2.0, ge=0.0)
    subcontractor_rate_per_hour: float = Field(default=40.0, ge=0.0)
    subcontracting_review_band_percent: float = Field(
        default=5.0,
        ge=0.0,
        description="Margin difference (percent of selling price) under which a comparison needs review.",
    )
    unprofitable_threshold_percent: float = Field(default=0.0)
    max_subcontracting_suggestions: int = Field(default=5, ge=1)
    default_zone_radius_km: float = Field(default=20.0, gt=0.0)
    profitability_green_threshold: float = Field(default=20.0)
    profitability_orange_threshold: float = Field(default=0.0)

    # Staffing alternatives
    staffing_driver_hourly_cost: float = Field(default=25.0, ge=0.0)
    staffing_hotel_cost_per_night: float = Field(default=100.0, ge=0.0)
    staffing_meal_allowance_per_day: float = Field(default=30.0, ge=0.0)
    staffing_max_days: int = Field(default=3, ge=1)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()

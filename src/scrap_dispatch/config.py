"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Scrap Dispatch API"
    api_prefix: str = "/api"

    # Scrap operations backend (orders, yards, employees, crews)
    backend_base_url: Optional[str] = Field(
        default="http://localhost:7001/api/v1",
        description="Base URL of the operations backend REST API.",
    )
    backend_api_token: Optional[str] = Field(
        default=None,
        description="Bearer token forwarded to the operations backend.",
    )
    backend_timeout_seconds: float = Field(default=10.0, gt=0.0)
    backend_max_retries: int = Field(default=2, ge=0)
    backend_backoff_seconds: float = Field(default=0.5, ge=0.0)
    backend_page_limit: int = Field(default=100, ge=1)
    collector_role: Optional[str] = Field(
        default="COLLECTOR",
        description="Employee role used to filter the collector candidate pool.",
    )

    # Routing
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when estimating the pickup route.",
    )
    osrm_timeout_seconds: float = Field(default=15.0, gt=0.0)
    osrm_max_retries: int = Field(default=1, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    route_fallback_to_straight_line: bool = Field(
        default=True,
        description="Use the haversine distance when the routing service is unavailable.",
    )
    background_route_estimates: bool = True
    route_estimate_workers: int = Field(default=4, ge=1)

    # Dispatch rules
    enforce_schedule_order: bool = Field(
        default=True,
        description="Require start time to be before end time when both are set.",
    )
    allow_crew_with_collectors: bool = Field(
        default=True,
        description="Allow a crew and ad-hoc collectors on the same assignment.",
    )
    session_ttl_minutes: int = Field(default=120, ge=1)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:7002",
            "http://127.0.0.1:7002",
        ),
        description="Permitted web origins for browser clients (CORS).",
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
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return tuple()

    @field_validator("backend_base_url", "osrm_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None


settings = Settings()

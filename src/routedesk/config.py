"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTEDESK_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Route Desk API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for local data files.")
    saved_orders_file: str = Field(
        default="saved_orders.json",
        description="File name (under data_root) holding saved row orders.",
    )
    origin_latitude: float = Field(
        default=3.0695500,
        ge=-90.0,
        le=90.0,
        description="Latitude of the fixed origin used for direct distances.",
    )
    origin_longitude: float = Field(
        default=101.5469179,
        ge=-180.0,
        le=180.0,
        description="Longitude of the fixed origin used for direct distances.",
    )
    changelog_limit: int = Field(default=200, ge=1, description="Max changelog entries returned per route.")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    routes_table: str = "routes"
    route_notes_table: str = "route_notes"

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
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

    @property
    def saved_orders_path(self) -> Path:
        return self.data_root / self.saved_orders_file

    @property
    def origin(self) -> tuple[float, float]:
        return (self.origin_latitude, self.origin_longitude)


settings = Settings()

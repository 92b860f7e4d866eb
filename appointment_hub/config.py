"""Configuration management for AppointmentHub."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/appointment_hub.db",
        description="SQLAlchemy async DSN for appointments and notifications",
    )
    storage_backend: Literal["sql", "memory"] = Field(
        default="sql",
        description="Store implementation used by the API",
    )

    # Slot grid
    slot_horizon_days: int = Field(default=30, ge=1, description="Days of bookable slots")
    slot_day_start_hour: int = Field(default=9, ge=0, le=23)
    slot_day_end_hour: int = Field(default=17, ge=1, le=24)
    slot_minutes: int = Field(default=30, ge=5, le=240)

    # API Settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    api_key: str = Field(
        default="",
        description="API key for authenticating requests",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    # Debug
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode (exposes error details in responses)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    # Booking event telemetry
    event_log_enabled: bool = Field(default=True)
    event_log_dir: Path = Field(default=Path("./data/logs"))

    @model_validator(mode="after")
    def _check_day_bounds(self) -> "Settings":
        if self.slot_day_end_hour <= self.slot_day_start_hour:
            raise ValueError("slot_day_end_hour must be after slot_day_start_hour")
        return self

    @property
    def slots_per_day(self) -> int:
        """Number of slots in one bookable day."""
        return (self.slot_day_end_hour - self.slot_day_start_hour) * 60 // self.slot_minutes

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Configuration management for trip-ledger."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Parsing
    default_currency: str = "USD"
    decimal_format: Literal["US", "EU"] = "US"

    # Participant resolution
    name_match_threshold: float = 0.85  # Auto-resolve only at or above this
    name_match_min_confidence: float = 0.6  # Drop candidates below this

    # Share construction
    strict_percentages: bool = False  # Require percentage splits to total 100

    # FX rates API
    fx_api_url: str = "https://openexchangerates.org/api"
    fx_api_key: str | None = None  # No on-demand fetching without a key
    fx_timeout_seconds: float = 30.0

    # Database path (FX rate cache)
    database_path: Path = Path.home() / ".trip_ledger" / "trip_ledger.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the environment variables and the "
            f".env file in the current directory.\n"
            f"Error: {e}"
        ) from e

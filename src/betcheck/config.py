"""
Configuration management for BetCheck.

Uses Pydantic Settings to load configuration from environment variables
with sensible defaults for development. The results feed token should be
set via environment variables or .env file, never committed.

Usage:
    from betcheck.config import settings
    print(settings.results_feed_base_url)
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can be set directly or via a .env file
    in the project root directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Database Configuration
    # ==========================================================================

    database_url: str = Field(
        default="sqlite:///betcheck.db",
        description="SQLAlchemy connection URL for the prediction store",
    )

    # Pool settings are only applied to server databases (not SQLite)
    db_pool_size: int = Field(
        default=5,
        description="Number of connections to keep in the pool",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max additional connections beyond pool_size",
    )

    # ==========================================================================
    # Results Feed Configuration
    # ==========================================================================

    results_feed_base_url: str = Field(
        default="https://tennis.sportdevs.com",
        description="Base URL of the match results feed",
    )
    table_tennis_feed_base_url: Optional[str] = Field(
        default=None,
        description="Override base URL for table tennis results (defaults to the tennis feed)",
    )
    results_feed_token: Optional[str] = Field(
        default=None,
        description="Bearer token for the results feed",
    )
    results_feed_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for a single feed request",
    )

    # ==========================================================================
    # Cache Configuration
    # ==========================================================================

    results_cache_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        description="How long a fetched (sport, date) result set stays valid",
    )
    prediction_cache_ttl_seconds: int = Field(
        default=60,
        description="How long the web layer reuses a prediction date list",
    )

    # ==========================================================================
    # Player Matching Configuration
    # ==========================================================================

    # Maximum dissimilarity (0 = identical, 1 = unrelated) accepted by the
    # fuzzy tier. See players/matching.py for the full tier order.
    fuzzy_match_threshold: float = Field(
        default=0.3,
        description="Accept a fuzzy name match only below this dissimilarity",
    )

    # ==========================================================================
    # Storage / Listing Configuration
    # ==========================================================================

    file_storage_root: str = Field(
        default="uploads",
        description="Directory uploaded spreadsheets are read from",
    )
    default_page_size: int = Field(
        default=20,
        description="Default number of predictions per page",
    )

    # ==========================================================================
    # API Configuration
    # ==========================================================================

    api_host: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to",
    )
    api_port: int = Field(
        default=8000,
        description="Port for the API server",
    )
    api_reload: bool = Field(
        default=False,
        description="Enable auto-reload for development",
    )

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Format string passed to logging.basicConfig",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v

    @field_validator("fuzzy_match_threshold")
    @classmethod
    def validate_fuzzy_threshold(cls, v: float) -> float:
        """Dissimilarity threshold must be in (0, 1]."""
        if not 0.0 < v <= 1.0:
            raise ValueError("fuzzy_match_threshold must be in (0, 1]")
        return v

    def feed_base_url_for(self, sport_type: str) -> str:
        """Return the feed base URL to use for a sport type."""
        if sport_type == "table-tennis" and self.table_tennis_feed_base_url:
            return self.table_tennis_feed_base_url
        return self.results_feed_base_url


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once,
    which is important because loading from .env can be slow.
    """
    return Settings()


# Convenience alias for importing
settings = get_settings()

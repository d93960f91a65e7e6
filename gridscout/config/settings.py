import logging
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_API_KEY = "YOUR_GRID_API_KEY"

CENTRAL_DATA_URL = "https://api-op.grid.gg/central-data/graphql"
FILE_DOWNLOAD_URL = "https://api.grid.gg/file-download"
SERIES_STATE_OP_URL = "https://api-op.grid.gg/live-data-feed/series-state/graphql"


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # GRID Credentials / Endpoints
    grid_api_key: Optional[str] = Field(None, description="API key for the GRID data platform.")
    grid_central_data_url: str = Field(
        CENTRAL_DATA_URL, description="Central Data GraphQL endpoint."
    )
    grid_file_download_url: str = Field(
        FILE_DOWNLOAD_URL, description="Base URL of the File Download REST API."
    )
    series_state_mode: str = Field(
        "auto", description="Series State endpoint selection: auto, op or commercial."
    )
    series_state_commercial_url: Optional[str] = Field(
        None, description="Commercial Series State endpoint (required when mode is commercial)."
    )

    # HTTP Behaviour
    grid_request_timeout: float = Field(
        10.0, gt=0, description="Per-request timeout in seconds for GRID calls."
    )
    pipeline_timeout_seconds: float = Field(
        30.0, gt=0, description="Upper bound for one whole scout run."
    )
    grid_retry_attempts: int = Field(
        3, ge=1, description="Total attempts for retryable upstream failures."
    )
    grid_retry_wait_max: float = Field(
        4.0, ge=0, description="Maximum backoff between retry attempts, in seconds."
    )

    # Discovery Settings
    discovery_page_size: int = Field(50, ge=1, le=100)
    discovery_max_items: int = Field(200, ge=1)
    default_days_back: int = Field(90, ge=1)
    default_max_series: int = Field(10, ge=1)
    tournament_ids: str = Field(
        "", description="Overrides the built-in tournament whitelist (comma separated)."
    )
    tournament_whitelist_enabled: bool = True
    title_fanout: bool = Field(
        False, description="Query every tournament of a title instead of only the first."
    )

    introspection_cache_ttl_seconds: float = Field(600.0, ge=0)

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("series_state_mode")
    @classmethod
    def check_series_state_mode(cls, value: str) -> str:
        mode = value.strip().lower()
        if mode not in ("auto", "op", "commercial"):
            raise ValueError(f"Unsupported SERIES_STATE_MODE '{value}'")
        return mode

    @property
    def has_api_key(self) -> bool:
        """True when a usable (non-placeholder) GRID key is configured."""
        key = (self.grid_api_key or "").strip()
        return bool(key) and key != PLACEHOLDER_API_KEY

    @property
    def tournament_id_overrides(self) -> List[str]:
        return [part.strip() for part in self.tournament_ids.split(",") if part.strip()]

    def series_state_urls(self) -> List[str]:
        """Series State endpoints to try, in order."""
        if self.series_state_mode == "op":
            return [SERIES_STATE_OP_URL]
        if self.series_state_mode == "commercial":
            if not self.series_state_commercial_url:
                raise ValueError(
                    "SERIES_STATE_MODE=commercial requires SERIES_STATE_COMMERCIAL_URL to be set"
                )
            return [self.series_state_commercial_url]
        urls = [SERIES_STATE_OP_URL]
        if self.series_state_commercial_url:
            urls.append(self.series_state_commercial_url)
        return urls


def load_settings() -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings()
        log_level_upper = settings.log_level.upper()
        # Validate log_level even if loaded from .env
        if log_level_upper not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.warning(
                f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
            )
            settings.log_level = "INFO"
        else:
            settings.log_level = log_level_upper
        return settings
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")


settings: AppSettings = load_settings()

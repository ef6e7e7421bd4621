"""
Pydantic configuration models for mapleads.

These models provide type-safe configuration with validation for:
- Scraper API connection settings
- Status polling behaviour
- Result listing defaults
- Logging
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


DEFAULT_API_URL = "https://map-scraper-backend.onrender.com/api"


# =============================================================================
# API Configuration
# =============================================================================


class ApiConfig(BaseModel):
    """Connection settings for the scraper API."""

    base_url: str = Field(
        default=DEFAULT_API_URL,
        description="Base URL of the scraper API (without trailing slash)",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds; None waits indefinitely",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers sent with every request",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v


# =============================================================================
# Polling Configuration
# =============================================================================


class PollingConfig(BaseModel):
    """Job status polling settings."""

    interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Delay between status checks while a job is observed",
    )
    status_retries: int = Field(
        default=0,
        ge=0,
        le=10,
        description="Extra attempts for a status check that failed with a network error",
    )
    refresh_results_on_tick: bool = Field(
        default=False,
        description="Reload the scoped results after every applied status check",
    )


# =============================================================================
# Results Configuration
# =============================================================================


class ResultsConfig(BaseModel):
    """Defaults for the paginated business listing."""

    default_page: int = Field(default=1, ge=1)
    default_limit: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Businesses requested per page",
    )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return v


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    api: ApiConfig = Field(default_factory=ApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    results: ResultsConfig = Field(default_factory=ResultsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

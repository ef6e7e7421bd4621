"""Configuration loading and validation."""

from .models import (
    DEFAULT_API_URL,
    ApiConfig,
    AppConfig,
    LoggingConfig,
    PollingConfig,
    ResultsConfig,
)
from .loader import API_URL_ENV, get_default_config_path, load_app_config

__all__ = [
    "DEFAULT_API_URL",
    "API_URL_ENV",
    # Config models
    "ApiConfig",
    "AppConfig",
    "LoggingConfig",
    "PollingConfig",
    "ResultsConfig",
    # Loaders
    "get_default_config_path",
    "load_app_config",
]

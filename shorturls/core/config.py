"""Application configuration module.

This module contains settings for the short URL service,
loaded from environment variables with appropriate defaults.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent


class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with defaults.

    Settings are loaded from environment variables, with fallback to
    values in .env file if present, and finally to the default values
    specified here.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # App Information
    APP_NAME: str = "Short URL Service"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "In-memory URL shortening service with click analytics"

    # API Configuration
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # CORS settings
    CORS_ORIGINS: Union[List[str], str] = ["*"]

    # Shortcode registry
    DEFAULT_VALIDITY_MINUTES: int = 30
    CODE_RANDOM_BYTES: int = 3  # 3 bytes -> 4 base64url characters
    CODE_MAX_ATTEMPTS: int = 10
    CUSTOM_CODE_MAX_LENGTH: int = 32

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILENAME: str = "app.log"
    LOG_TO_FILE: bool = True
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"
    LOG_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message}"
    LOG_JSON: bool = True
    REQUEST_LOGGING_ENABLED: bool = True

    # Structured event sink
    EVENT_COMPONENT: str = "backend"
    EVENT_COLLECTOR_URL: Optional[str] = None  # None keeps events local
    EVENT_COLLECTOR_TIMEOUT: float = 5.0  # seconds
    EVENT_QUEUE_SIZE: int = 10000
    EVENT_SHUTDOWN_TIMEOUT: float = 5.0  # seconds

    # OpenTelemetry configuration
    OTEL_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "short-url-service"
    OTEL_RESOURCE_ATTRIBUTES: str = ""
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: str = "http://localhost:4317"
    OTEL_TRACES_SAMPLER: str = "parentbased_traceidratio"
    OTEL_TRACES_SAMPLER_ARG: float = 1.0
    OTEL_METRICS_EXPORT_INTERVAL_MILLIS: int = 60000
    OTEL_EXPORTER_OTLP_PROTOCOL: str = "grpc"  # grpc or http/protobuf

    # Validators
    @field_validator("EVENT_COLLECTOR_URL", mode="before")
    def validate_collector_url(cls, v: Any) -> Optional[str]:
        """Convert empty string to None for EVENT_COLLECTOR_URL."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v

    @field_validator("DEFAULT_VALIDITY_MINUTES", "CODE_RANDOM_BYTES", "CODE_MAX_ATTEMPTS", mode="before")
    def validate_positive_int(cls, v: Any, info) -> int:
        """Fall back to the declared default for non-positive or unparsable values."""
        default = cls.model_fields[info.field_name].default
        try:
            value = int(v)
        except (ValueError, TypeError):
            logger.warning(f"Invalid value for {info.field_name}: {v!r}, using {default}")
            return default
        if value <= 0:
            logger.warning(f"Non-positive value for {info.field_name}: {v!r}, using {default}")
            return default
        return value

    @field_validator("CORS_ORIGINS")
    def validate_list_or_string(cls, v: Union[List[str], str]) -> List[str]:
        """Convert comma-separated string to list if needed."""
        if isinstance(v, str):
            if not v.strip():
                return []
            if v == "*":
                return ["*"]
            return [item.strip() for item in v.split(",")]
        return v


# Create a singleton instance of the settings
settings = Settings()

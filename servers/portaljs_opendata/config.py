#!/usr/bin/env python3
"""Configuration management for the PortalJS OpenData MCP server."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(env_prefix="PORTALJS_", case_sensitive=False)

    # Portal Configuration
    portal_base_url: str = Field(
        default="https://api.cloud.portaljs.com",
        description="Base URL of the PortalJS portal (without /api/3/action)",
    )
    api_key: Optional[str] = Field(
        default=None, description="Static API key sent with every upstream request"
    )
    cors_origin: Optional[str] = Field(
        default=None,
        description="Allowed CORS origin, reserved for HTTP transports",
    )

    # Cache Configuration
    cache_enabled: bool = Field(default=True, description="Cache successful GET calls")
    cache_ttl_seconds: float = Field(
        default=300.0, ge=0.0, le=86400.0, description="Cache entry lifetime in seconds"
    )

    # Timeout Configuration
    connect_timeout: float = Field(
        default=10.0, ge=1.0, le=60.0, description="Connection timeout in seconds"
    )
    read_timeout: float = Field(
        default=30.0, ge=1.0, le=300.0, description="Read timeout in seconds"
    )

    # Retry Configuration
    max_retries: int = Field(
        default=2, ge=0, le=10, description="Retries for failed connection attempts"
    )
    retry_delay: float = Field(
        default=0.5, ge=0.0, le=10.0, description="Initial retry delay in seconds"
    )
    retry_backoff_multiplier: float = Field(
        default=2.0, ge=1.0, le=5.0, description="Retry backoff multiplier"
    )
    max_retry_delay: float = Field(
        default=10.0, ge=0.0, le=300.0, description="Maximum retry delay in seconds"
    )

    # Data Limits
    max_preview_rows: int = Field(
        default=100, ge=1, le=100, description="Maximum rows in a preview or table"
    )
    max_related_results: int = Field(
        default=10, ge=1, le=10, description="Maximum related datasets returned"
    )
    max_compare_datasets: int = Field(
        default=5, ge=1, le=5, description="Maximum datasets in one comparison"
    )
    max_response_size: int = Field(
        default=10 * 1024 * 1024,  # 10MB
        ge=1024,
        le=100 * 1024 * 1024,
        description="Maximum upstream response size in bytes",
    )

    # Connection Pool Configuration
    max_connections: int = Field(
        default=100, ge=1, le=1000, description="Maximum number of connections in pool"
    )
    max_keepalive_connections: int = Field(
        default=20, ge=1, le=100, description="Maximum number of keepalive connections"
    )
    keepalive_expiry: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Keepalive connection expiry in seconds",
    )

    # Response envelope
    api_version: str = Field(default="2.0.0", description="Outbound envelope version")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or text)")
    log_include_extra: bool = Field(
        default=True, description="Include extra fields in JSON logs"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        valid_formats = ["json", "text"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("portal_base_url")
    @classmethod
    def validate_portal_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("Portal base URL must start with http:// or https://")
        return v.rstrip("/")

    @property
    def cache_ttl_ms(self) -> int:
        return int(self.cache_ttl_seconds * 1000)


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, reporting the first bad key.

    Raises:
        ConfigurationError: If a setting fails validation
    """
    try:
        return Settings(**overrides)
    except PydanticValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"]) or None
        raise ConfigurationError(
            f"Invalid setting {key}: {first['msg']}", key
        ) from e


# Global settings instance
settings = load_settings()

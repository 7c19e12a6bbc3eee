"""
Shared configuration management for the Access Layer auth service.
"""

import os
from typing import Any, Mapping, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Names of the runtime settings read on every cache operation
DISABLE_REDIS = "DISABLE_REDIS"
REDIS_CACHE_TIMEOUT_SECONDS = "REDIS_CACHE_TIMEOUT_SECONDS"
STS_DISCOVERY_ENDPOINT = "STS_DISCOVERY_ENDPOINT"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias=AliasChoices("ACCESS_ENV", "env"))
    log_level: str = Field(default="info", validation_alias=AliasChoices("ACCESS_LOG_LEVEL", "log_level"))

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias=AliasChoices("ACCESS_REDIS_URL", "redis_url"))

    # Identity provider metadata
    sts_discovery_endpoint: Optional[str] = Field(
        default=None, validation_alias=AliasChoices(STS_DISCOVERY_ENDPOINT, "sts_discovery_endpoint")
    )
    metadata_http_timeout: float = Field(
        default=10.0, validation_alias=AliasChoices("ACCESS_METADATA_HTTP_TIMEOUT", "metadata_http_timeout")
    )
    metadata_require_https: bool = Field(
        default=True, validation_alias=AliasChoices("ACCESS_METADATA_REQUIRE_HTTPS", "metadata_require_https")
    )
    metadata_refresh_interval: int = Field(
        default=30, validation_alias=AliasChoices("ACCESS_METADATA_REFRESH_INTERVAL", "metadata_refresh_interval")
    )
    metadata_automatic_refresh_interval: int = Field(
        default=12 * 60 * 60,
        validation_alias=AliasChoices("ACCESS_METADATA_AUTOMATIC_REFRESH_INTERVAL", "metadata_automatic_refresh_interval"),
    )


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)


def get_runtime_settings() -> Mapping[str, str]:
    """Live view of the process environment.

    Returned as the mapping itself rather than a snapshot, so values written
    by an external reload are visible on the next lookup.
    """
    return os.environ


def has_config_setting(source: Optional[Mapping[str, Any]], name: str) -> Optional[str]:
    """Return the setting value, or None when it is missing, empty or "null".

    The exact name is tried first, then a case-insensitive match.
    """
    if source is None or not name:
        return None

    value = source.get(name)
    if value is None:
        folded = name.lower()
        value = next((v for k, v in source.items() if k.lower() == folded), None)
    if value is None:
        return None

    value = str(value)
    if not value or value.lower() == "null":
        return None
    return value

"""
Centralized configuration management for the Artifactory secrets backend.

Host-level settings (lease TTL ceilings, HTTP client behaviour, storage and
logging) are read from the environment and validated with Pydantic. Per-backend
state such as the admin credential is never kept here; it lives in storage.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import Defaults, EnvironmentVariable, LogLevel, PRODUCT_NAME, PRODUCT_VERSION, Timeouts


def _env_int(name: EnvironmentVariable, default: int) -> int:
    return int(os.getenv(name.value, str(default)))


def _env_bool(name: EnvironmentVariable, default: bool) -> bool:
    return os.getenv(name.value, str(default)).lower() == "true"


class BackendSettings(BaseModel):
    """Lease limits the host applies to every secret issued by this backend."""

    default_lease_ttl: int = Field(
        default_factory=lambda: _env_int(
            EnvironmentVariable.DEFAULT_LEASE_TTL, Defaults.DEFAULT_LEASE_TTL_SECONDS
        ),
        gt=0,
        description="Default lease TTL in seconds",
    )
    max_lease_ttl: int = Field(
        default_factory=lambda: _env_int(
            EnvironmentVariable.MAX_LEASE_TTL, Defaults.MAX_LEASE_TTL_SECONDS
        ),
        gt=0,
        description="Maximum lease TTL in seconds",
    )

    @model_validator(mode="after")
    def validate_ttl_order(self) -> "BackendSettings":
        """Default lease TTL cannot exceed the maximum."""
        if self.default_lease_ttl > self.max_lease_ttl:
            raise ValueError("default_lease_ttl cannot exceed max_lease_ttl")
        return self


class ClientConfig(BaseModel):
    """HTTP client configuration for talking to Artifactory."""

    timeout_seconds: float = Field(
        default_factory=lambda: float(
            os.getenv(EnvironmentVariable.CLIENT_TIMEOUT.value, str(Timeouts.EXTERNAL_API_CALL))
        ),
        gt=0,
        description="Default timeout for a single Artifactory call",
    )
    user_agent: str = Field(
        default=f"{PRODUCT_NAME}/{PRODUCT_VERSION}", description="User-Agent header"
    )


class StorageConfig(BaseModel):
    """Where the backend's key/value records are kept."""

    backend: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.STORAGE_BACKEND.value, "memory"),
        validate_default=True,
        description="Storage implementation: 'memory' or 'database'",
    )
    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.DATABASE_URL.value, "sqlite:///./artifactory_secrets.db"
        ),
        description="Database connection string for the 'database' backend",
    )

    @field_validator("backend")
    def validate_backend(cls, v: str) -> str:
        """Validate storage backend name."""
        if v.lower() not in {"memory", "database"}:
            raise ValueError(f"Invalid storage backend: {v}. Must be 'memory' or 'database'")
        return v.lower()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        validate_default=True,
        description="Logging level",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FeatureFlags(BaseModel):
    """Feature flags for controlling backend behavior."""

    enable_usage_reporting: bool = Field(
        default_factory=lambda: _env_bool(EnvironmentVariable.USAGE_REPORTING, True),
        description="Send best-effort usage telemetry to Artifactory",
    )
    usage_reporter_workers: int = Field(
        default=2, gt=0, description="Worker threads for usage telemetry"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    backend: BackendSettings = Field(default_factory=BackendSettings)
    client: ClientConfig = Field(default_factory=ClientConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None

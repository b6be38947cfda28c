"""
Fusion Portal Configuration Module.

Handles all application settings, feature flags, and environment configuration.
Uses pydantic-settings for validation and type safety.

The verification engine, billing and key issuance live behind the serverless
functions backend; this service only needs to know where to reach it.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    """Feature flags for enabling/disabling portal modules."""

    model_config = SettingsConfigDict(env_prefix="FEATURE_")

    verify: bool = True
    billing: bool = True
    api_keys: bool = True
    activity: bool = True
    account: bool = True

    def to_dict(self) -> dict[str, bool]:
        """Return feature flags as dictionary for health endpoint."""
        return {
            "verify": self.verify,
            "billing": self.billing,
            "api_keys": self.api_keys,
            "activity": self.activity,
            "account": self.account,
        }


class BackendSettings(BaseSettings):
    """Serverless functions backend."""

    model_config = SettingsConfigDict(env_prefix="BACKEND_")

    base_url: str = Field(default="http://localhost:8888", description="Site origin hosting the functions")
    functions_path: str = Field(default="/.netlify/functions", description="Path prefix of the functions")
    timeout_seconds: float = Field(default=15.0, description="HTTP timeout for regular calls")
    verify_timeout_seconds: float = Field(
        default=120.0,
        description="HTTP timeout for audio verification (payloads are large)",
    )


class SessionSettings(BaseSettings):
    """Client session persistence."""

    model_config = SettingsConfigDict(env_prefix="SESSION_")

    backend: Literal["memory", "file", "redis"] = Field(default="file")
    file_path: str = Field(default=".fusion/session.json", description="Local storage document (file backend)")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL (redis backend)")
    key_prefix: str = Field(default="fusion_", description="Prefix applied to every stored key")
    schema_version: int = Field(default=1, description="Version tag written into every stored record")
    ttl_hours: int = Field(default=24, description="Session lifetime")
    remember_ttl_hours: int = Field(default=720, description="Session lifetime when the device is remembered")


class QueueSettings(BaseSettings):
    """Verification queue limits."""

    model_config = SettingsConfigDict(env_prefix="QUEUE_")

    allowed_extensions: list[str] = Field(
        default_factory=lambda: [".mp3", ".wav", ".m4a", ".aac", ".ogg", ".flac", ".wma"],
    )
    max_file_size_bytes: int = Field(default=100 * 1024 * 1024, description="100MB")
    max_concurrency: int = Field(
        default=1,
        ge=1,
        le=4,
        description="Verifications in flight at once (1 = sequential)",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_log_level: str = "INFO"

    # Dashboard banners
    quota_warning_percent: int = Field(default=80, ge=0, le=100)

    # Nested settings
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

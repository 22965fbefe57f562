"""
Swapt Analytics Platform
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, List
from pydantic import AliasChoices, Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class KlaviyoSettings(BaseSettings):
    """Klaviyo Events API Configuration"""

    model_config = SettingsConfigDict(env_prefix="KLAVIYO_", populate_by_name=True)

    api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("KLAVIYO_API_KEY", "SWAPT_KLAVIYO_API_KEY"),
        description="Fallback private API key when the caller supplies none",
    )
    base_url: str = Field(default="https://a.klaviyo.com/api", description="API root URL")
    revision: str = Field(default="2024-10-15", description="API revision header")
    page_size: int = Field(default=100, description="Events per page")
    timeout_seconds: float = Field(default=30.0, description="Per-request timeout")


class MetricsSettings(BaseSettings):
    """Metric resolution and aggregation thresholds"""

    model_config = SettingsConfigDict(env_prefix="METRICS_")

    submission_metric_name: str = Field(default="Submitted Swapt Code", description="Submission metric name")
    order_metric_name: str = Field(default="Placed Order", description="Purchase metric name")
    min_order_value: float = Field(default=5.0, description="Minimum value of a qualifying purchase")
    progress_log_every: int = Field(default=50, description="Log progress every N submissions")


class StorageSettings(BaseSettings):
    """Metrics cache file location"""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    exports_path: str = Field(default="./public/exports", description="Exports directory")
    stats_file: str = Field(default="swapt_data.json", description="Cached metrics file name")

    @property
    def stats_path(self) -> Path:
        """Full path of the cached metrics file"""
        return Path(self.exports_path) / self.stats_file


class SecuritySettings(BaseSettings):
    """Security Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Rate limiting applies to pipeline-triggering requests only
    rate_limit_requests: int = Field(default=10, alias="RATE_LIMIT_REQUESTS", description="Rate limit requests")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS", description="Rate limit window")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="swapt-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    klaviyo: KlaviyoSettings = Field(default_factory=KlaviyoSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()

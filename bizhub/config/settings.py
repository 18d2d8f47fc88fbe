"""
Configuration Management for Business Hub

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The fixed placeholder rates used by the analytics engine live here too,
so they can be tuned without touching aggregation code.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Key-value storage backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BIZHUB_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="memory",
        pattern="^(memory|json)$",
        description="Storage backend: in-process memory or JSON files on disk"
    )
    data_dir: str = Field(
        default="./data",
        description="Directory holding one JSON file per storage key"
    )
    key_prefix: str = Field(
        default="bizhub_",
        description="Prefix applied to every collection key"
    )
    audit_log_file: Optional[str] = Field(
        default=None,
        description="Path of the JSON-lines audit log (None = local logging only)"
    )

    @field_validator('data_dir')
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        """Warn if the data directory is a file (but don't fail - might be fixed later)."""
        if Path(v).is_file():
            import warnings
            warnings.warn(
                f"Storage data_dir {v} points at a file, not a directory. "
                "JSON storage will fail until this is fixed."
            )
        return v

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)


class AnalyticsSettings(BaseSettings):
    """
    Analytics engine tuning.

    The cost rates are display placeholders, not a real cost model.
    """

    model_config = SettingsConfigDict(
        env_prefix="BIZHUB_ANALYTICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    non_billable_cost_rate: float = Field(
        default=50.0,
        ge=0.0,
        description="Estimated cost per non-billable hour"
    )
    overtime_rate: float = Field(
        default=75.0,
        ge=0.0,
        description="Estimated cost per overtime hour"
    )
    overtime_threshold_hours: float = Field(
        default=8.0,
        gt=0.0,
        le=24.0,
        description="Hours a single time entry may run before counting as overtime"
    )
    peak_multiplier: float = Field(
        default=1.2,
        ge=1.0,
        description="Quarter revenue above mean * this is a peak"
    )
    low_multiplier: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Quarter revenue below mean * this is a low"
    )
    overdue_bottleneck_threshold: float = Field(
        default=20.0,
        ge=0.0,
        le=100.0,
        description="Overdue task percentage above which a bottleneck is flagged"
    )
    top_projects_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many projects the 'top' lists surface"
    )
    top_clients_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many clients the 'top clients' list surfaces"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Single local user owns every timer-produced entry
    current_user_id: str = Field(
        default="user-1",
        min_length=1,
        description="User id stamped on time entries produced by the timer"
    )
    seed_demo_data: bool = Field(
        default=False,
        description="Populate an empty workspace with demo records on startup"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are built on access so a bad value in one
    # section doesn't stop the others from loading

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def analytics(self) -> AnalyticsSettings:
        return AnalyticsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "analytics", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

"""
Configuration Management for the Budget Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The projection constants live here too, so the default policy (1.02 income
growth, 1.01 expense inflation) is visible in one place and can be overridden
per environment.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """JSON file storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding one JSON file per storage key"
    )

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Expand ~ so the directory can be configured relative to home."""
        return v.expanduser()


class ProjectionSettings(BaseSettings):
    """Trend projection policy."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_PROJECTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    income_growth: Decimal = Field(
        default=Decimal("1.02"),
        gt=0,
        description="Multiplier applied to mean historical income"
    )
    expense_inflation: Decimal = Field(
        default=Decimal("1.01"),
        gt=0,
        description="Multiplier applied to mean historical expenses"
    )
    history_months: int = Field(
        default=3,
        ge=1,
        le=12,
        description="How many months with data feed the means"
    )
    horizon_months: int = Field(
        default=3,
        ge=1,
        le=12,
        description="How many future months are projected"
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

    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Chart windows
    trend_months: int = Field(
        default=6,
        ge=1,
        le=60,
        description="Months shown in the income/expense trend"
    )
    income_trend_months: int = Field(
        default=12,
        ge=1,
        le=60,
        description="Months used for the income history and its average"
    )

    # Import sanity thresholds
    max_entry_amount: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Amounts above this are flagged for review on import"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future an imported date can be"
    )

    # Recurrence
    materialize_on_load: bool = Field(
        default=True,
        description="Record due scheduled income whenever the store is opened"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return level


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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def projection(self) -> ProjectionSettings:
        return ProjectionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing any failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "projection", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

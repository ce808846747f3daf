"""Configuration package."""

from budget_tracker.config.settings import (
    AppSettings,
    ProjectionSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ProjectionSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]

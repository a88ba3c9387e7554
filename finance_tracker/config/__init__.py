"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LocalCacheSettings,
    SessionSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LocalCacheSettings",
    "SessionSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

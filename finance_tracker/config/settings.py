"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each concern gets its own settings class with an env prefix, so a
missing remote backend never prevents the local-only mode from starting.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet holding transaction rows"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "The tracker will run in local-only mode until it exists."
            )
        return v


class LocalCacheSettings(BaseSettings):
    """On-device cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_CACHE_",
        extra="ignore"
    )

    directory: str = Field(
        default="~/.finance-tracker",
        description="Directory holding the cache file"
    )
    storage_key: str = Field(
        default="financial-transactions",
        min_length=1,
        description="Fixed key the transaction list is stored under"
    )

    @property
    def cache_path(self) -> Path:
        """Full path of the JSON cache file."""
        return Path(self.directory).expanduser() / f"{self.storage_key}.json"


class SessionSettings(BaseSettings):
    """
    Session identity configuration.

    When no user id is configured there is no session and the
    tracker runs in local-only mode.
    """

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        extra="ignore"
    )

    user_id: Optional[str] = Field(
        default=None,
        description="Identity of the signed-in owner"
    )
    email: Optional[str] = Field(
        default=None,
        description="Email of the signed-in owner (display only)"
    )

    @field_validator('user_id')
    @classmethod
    def blank_user_id_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


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
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )

    # Display
    currency_symbol: str = Field(
        default="R$",
        max_length=5,
        description="Symbol shown in front of amounts in notifications"
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

    # Sub-settings are loaded lazily so a missing remote
    # configuration only fails when the remote store is built.

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def local_cache(self) -> LocalCacheSettings:
        return LocalCacheSettings()

    @property
    def session(self) -> SessionSettings:
        return SessionSettings()

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

    Returns a dict of {setting_name: is_valid} with an extra
    "<name>_error" entry for each failure. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("google_sheets", "local_cache", "session", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

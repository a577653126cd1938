"""
Configuration Management for the Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which storage backend is in use and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets record store configuration."""

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

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
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

    # Storage
    storage_backend: str = Field(
        default="json",
        pattern="^(memory|json|google_sheets)$",
        description="Which record store to use"
    )
    data_dir: str = Field(
        default="~/.expense_tracker",
        description="Directory for the JSON record store"
    )

    # Collection keys
    expenses_key: str = Field(
        default="expenses_v2",
        description="Collection holding single expenses and generated instances"
    )
    templates_key: str = Field(
        default="recurring_expenses_v1",
        description="Collection holding recurring templates"
    )
    audit_key: str = Field(
        default="audit_log",
        description="Collection holding audit events"
    )
    legacy_expense_keys: str = Field(
        default="expenses_v1,expenses,spese,spese_v1",
        description="Comma-separated older expense collections, in lookup order"
    )
    legacy_template_keys: str = Field(
        default="recurring_expenses,ricorrenti,recurring",
        description="Comma-separated older template collections, in lookup order"
    )

    # Validation thresholds
    future_date_tolerance_days: int = Field(
        default=366,
        ge=0,
        description="How far in the future a start date may be before we warn"
    )

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def legacy_expense_keys_list(self) -> list[str]:
        return _split_keys(self.legacy_expense_keys)

    @property
    def legacy_template_keys_list(self) -> list[str]:
        return _split_keys(self.legacy_template_keys)


def _split_keys(value: str) -> list[str]:
    return [key.strip() for key in value.split(",") if key.strip()]


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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

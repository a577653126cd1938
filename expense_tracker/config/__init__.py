"""Configuration package."""

from expense_tracker.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
]

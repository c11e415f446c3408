"""Configuration package."""

from src.config.settings import (
    AppSettings,
    EmailHookSettings,
    ResendSettings,
    Settings,
    SupabaseSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "EmailHookSettings",
    "ResendSettings",
    "Settings",
    "SupabaseSettings",
    "get_settings",
    "validate_all_settings",
]

"""Configuration package."""

from budget_tracker.config.settings import (
    FirestoreSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "FirestoreSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

"""Configuration package."""

from pocket_ledger.config.settings import (
    LedgerSettings,
    RateServiceSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "LedgerSettings",
    "RateServiceSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

"""Configuration package."""

from ledger.config.settings import (
    LedgerSettings,
    Neo4jSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "LedgerSettings",
    "Neo4jSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

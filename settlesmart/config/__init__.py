"""Configuration package."""

from settlesmart.config.settings import (
    AppSettings,
    BalanceSettings,
    SettlementOrder,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BalanceSettings",
    "SettlementOrder",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

"""
Configuration Management for SettleSmart Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The balance engine has exactly one tolerance (epsilon) and it is read
from here by every component, so netting and simplification can never
disagree about what "zero" means.
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SettlementOrder(str, Enum):
    """
    How creditors and debtors are ordered before the greedy sweep.

    INSERTION keeps the order in which ids were inserted into the balance map.
    LARGEST_FIRST sorts each side by magnitude (stable, ties keep insertion order).
    """
    INSERTION = "insertion"
    LARGEST_FIRST = "largest_first"


class BalanceSettings(BaseSettings):
    """Balance engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SETTLESMART_BALANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    epsilon: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Amounts at or below this are treated as settled noise"
    )
    decimal_precision: int = Field(
        default=28,
        ge=10,
        le=100,
        description="Significant digits used for balance arithmetic"
    )
    settlement_order: SettlementOrder = Field(
        default=SettlementOrder.INSERTION,
        description="Default ordering strategy for the settlement sweep"
    )
    timeline_days: int = Field(
        default=30,
        ge=1,
        le=366,
        description="Trailing window length for balance timelines"
    )
    strict_participants: bool = Field(
        default=True,
        description="Raise on settlements referencing unknown participants"
    )

    @field_validator('epsilon')
    @classmethod
    def validate_epsilon(cls, v: Decimal) -> Decimal:
        """Epsilon must be usable as a cent-level tolerance."""
        if v >= 1:
            raise ValueError(f"Epsilon {v} is too coarse; expected a sub-unit tolerance")
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
        description="Minimum level for local structured logs"
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

    @property
    def balance(self) -> BalanceSettings:
        return BalanceSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.balance
        results["balance"] = True
    except Exception as e:
        results["balance"] = False
        results["balance_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results

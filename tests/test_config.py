"""Tests for configuration loading."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from settlesmart.config import (
    BalanceSettings,
    SettlementOrder,
    get_settings,
    validate_all_settings,
)


class TestBalanceSettings:

    def test_defaults(self):
        settings = BalanceSettings()
        assert settings.epsilon == Decimal("0.01")
        assert settings.decimal_precision == 28
        assert settings.settlement_order == SettlementOrder.INSERTION
        assert settings.timeline_days == 30
        assert settings.strict_participants is True

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SETTLESMART_BALANCE_EPSILON", "0.001")
        monkeypatch.setenv("SETTLESMART_BALANCE_SETTLEMENT_ORDER", "largest_first")
        settings = BalanceSettings()
        assert settings.epsilon == Decimal("0.001")
        assert settings.settlement_order == SettlementOrder.LARGEST_FIRST

    @pytest.mark.parametrize("epsilon", ["0", "-0.01", "1", "5"])
    def test_rejects_unusable_epsilon(self, epsilon):
        with pytest.raises(ValidationError):
            BalanceSettings(epsilon=Decimal(epsilon))

    def test_rejects_empty_timeline_window(self):
        with pytest.raises(ValidationError):
            BalanceSettings(timeline_days=0)


class TestRootSettings:

    def test_sub_settings_are_read_on_access(self, monkeypatch):
        """Test the root container picks up environment changes."""
        monkeypatch.setenv("SETTLESMART_BALANCE_TIMELINE_DAYS", "7")
        assert get_settings().balance.timeline_days == 7

    def test_validate_all_settings(self):
        results = validate_all_settings()
        assert results["balance"] is True
        assert results["app"] is True

    def test_validate_all_settings_reports_bad_values(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        results = validate_all_settings()
        assert results["app"] is False
        assert "app_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

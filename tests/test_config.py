"""
Tests for configuration and logging setup
"""

import logging

import pytest

from ledger_core.audit import configure_logging
from ledger_core.config import LedgerSettings, StoreSettings, get_settings, validate_all_settings


class TestLedgerSettings:
    """Tests for ledger policy settings."""

    def test_defaults(self, monkeypatch):
        """Test the out-of-the-box policy."""
        for name in ("LEDGER_BASE_CURRENCY", "LEDGER_DEFAULT_CATEGORIES"):
            monkeypatch.delenv(name, raising=False)
        settings = LedgerSettings(_env_file=None)
        assert settings.base_currency == "PHP"
        assert settings.categories_list == ["Food", "Bills", "Transport", "Shopping", "Other"]
        assert settings.store_key == "budgetData"

    def test_environment_overrides(self, monkeypatch):
        """Test that LEDGER_ variables are read."""
        monkeypatch.setenv("LEDGER_BASE_CURRENCY", "usd")
        monkeypatch.setenv("LEDGER_DEFAULT_CATEGORIES", "Rent, Food ,,")
        settings = LedgerSettings(_env_file=None)
        assert settings.base_currency == "USD"
        assert settings.categories_list == ["Rent", "Food"]

    def test_inverted_thresholds(self):
        """Test that warning above exceeded is rejected."""
        with pytest.raises(ValueError):
            LedgerSettings(_env_file=None, warning_percent=120, exceeded_percent=100)

    def test_store_directory(self, monkeypatch):
        """Test the store directory override."""
        monkeypatch.setenv("LEDGER_STORE_DIRECTORY", "/tmp/ledger")
        assert StoreSettings(_env_file=None).directory == "/tmp/ledger"


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_all_valid(self, monkeypatch):
        """Test a clean environment."""
        monkeypatch.delenv("LEDGER_WARNING_PERCENT", raising=False)
        results = validate_all_settings()
        assert results["ledger"] is True
        assert results["store"] is True
        assert results["app"] is True

    def test_invalid_section_is_reported(self, monkeypatch):
        """Test that a bad value is reported, not raised."""
        monkeypatch.setenv("LEDGER_WARNING_PERCENT", "150")
        results = validate_all_settings()
        assert results["ledger"] is False
        assert "ledger_error" in results

    def test_settings_are_cached(self):
        """Test that get_settings returns one instance."""
        assert get_settings() is get_settings()


class TestConfigureLogging:
    """Tests for log setup."""

    def test_explicit_level(self):
        """Test that an explicit level configures the root logger."""
        root = logging.getLogger()
        previous = root.level
        saved_handlers = root.handlers[:]
        root.handlers = []
        try:
            configure_logging("WARNING")
            assert root.level == logging.WARNING
        finally:
            root.handlers = saved_handlers
            root.setLevel(previous)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""Tests for settings and the module/tab catalog."""

import pytest
from decimal import Decimal

from gemledger.config import (
    APP_MODULES,
    LedgerSettings,
    ModuleType,
    get_module_name,
    get_settings,
    is_dashboard_tab,
    stone_location_modules,
    validate_all_settings,
)


class TestLedgerSettings:
    """Tests for ledger configuration."""

    def test_defaults(self, monkeypatch):
        for name in ("LEDGER_REPORTING_CURRENCY", "LEDGER_STRICT_CURRENCY", "LEDGER_STONE_REGISTRY_KEY"):
            monkeypatch.delenv(name, raising=False)
        settings = LedgerSettings()
        assert settings.reporting_currency == "LKR"
        assert settings.high_outstanding_threshold == Decimal("100000")
        assert settings.stone_registry_key == "vg_stone_persistence_registry_v2"
        assert settings.strict_currency is False
        assert (settings.fallback_module_id, settings.fallback_tab_id) == ("vision-gems", "Spinel")

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("LEDGER_REPORTING_CURRENCY", "usd")
        monkeypatch.setenv("LEDGER_STRICT_CURRENCY", "true")
        settings = LedgerSettings()
        assert settings.reporting_currency == "USD"
        assert settings.strict_currency is True

    def test_currency_must_be_three_letters(self):
        with pytest.raises(ValueError):
            LedgerSettings(reporting_currency="RUPEE")

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all_settings(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        results = validate_all_settings()
        assert results["ledger"] is True
        assert results["store"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


class TestCatalog:
    """Tests for the module/tab catalog."""

    def test_module_ids_unique(self):
        ids = [module.id for module in APP_MODULES]
        assert len(ids) == len(set(ids))

    def test_module_name_falls_back_to_id(self):
        assert get_module_name("bkk") == "BKK Operations"
        assert get_module_name("unknown-module") == "unknown-module"

    def test_dashboard_tabs(self):
        assert is_dashboard_tab("DashboardGems")
        assert is_dashboard_tab("VG.T Dashboard")
        assert not is_dashboard_tab("Approval")

    def test_scannable_tabs_skip_dashboards(self):
        [vision_gems] = [m for m in APP_MODULES if m.id == "vision-gems"]
        assert "DashboardGems" not in vision_gems.scannable_tabs()
        assert vision_gems.scannable_tabs()[0] == "veriety"

    def test_stone_location_modules(self):
        modules = stone_location_modules()
        assert [m.id for m in modules] == ["vision-gems", "in-stocks", "spinel-gallery"]
        assert all(
            m.type == ModuleType.INVENTORY or m.id == "spinel-gallery" for m in modules
        )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

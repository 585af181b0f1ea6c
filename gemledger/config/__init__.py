"""Configuration package."""

from gemledger.config.modules import (
    APP_MODULES,
    ModuleConfig,
    ModuleType,
    get_module,
    get_module_name,
    is_dashboard_tab,
    stone_location_modules,
)
from gemledger.config.settings import (
    GoogleSheetsSettings,
    LedgerSettings,
    Settings,
    StoreSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    # Catalog
    "APP_MODULES",
    "ModuleConfig",
    "ModuleType",
    "get_module",
    "get_module_name",
    "is_dashboard_tab",
    "stone_location_modules",
    # Settings
    "GoogleSheetsSettings",
    "LedgerSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
    "validate_all_settings",
]

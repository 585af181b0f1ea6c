"""
Configuration Management for Gem Ledger

Settings come from environment variables (or .env) through pydantic-settings.

DESIGN DECISION: Nothing else in the package reads the environment.
The reporting currency and the registry key are the only constants the
ledger core depends on; everything else selects a storage backend.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger assembly and sync configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    reporting_currency: str = Field(
        default="LKR",
        min_length=3,
        max_length=3,
        description="Single currency every ledger entry is expressed in"
    )
    high_outstanding_threshold: Decimal = Field(
        default=Decimal("100000"),
        ge=0,
        description="Outstanding amount (reporting currency) flagged by the notification classifier"
    )
    stone_registry_key: str = Field(
        default="vg_stone_persistence_registry_v2",
        description="Store key holding the owning-entity (stone) registry"
    )
    strict_currency: bool = Field(
        default=False,
        description="Reject records whose amount cannot be converted instead of using the raw amount"
    )

    # Where stone sales land when their location matches no inventory tab
    fallback_module_id: str = Field(default="vision-gems")
    fallback_tab_id: str = Field(default="Spinel")

    @field_validator('reporting_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()


class StoreSettings(BaseSettings):
    """Key-value store backend selection."""

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["memory", "json_file", "google_sheets"] = Field(
        default="memory",
        description="Which KeyValueStore implementation to build"
    )
    json_path: str = Field(
        default="gemledger_store.json",
        description="File used by the json_file backend"
    )


class GoogleSheetsSettings(BaseSettings):
    """Spreadsheet backing the google_sheets store and the audit log."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file (JSON)"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Spreadsheet holding the store and audit worksheets"
    )

    store_sheet_name: str = Field(
        default="KeyValueStore",
        description="Worksheet with one (key, blob) row per store key"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Worksheet audit events are appended to"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing key file only warns; it may be mounted after startup."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Service account key file {v} does not exist yet; "
                "the google_sheets backend will fail to connect until it does."
            )
        return v


class Settings(BaseSettings):
    """
    Entry point to every settings group.

    Each group is built on access, so a missing Google Sheets
    configuration does not break the memory or json_file backends.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings; get_settings.cache_clear() forces a reload.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load every settings group, for startup checks.

    Returns {group: loaded}, plus {group}_error with the reason for each
    group that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("ledger", "store", "google_sheets"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

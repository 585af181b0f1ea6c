"""
Storage Services Package

Provides the abstract key-value store port and its implementations.
The in-memory and JSON-file stores need no external service; Google
Sheets is imported lazily so its client libraries are only touched
when that backend is selected.
"""

from typing import Optional

from gemledger.config import StoreSettings, get_settings
from gemledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CorruptPartitionError,
    KeyValueStore,
    StorageError,
)
from gemledger.services.storage.json_file import JsonFileKeyValueStore
from gemledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryKeyValueStore,
)


def create_store(settings: Optional[StoreSettings] = None) -> KeyValueStore:
    """Build the store selected by STORE_BACKEND."""
    settings = settings or get_settings().store

    if settings.backend == "json_file":
        return JsonFileKeyValueStore(settings.json_path)
    if settings.backend == "google_sheets":
        from gemledger.services.storage.google_sheets import GoogleSheetsKeyValueStore
        return GoogleSheetsKeyValueStore()
    return InMemoryKeyValueStore()


__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStore",
    # Exceptions
    "ConnectionError",
    "CorruptPartitionError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    # Factory
    "create_store",
]

"""Services package."""

from gemledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    CorruptPartitionError,
    InMemoryAuditStorage,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    StorageError,
    create_store,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "CorruptPartitionError",
    "InMemoryAuditStorage",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "StorageError",
    "create_store",
]

"""
Abstract Storage Interface

DESIGN DECISION: The whole application persists into one flat,
string-keyed blob store (originally the browser's local storage). We
define that store as an abstract port. This allows us to:
1. Use an in-memory map for tests
2. Keep a local JSON file for single-user installs
3. Swap in Google Sheets (or a real KV store) without touching the
   normalizers or the sync manager

The interface is intentionally tiny - get/set/list_keys. The store does
not know about JSON, schemas, transactions or locking.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from gemledger.models.audit import AuditEvent


class KeyValueStore(ABC):
    """
    Abstract interface for the flat blob store.

    Any storage implementation (memory, file, Google Sheets, ...)
    must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a blob.

        Args:
            key: Store key

        Returns:
            The stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write a blob, replacing whatever was stored under the key.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def list_keys(self) -> list[str]:
        """
        All keys currently present, in no particular order.
        """
        pass

    def refresh(self) -> None:
        """
        Drop any snapshot the backend holds so the next read sees the
        current contents. Called before every full ledger scan.
        """
        return None

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class AuditStorageInterface(ABC):
    """
    Where audit events are persisted beyond the local log.

    Events are only ever appended.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Persist one event.

        Returns:
            True once the event is stored
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one sync call).

        Returns:
            The events, oldest first
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        The latest events, up to `limit`.

        Returns:
            Events, newest first
        """
        pass


class StorageError(Exception):
    """A store read or write failed."""
    pass


class CorruptPartitionError(StorageError):
    """A stored blob exists but cannot be decoded."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupt data under {key}: {reason}")


class ConnectionError(StorageError):
    """The storage backend could not be reached or authorized."""
    pass

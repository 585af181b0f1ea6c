"""
In-memory storage implementations.

Used by the tests and by anything that wants to assemble a ledger from
an exported snapshot of the store.
"""

from typing import Optional
from uuid import UUID

from gemledger.models.audit import AuditEvent
from gemledger.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStore,
)


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. Insertion order is kept for list_keys()."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def list_keys(self) -> list[str]:
        return list(self._data)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

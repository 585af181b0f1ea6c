"""Tests for the audit logger."""

import pytest

from gemledger.audit import AuditLogger, create_correlation_id
from gemledger.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from gemledger.services.storage import AuditStorageInterface, InMemoryAuditStorage


class FailingAuditStorage(AuditStorageInterface):
    """Storage that raises on every write."""

    def append_event(self, event):
        raise RuntimeError("sheet unavailable")

    def get_events_by_correlation_id(self, correlation_id):
        return []

    def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for local logging and persistence."""

    def test_without_storage(self):
        """Test that logging locally only still reports success."""
        event = AuditEventBuilder.partition_parse_failed(key="k", error_message="bad")
        assert AuditLogger().log(event) is True

    def test_events_persisted(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        logger.log_child_record_synced(
            entity_id="s1",
            code="VG-001",
            child_record_id="r1",
            replaced=False,
            correlation_id=correlation_id,
        )
        logger.log_child_record_removed(
            entity_id="s1",
            code="VG-001",
            child_record_id="r1",
            correlation_id=correlation_id,
        )

        events = storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.CHILD_RECORD_SYNCED,
            AuditEventType.CHILD_RECORD_REMOVED,
        ]
        assert events[0].details["action"] == "appended"
        assert events[0].entity_type == "stone"

    def test_storage_failure_is_swallowed(self):
        """Test that a failing audit store never breaks the caller."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.system_error(error_type="x", error_message="y")
        assert logger.log(event) is False

    def test_severity_of_builders(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        logger.log_owning_entity_not_found(code="X", child_record_id="r1", operation="upsert")
        logger.log_ledger_assembled(entry_count=3, partition_count=2, skipped_partitions=0)
        logger.log_ledger_assembled(entry_count=3, partition_count=2, skipped_partitions=1)
        logger.log_error(error_type="corrupt_stone_registry", error_message="bad", details={"key": "k"})

        severities = [e.severity for e in reversed(storage.get_recent_events())]
        assert severities == [
            AuditSeverity.WARNING,
            AuditSeverity.INFO,
            AuditSeverity.WARNING,
            AuditSeverity.ERROR,
        ]

    def test_recent_events_newest_first(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        for key in ("a", "b", "c"):
            logger.log_partition_parse_failed(key=key, error_message="bad")

        assert [e.entity_id for e in storage.get_recent_events(limit=2)] == ["c", "b"]

    def test_correlation_ids_unique(self):
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

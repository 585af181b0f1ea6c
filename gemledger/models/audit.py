"""
Audit Models for Gem Ledger

The store has no transactions and no foreign keys, so every write the
sync manager makes to an owning entity (and every partition the ledger
had to skip) is recorded as an audit event. This provides:
1. Traceability of denormalized copies (who put r1 into stone X?)
2. Debugging information when a partition is corrupt
3. A trail for the known lost-update race on concurrent edits

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """What happened; one value per audited situation."""
    # Ledger read path
    PARTITION_PARSE_FAILED = "partition_parse_failed"
    LEDGER_ASSEMBLED = "ledger_assembled"

    # Sync write path
    CHILD_RECORD_SYNCED = "child_record_synced"
    CHILD_RECORD_REMOVED = "child_record_removed"
    CHILD_RECORD_DETACHED = "child_record_detached"
    OWNING_ENTITY_NOT_FOUND = "owning_entity_not_found"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Also decides the level of the local log line."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One audited occurrence, such as a skipped partition or a write to a
    stone.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Identifies the event across local log and audit sheet"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="UTC, set when the event is built"
    )

    # Kind
    event_type: AuditEventType = Field(
        ...,
        description="What happened"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Log level of the local log line"
    )

    # Subject of the event
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'stone', 'partition', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id or key of the entity this event relates to"
    )

    # Groups the events of one ledger read or one sync call
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all writes of one sync call)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="One line for a human reading the audit sheet"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Machine-readable fields specific to the event type"
    )

    # Set on failures only
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Keyword arguments for the structlog call.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        One row of the audit worksheet.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]

    @classmethod
    def from_sheets_row(cls, row: list) -> 'AuditEvent':
        """
        Inverse of to_sheets_row. Short rows are padded with blanks.

        Raises ValueError on a row that does not describe an event.
        """
        cells = [str(cell) for cell in row] + [""] * (10 - len(row))
        (event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message) = cells[:10]

        return cls(
            event_id=UUID(event_id),
            timestamp=datetime.fromisoformat(timestamp),
            event_type=AuditEventType(event_type),
            severity=AuditSeverity(severity or AuditSeverity.INFO.value),
            entity_type=entity_type or None,
            entity_id=entity_id or None,
            correlation_id=UUID(correlation_id) if correlation_id else None,
            description=description,
            details=json.loads(details_json) if details_json else {},
            error_message=error_message or None,
        )


class AuditEventBuilder:
    """
    One constructor per AuditEventType, so callers never assemble
    descriptions or detail dicts by hand.

    Usage:
        event = AuditEventBuilder.child_record_synced(stone_id, code, record_id, replaced=False)
        event = AuditEventBuilder.partition_parse_failed(key, error)
    """

    @staticmethod
    def partition_parse_failed(
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTITION_PARSE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="partition",
            entity_id=key,
            correlation_id=correlation_id,
            description=f"Partition skipped, cannot be decoded: {key}",
            error_message=error_message,
            details={"key": key},
        )

    @staticmethod
    def ledger_assembled(
        entry_count: int,
        partition_count: int,
        skipped_partitions: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        severity = AuditSeverity.WARNING if skipped_partitions else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.LEDGER_ASSEMBLED,
            severity=severity,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=(
                f"Ledger assembled: {entry_count} entries from "
                f"{partition_count} partitions ({skipped_partitions} skipped)"
            ),
            details={
                "entry_count": entry_count,
                "partition_count": partition_count,
                "skipped_partitions": skipped_partitions,
            },
        )

    @staticmethod
    def child_record_synced(
        entity_id: str,
        code: str,
        child_record_id: str,
        replaced: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        action = "replaced" if replaced else "appended"
        return AuditEvent(
            event_type=AuditEventType.CHILD_RECORD_SYNCED,
            entity_type="stone",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Child record {child_record_id} {action} on {code}",
            details={
                "code": code,
                "child_record_id": child_record_id,
                "action": action,
            },
        )

    @staticmethod
    def child_record_removed(
        entity_id: str,
        code: str,
        child_record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHILD_RECORD_REMOVED,
            entity_type="stone",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Child record {child_record_id} removed from {code}",
            details={
                "code": code,
                "child_record_id": child_record_id,
            },
        )

    @staticmethod
    def child_record_detached(
        entity_id: str,
        from_code: str,
        to_code: str,
        child_record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHILD_RECORD_DETACHED,
            entity_type="stone",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Child record {child_record_id} moved from {from_code} to {to_code}",
            details={
                "from_code": from_code,
                "to_code": to_code,
                "child_record_id": child_record_id,
            },
        )

    @staticmethod
    def owning_entity_not_found(
        code: str,
        child_record_id: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OWNING_ENTITY_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="stone",
            correlation_id=correlation_id,
            description=f"No stone with code {code} for {operation} of {child_record_id}",
            details={
                "code": code,
                "child_record_id": child_record_id,
                "operation": operation,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )


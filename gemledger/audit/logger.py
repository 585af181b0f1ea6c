"""
Audit Logger

DESIGN DECISION: Every write to an owning entity and every partition the
ledger had to skip is logged. This provides:
1. Traceability of denormalized copies
2. Debugging capability for corrupt partitions
3. A record of the last-writer-wins overwrites the store allows

The audit logger:
- Gracefully handles failures (a failed audit write never fails a sync)
- Supports correlation IDs to trace all writes of one sync call
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from gemledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from gemledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


_LOCAL_LEVEL = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Writes every audit event to the structured log and, when configured,
    to an audit storage backend.

    The sync manager and the ledger assembler hold one of these; neither
    ever sees an exception coming out of it.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where events are persisted. None keeps them in the
                    local log only.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when a configured storage failed to take it.
        """
        emit = getattr(self._logger, _LOCAL_LEVEL[event.severity])
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return self._storage.append_event(event)
        except Exception as e:
            # An audit write never fails the operation being audited
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
                event_type=event.event_type.value,
            )
            return False

    def log_partition_parse_failed(
        self,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.partition_parse_failed(
            key=key,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_ledger_assembled(
        self,
        entry_count: int,
        partition_count: int,
        skipped_partitions: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.ledger_assembled(
            entry_count=entry_count,
            partition_count=partition_count,
            skipped_partitions=skipped_partitions,
            correlation_id=correlation_id,
        ))

    def log_child_record_synced(
        self,
        entity_id: str,
        code: str,
        child_record_id: str,
        replaced: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.child_record_synced(
            entity_id=entity_id,
            code=code,
            child_record_id=child_record_id,
            replaced=replaced,
            correlation_id=correlation_id,
        ))

    def log_child_record_removed(
        self,
        entity_id: str,
        code: str,
        child_record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.child_record_removed(
            entity_id=entity_id,
            code=code,
            child_record_id=child_record_id,
            correlation_id=correlation_id,
        ))

    def log_child_record_detached(
        self,
        entity_id: str,
        from_code: str,
        to_code: str,
        child_record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.child_record_detached(
            entity_id=entity_id,
            from_code=from_code,
            to_code=to_code,
            child_record_id=child_record_id,
            correlation_id=correlation_id,
        ))

    def log_owning_entity_not_found(
        self,
        code: str,
        child_record_id: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.owning_entity_not_found(
            code=code,
            child_record_id=child_record_id,
            operation=operation,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a sync call or a ledger read.
    """
    return uuid4()

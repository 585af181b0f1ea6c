"""
Data Models Package

This package contains all Pydantic models used in Gem Ledger.
All data flowing through the system must conform to these schemas.
"""

from gemledger.models.ledger import (
    CapitalRecord,
    ChildRecord,
    CutPolishExpenseRecord,
    CutPolishRecord,
    CutPolishType,
    DealRecord,
    ExpenseRecord,
    ExportChargeRecord,
    HotelChargeRecord,
    LedgerEntry,
    PaymentLedgerRecord,
    PaymentStatus,
    PurchasingRecord,
    RecordKind,
    ServiceRecord,
    SourceRecord,
    StatementLineRecord,
    Stone,
    SyncResult,
    TicketVisaRecord,
    TransactionType,
    normalize_code,
)
from gemledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "LedgerEntry",
    "RecordKind",
    "TransactionType",
    # Source records
    "CapitalRecord",
    "CutPolishExpenseRecord",
    "DealRecord",
    "ExpenseRecord",
    "ExportChargeRecord",
    "HotelChargeRecord",
    "PaymentLedgerRecord",
    "PaymentStatus",
    "PurchasingRecord",
    "ServiceRecord",
    "SourceRecord",
    "StatementLineRecord",
    "TicketVisaRecord",
    # Owning entities
    "ChildRecord",
    "CutPolishRecord",
    "CutPolishType",
    "Stone",
    "SyncResult",
    "normalize_code",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

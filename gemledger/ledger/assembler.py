"""
Ledger Assembler

Builds the consolidated statement from scratch on every call:

1. Scan every (module, tab) of the catalog, every partitioned record
   kind, through the partition key resolver; then the stone registry
2. Normalize each present partition
3. Sort by date (stable) and assign the running balance

DESIGN DECISION: Nothing is cached and nothing is written. Two calls
over an unchanged store return identical statements; a partition that
cannot be decoded is reported and left out, never allowed to fail the
whole statement.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from gemledger.audit import AuditLogger, create_correlation_id
from gemledger.config import get_settings
from gemledger.ledger.keys import PARTITIONED_KINDS, PartitionRead, PartitionResolver
from gemledger.ledger.normalizers import (
    NormalizationContext,
    normalize_records,
    normalize_stones,
)
from gemledger.models.ledger import LedgerEntry, RecordKind
from gemledger.services.storage import KeyValueStore


logger = structlog.get_logger(__name__)


class AssemblyReport(BaseModel):
    """What one assembly run read, skipped and rejected."""

    partition_count: int = 0
    skipped_partitions: list[PartitionRead] = Field(
        default_factory=list,
        description="Corrupt partitions left out of the ledger"
    )
    rejected_records: int = 0


def sort_by_date(entries: list[LedgerEntry]) -> list[LedgerEntry]:
    """Oldest first. ISO dates sort lexically; ties keep their input order."""
    return sorted(entries, key=lambda entry: entry.date)


def apply_running_balance(
    entries: list[LedgerEntry],
    opening_balance: Decimal = Decimal("0"),
) -> list[LedgerEntry]:
    """Assign balance = previous balance + credit - debit, in place."""
    balance = opening_balance
    for entry in entries:
        balance += entry.net
        entry.balance = balance
    return entries


def assemble_partitions(
    partitions: list[PartitionRead],
    ctx: NormalizationContext,
    report: Optional[AssemblyReport] = None,
) -> list[LedgerEntry]:
    """
    Turn already-read partitions (in scan order) into the final ledger.

    Absent and corrupt partitions contribute nothing. Stone registry
    reads are tagged RecordKind.STONE_SALE.
    """
    report = report if report is not None else AssemblyReport()
    entries: list[LedgerEntry] = []

    for read in partitions:
        if read.is_corrupt:
            report.skipped_partitions.append(read)
            continue
        if not read.is_present:
            continue

        report.partition_count += 1
        if read.kind == RecordKind.STONE_SALE:
            partition_entries, rejected = normalize_stones(read.records, ctx)
        else:
            partition_entries, rejected = normalize_records(
                read.kind, read.records, read.module_id, read.tab_id, ctx
            )
        entries.extend(partition_entries)
        report.rejected_records += rejected

    return apply_running_balance(sort_by_date(entries))


class LedgerAssembler:
    """Read-only builder of the consolidated ledger."""

    def __init__(
        self,
        store: KeyValueStore,
        context: Optional[NormalizationContext] = None,
        audit_logger: Optional[AuditLogger] = None,
        stone_registry_key: Optional[str] = None,
    ):
        self._store = store
        self._resolver = PartitionResolver(store)
        self._ctx = context or NormalizationContext.from_settings()
        self._audit = audit_logger or AuditLogger()
        self._stone_registry_key = stone_registry_key or get_settings().ledger.stone_registry_key

    @property
    def context(self) -> NormalizationContext:
        return self._ctx

    def scan(self) -> list[PartitionRead]:
        """
        Read every partition, in scan order.

        Scan order is catalog module order, then tab order, then record
        kind order, with the stone registry last. Same-date entries keep
        this order in the final ledger.
        """
        self._store.refresh()

        reads = [
            self._resolver.resolve(module.id, tab_id, kind)
            for module in self._ctx.modules
            for tab_id in module.scannable_tabs()
            for kind in PARTITIONED_KINDS
        ]
        registry = self._resolver.read_key(self._stone_registry_key)
        reads.append(registry.model_copy(update={"kind": RecordKind.STONE_SALE}))
        return reads

    def assemble(self, correlation_id: Optional[UUID] = None) -> list[LedgerEntry]:
        """Assemble the full ledger, oldest first, with running balances."""
        correlation_id = correlation_id or create_correlation_id()
        report = AssemblyReport()

        ledger = assemble_partitions(self.scan(), self._ctx, report)

        for skipped in report.skipped_partitions:
            self._audit.log_partition_parse_failed(
                key=skipped.key,
                error_message=skipped.error or "",
                correlation_id=correlation_id,
            )

        logger.info(
            "ledger_assembled",
            entry_count=len(ledger),
            partition_count=report.partition_count,
            skipped_partitions=len(report.skipped_partitions),
            rejected_records=report.rejected_records,
        )
        self._audit.log_ledger_assembled(
            entry_count=len(ledger),
            partition_count=report.partition_count,
            skipped_partitions=len(report.skipped_partitions),
            correlation_id=correlation_id,
        )
        return ledger

    def get_all_ledger_entries(self) -> list[LedgerEntry]:
        return self.assemble()

"""
Main Orchestrator for Gem Ledger

This module ties together all the components and defines the two
entry points the rest of the application uses:
1. Ledger read (scan partitions -> normalize -> sort -> running balance)
2. Child-record sync (source record edited -> stones carrying its code updated)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The ledger is derived on every read, never stored
- The write path touches only the stone registry
- Every write is audited

A missing stone is reported in the SyncResult, never raised: the edit
to the source record has already succeeded and must not be undone.
"""

from typing import Any, Optional, Union
from uuid import UUID

import structlog

from gemledger.audit import AuditLogger, create_correlation_id
from gemledger.config import ModuleConfig, Settings, get_settings
from gemledger.ledger import LedgerAssembler, NormalizationContext
from gemledger.models.ledger import (
    ChildRecord,
    CutPolishExpenseRecord,
    LedgerEntry,
    SyncResult,
)
from gemledger.queries import LedgerQuery, LedgerQueryResult, QueryExecutor, export_csv
from gemledger.services.storage import KeyValueStore, create_store
from gemledger.sync import DenormalizedSyncManager, StoneRegistry, child_record_from_cut_polish_expense


logger = structlog.get_logger(__name__)


class LedgerService:
    """
    Facade over the assembler, the sync manager and the query engine.

    All three share one store, so a sync is visible to the very next
    ledger read.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        audit_logger: Optional[AuditLogger] = None,
        modules: Optional[list[ModuleConfig]] = None,
    ):
        settings = settings or get_settings()
        self._settings = settings
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()

        context = NormalizationContext.from_settings(settings.ledger, modules)
        self._assembler = LedgerAssembler(
            store,
            context=context,
            audit_logger=self._audit_logger,
            stone_registry_key=settings.ledger.stone_registry_key,
        )
        self._sync_manager = DenormalizedSyncManager(
            StoneRegistry(store, settings.ledger.stone_registry_key),
            audit_logger=self._audit_logger,
        )
        self._query_executor = QueryExecutor(self.get_all_ledger_entries)

    # =========================================================================
    # READ
    # =========================================================================

    def get_all_ledger_entries(self) -> list[LedgerEntry]:
        """Every ledger entry, oldest first, with running balances."""
        return self._assembler.assemble()

    def query(self, query: Optional[LedgerQuery] = None) -> LedgerQueryResult:
        """Filter the ledger and total what is left."""
        return self._query_executor.execute(query or LedgerQuery())

    def export_statement_csv(self, query: Optional[LedgerQuery] = None) -> str:
        result = self.query(query)
        return export_csv(result.entries, self._settings.ledger.reporting_currency)

    # =========================================================================
    # WRITE
    # =========================================================================

    def sync_child_record(
        self,
        code: str,
        child_record: Union[ChildRecord, dict[str, Any]],
        previous_code: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SyncResult:
        """
        Embed (or refresh) a child record in every stone carrying `code`.

        Pass `previous_code` when the source record's code was edited.
        """
        correlation_id = correlation_id or create_correlation_id()
        result = self._sync_manager.upsert(
            code,
            child_record,
            previous_code=previous_code,
            correlation_id=correlation_id,
        )
        if result.not_found:
            logger.warning(
                "sync_target_missing",
                code=code,
                message=f"No stone found with code {code}; the record was saved without a stone link",
            )
        return result

    def remove_child_record(
        self,
        code: str,
        child_record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> SyncResult:
        """Strip a child record from every stone carrying `code`."""
        return self._sync_manager.remove(
            code,
            child_record_id,
            correlation_id=correlation_id or create_correlation_id(),
        )

    def sync_cut_polish_expense(
        self,
        item: Union[CutPolishExpenseRecord, dict[str, Any]],
        previous_code: Optional[str] = None,
    ) -> SyncResult:
        """Mirror a saved cut & polish expense into the stones it refers to."""
        if isinstance(item, dict):
            item = CutPolishExpenseRecord.from_store(item)
        return self.sync_child_record(
            item.code,
            child_record_from_cut_polish_expense(item),
            previous_code=previous_code,
        )

    def remove_cut_polish_expense(
        self,
        item: Union[CutPolishExpenseRecord, dict[str, Any]],
    ) -> SyncResult:
        """Take a deleted cut & polish expense off the stones it was copied to."""
        if isinstance(item, dict):
            item = CutPolishExpenseRecord.from_store(item)
        return self.remove_child_record(item.code, item.id)


def create_ledger_service(settings: Optional[Settings] = None) -> LedgerService:
    """
    Factory function to build the service from settings.

    With the Google Sheets backend, audit events go to the audit sheet of
    the same spreadsheet. If that sheet cannot be reached, auditing
    continues locally only; the store itself must be reachable.
    """
    settings = settings or get_settings()

    if settings.store.backend == "google_sheets":
        from gemledger.services.storage.google_sheets import (
            GoogleSheetsAuditStorage,
            GoogleSheetsClient,
            GoogleSheetsKeyValueStore,
        )

        client = GoogleSheetsClient()
        store = GoogleSheetsKeyValueStore(client)
        try:
            client.get_audit_sheet()
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(client))
        except Exception as e:
            logger.warning("audit_storage_unavailable", error=str(e))
            audit_logger = AuditLogger()
    else:
        store = create_store(settings.store)
        audit_logger = AuditLogger()

    return LedgerService(store, settings=settings, audit_logger=audit_logger)

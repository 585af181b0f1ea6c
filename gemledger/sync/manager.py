"""
Denormalized Sync Manager

Cut & polish jobs are recorded in their own partitions, and a copy of
each job is embedded in every stone whose code the job refers to. This
manager keeps those copies in step with the source records.

Both operations are keyed by the stone's current code (natural key),
never by the stone's internal id. Codes are not unique: a job is copied
into every stone that carries its code.

A code that matches no stone is not an error. The result says
not_found=True and the caller shows a passing warning; the edit to the
source record stands on its own.

NOTE: Every stone is written separately and nothing is transactional. A
failure half-way leaves the stones written so far updated; calling the
same upsert again converges, because replacing a job by id is idempotent.
"""

from typing import Any, Optional, Union
from uuid import UUID

import structlog

from gemledger.audit import AuditLogger, create_correlation_id
from gemledger.models.ledger import (
    ChildRecord,
    CutPolishExpenseRecord,
    CutPolishRecord,
    CutPolishType,
    Stone,
    SyncResult,
    normalize_code,
)
from gemledger.services.storage import CorruptPartitionError
from gemledger.sync.repository import StoneRegistry


logger = structlog.get_logger(__name__)


def child_record_from_cut_polish_expense(
    item: Union[CutPolishExpenseRecord, dict[str, Any]],
) -> CutPolishRecord:
    """
    The copy of a cut & polish expense that gets embedded in stones.

    The copy keeps the expense id, so later edits find and replace it.
    """
    if isinstance(item, dict):
        item = CutPolishExpenseRecord.from_store(item)

    record_type = CutPolishType.POLISH if item.type == "Polishing" else CutPolishType.CUT

    return CutPolishRecord(
        id=item.id,
        worker=item.name,
        type=record_type,
        description=item.description,
        amount=item.amount,
        payment_method=item.payment_method or "Cash",
    )


class DenormalizedSyncManager:
    """Upserts and removes embedded child records across stones."""

    def __init__(
        self,
        registry: StoneRegistry,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._registry = registry
        self._audit = audit_logger or AuditLogger()

    @staticmethod
    def _as_child(child_record: Union[ChildRecord, dict[str, Any]]) -> ChildRecord:
        if isinstance(child_record, ChildRecord):
            return child_record
        return ChildRecord.model_validate(child_record)

    def _load(self, correlation_id: UUID) -> list[Stone]:
        try:
            return self._registry.load()
        except CorruptPartitionError as e:
            self._audit.log_error(
                error_type="corrupt_stone_registry",
                error_message=str(e),
                details={"key": e.key},
                correlation_id=correlation_id,
            )
            raise

    def _detach(
        self,
        stones: list[Stone],
        child_id: str,
        keep_code: str,
        only_code: Optional[str],
        correlation_id: UUID,
    ) -> int:
        """
        Strip a child record from stones whose code is not keep_code.

        With only_code, only stones carrying that code are considered.
        Returns how many stones were changed.
        """
        detached = 0
        for stone in stones:
            if stone.natural_key == keep_code:
                continue
            if only_code is not None and stone.natural_key != only_code:
                continue

            if not stone.remove_child(child_id):
                continue

            self._registry.save(stone)
            detached += 1
            self._audit.log_child_record_detached(
                entity_id=stone.id,
                from_code=stone.code_no,
                to_code=keep_code,
                child_record_id=child_id,
                correlation_id=correlation_id,
            )
        return detached

    def upsert(
        self,
        code: str,
        child_record: Union[ChildRecord, dict[str, Any]],
        previous_code: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SyncResult:
        """
        Copy a child record into every stone carrying `code`.

        When `previous_code` differs from `code` the record was moved to
        another stone: it is first removed from the stones under the old
        code. Once the record is in place under `code`, copies left on
        stones with any other code are removed too.

        Raises:
            ValueError: The child record has no id
            CorruptPartitionError: The stone registry cannot be decoded
        """
        correlation_id = correlation_id or create_correlation_id()
        child = self._as_child(child_record)
        if not child.id.strip():
            raise ValueError("Child record must have an id to be synced")

        wanted = normalize_code(code)
        if not wanted:
            return SyncResult()

        stones = self._load(correlation_id)
        detached = 0

        old = normalize_code(previous_code)
        if old and old != wanted:
            detached += self._detach(stones, child.id, wanted, old, correlation_id)

        targets = [stone for stone in stones if stone.natural_key == wanted]
        if not targets:
            logger.warning("owning_entity_not_found", code=wanted, child_record_id=child.id)
            self._audit.log_owning_entity_not_found(
                code=wanted,
                child_record_id=child.id,
                operation="upsert",
                correlation_id=correlation_id,
            )
            return SyncResult(not_found=True, detached_count=detached)

        for stone in targets:
            index = stone.find_child(child.id)
            replaced = index > -1
            if replaced:
                # Keep the position; collapse duplicates left by older writers
                stone.remove_child(child.id)
                stone.child_records.insert(index, child)
            else:
                stone.child_records.append(child)

            self._registry.save(stone)
            self._audit.log_child_record_synced(
                entity_id=stone.id,
                code=stone.code_no,
                child_record_id=child.id,
                replaced=replaced,
                correlation_id=correlation_id,
            )

        detached += self._detach(stones, child.id, wanted, None, correlation_id)

        logger.info(
            "child_record_synced",
            code=wanted,
            child_record_id=child.id,
            updated_count=len(targets),
            detached_count=detached,
        )
        return SyncResult(updated_count=len(targets), detached_count=detached)

    def remove(
        self,
        code: str,
        child_record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> SyncResult:
        """
        Strip a child record from every stone carrying `code`.

        updated_count counts only stones the record was actually removed
        from.

        Raises:
            CorruptPartitionError: The stone registry cannot be decoded
        """
        correlation_id = correlation_id or create_correlation_id()

        wanted = normalize_code(code)
        if not wanted:
            return SyncResult()

        stones = self._load(correlation_id)
        targets = [stone for stone in stones if stone.natural_key == wanted]
        if not targets:
            logger.warning("owning_entity_not_found", code=wanted, child_record_id=child_record_id)
            self._audit.log_owning_entity_not_found(
                code=wanted,
                child_record_id=child_record_id,
                operation="remove",
                correlation_id=correlation_id,
            )
            return SyncResult(not_found=True)

        updated = 0
        for stone in targets:
            if not stone.remove_child(child_record_id):
                continue

            self._registry.save(stone)
            updated += 1
            self._audit.log_child_record_removed(
                entity_id=stone.id,
                code=stone.code_no,
                child_record_id=child_record_id,
                correlation_id=correlation_id,
            )

        logger.info(
            "child_record_removed",
            code=wanted,
            child_record_id=child_record_id,
            updated_count=updated,
        )
        return SyncResult(updated_count=updated)

"""
Partition Key Resolver

Each (module, tab, record kind) partition has been stored under several
key names over the life of the application, and old data was never
migrated. The table below lists, per record kind, every key template
ever used, current scheme first. Reading a partition means trying them
in that order and taking the first key that holds a blob.

IMPORTANT: a blob that exists but does not decode is a corrupt
partition, not an absent one. The resolver stops there and reports it;
falling through to an older key would silently show stale data.
"""

from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from gemledger.config.modules import is_dashboard_tab
from gemledger.models.ledger import RecordKind
from gemledger.services.storage import KeyValueStore
from gemledger.services.storage import serialization


logger = structlog.get_logger(__name__)


# Key-migration table: priority order, newest naming scheme first.
# These literals are the only way to read pre-existing data; keep verbatim.
PARTITION_KEY_TEMPLATES: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.EXPENSE: (
        "unified_expense_{module}_{tab}",
        "expense_{module}_{tab}",
        "unified_expenses_{module}_{tab}",
    ),
    RecordKind.CUT_POLISH: (
        "cut_polish_expenses_{module}_{tab}",
    ),
    RecordKind.TICKET_VISA: (
        "tickets_visa_{module}_{tab}",
        "ticket_visa_{module}_{tab}",
        "tickets_{module}_{tab}",
    ),
    RecordKind.SERVICE: (
        "specific_services_{module}_{tab}",
        "specific_service_{module}_{tab}",
        "services_{module}_{tab}",
    ),
    RecordKind.PAYMENT_LEDGER: (
        "unified_payment_ledger_{module}_{tab}",
        "payment_ledger_{module}_{tab}",
        "payment_{module}_{tab}",
    ),
    RecordKind.PURCHASING: (
        "unified_purchasing_{module}_{tab}",
        "purchasing_{module}_{tab}",
        "purchase_{module}_{tab}",
    ),
    RecordKind.CAPITAL: (
        "unified_capital_{module}_{tab}",
        "capital_{module}_{tab}",
        "unified_capital_management_{module}_{tab}",
    ),
    RecordKind.EXPORT: (
        "unified_export_{module}_{tab}",
        "export_{module}_{tab}",
        "unified_export_records_{module}_{tab}",
    ),
    RecordKind.STATEMENT: (
        "unified_statement_{module}_{tab}",
        "statement_{module}_{tab}",
    ),
    RecordKind.DEAL: (
        "deal_record_{module}_{tab}",
        "deal_{module}_{tab}",
    ),
    RecordKind.HOTEL: (
        "hotel_accommodation_{module}_{tab}",
        "hotel_{module}_{tab}",
        "accommodation_{module}_{tab}",
    ),
}

# Kinds stored per (module, tab), in scan order. Stone sales come from
# the global registry instead.
PARTITIONED_KINDS: tuple[RecordKind, ...] = tuple(PARTITION_KEY_TEMPLATES)


class PartitionStatus(str, Enum):
    ABSENT = "absent"
    PRESENT = "present"
    CORRUPT = "corrupt"


class PartitionRead(BaseModel):
    """Outcome of reading one partition."""

    status: PartitionStatus
    kind: Optional[RecordKind] = None
    module_id: Optional[str] = None
    tab_id: Optional[str] = None
    key: Optional[str] = Field(
        default=None,
        description="The key the blob was found under (None when absent)"
    )
    records: list[Any] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_present(self) -> bool:
        return self.status == PartitionStatus.PRESENT

    @property
    def is_corrupt(self) -> bool:
        return self.status == PartitionStatus.CORRUPT


def candidate_keys(kind: RecordKind, module_id: str, tab_id: str) -> list[str]:
    """Every key a partition may live under, in priority order."""
    try:
        templates = PARTITION_KEY_TEMPLATES[kind]
    except KeyError:
        raise ValueError(f"{kind.value} records are not stored per module/tab")
    return [template.format(module=module_id, tab=tab_id) for template in templates]


def decode_blob(key: str, blob: str) -> tuple[Optional[list[Any]], Optional[str]]:
    """
    Decode a partition blob into its record list.

    Returns (records, None) on success or (None, reason) when corrupt.
    """
    try:
        data = serialization.loads(blob)
    except ValueError as e:
        return None, f"invalid JSON: {e}"
    if not isinstance(data, list):
        return None, f"expected a JSON array, got {type(data).__name__}"
    return data, None


class PartitionResolver:
    """Reads partitions from the store through the key-migration table."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def resolve(self, module_id: str, tab_id: str, kind: RecordKind) -> PartitionRead:
        """
        Return the first present partition blob for (module, tab, kind).

        Dashboard tabs never hold transactional data and are always absent.
        """
        read = PartitionRead(
            status=PartitionStatus.ABSENT,
            kind=kind,
            module_id=module_id,
            tab_id=tab_id,
        )
        if is_dashboard_tab(tab_id):
            return read

        for key in candidate_keys(kind, module_id, tab_id):
            blob = self._store.get(key)
            if not blob:
                continue

            records, error = decode_blob(key, blob)
            if error is not None:
                logger.error(
                    "partition_parse_failed",
                    key=key,
                    kind=kind.value,
                    module_id=module_id,
                    tab_id=tab_id,
                    error=error,
                )
                return read.model_copy(update={
                    "status": PartitionStatus.CORRUPT,
                    "key": key,
                    "error": error,
                })

            return read.model_copy(update={
                "status": PartitionStatus.PRESENT,
                "key": key,
                "records": records,
            })

        return read

    def read_key(self, key: str) -> PartitionRead:
        """Read a single, non-partitioned key (e.g. the stone registry)."""
        blob = self._store.get(key)
        if not blob:
            return PartitionRead(status=PartitionStatus.ABSENT)

        records, error = decode_blob(key, blob)
        if error is not None:
            logger.error("partition_parse_failed", key=key, error=error)
            return PartitionRead(status=PartitionStatus.CORRUPT, key=key, error=error)
        return PartitionRead(status=PartitionStatus.PRESENT, key=key, records=records)

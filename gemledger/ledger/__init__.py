"""
Ledger Package

Key resolution, currency resolution, normalization and assembly of the
consolidated ledger.
"""

from gemledger.ledger.assembler import (
    AssemblyReport,
    LedgerAssembler,
    apply_running_balance,
    assemble_partitions,
    sort_by_date,
)
from gemledger.ledger.currency import (
    ConversionRule,
    resolve_amount,
    to_reporting_currency,
)
from gemledger.ledger.keys import (
    PARTITION_KEY_TEMPLATES,
    PARTITIONED_KINDS,
    PartitionRead,
    PartitionResolver,
    PartitionStatus,
    candidate_keys,
    decode_blob,
)
from gemledger.ledger.normalizers import (
    NORMALIZERS,
    NormalizationContext,
    RecordRejectedError,
    normalize_records,
    normalize_stone_sale,
    normalize_stones,
    resolve_stone_location,
)

__all__ = [
    # Assembly
    "AssemblyReport",
    "LedgerAssembler",
    "apply_running_balance",
    "assemble_partitions",
    "sort_by_date",
    # Currency
    "ConversionRule",
    "resolve_amount",
    "to_reporting_currency",
    # Partitions
    "PARTITION_KEY_TEMPLATES",
    "PARTITIONED_KINDS",
    "PartitionRead",
    "PartitionResolver",
    "PartitionStatus",
    "candidate_keys",
    "decode_blob",
    # Normalization
    "NORMALIZERS",
    "NormalizationContext",
    "RecordRejectedError",
    "normalize_records",
    "normalize_stone_sale",
    "normalize_stones",
    "resolve_stone_location",
]

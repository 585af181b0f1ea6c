"""
Sync Package

Keeps denormalized child records embedded in stones consistent with
their source records.
"""

from gemledger.sync.manager import (
    DenormalizedSyncManager,
    child_record_from_cut_polish_expense,
)
from gemledger.sync.repository import (
    NON_CATEGORY_LOCATIONS,
    StoneRegistry,
    migrate_original_category,
)

__all__ = [
    "DenormalizedSyncManager",
    "NON_CATEGORY_LOCATIONS",
    "StoneRegistry",
    "child_record_from_cut_polish_expense",
    "migrate_original_category",
]

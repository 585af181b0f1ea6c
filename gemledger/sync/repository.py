"""
Stone Registry

All stones live in one JSON array under a single store key. This module
is the only code that reads or writes that array.

Writes are per stone: the array is re-read, the stone with the same id
is replaced (or the stone is appended), and the whole array is written
back. Everything else in the array is written back exactly as read.

NOTE: There is no locking. Two writers updating the registry at the same
time race, and the last one to write wins.
"""

from typing import Any, Optional

import structlog
from pydantic import ValidationError

from gemledger.config import get_settings
from gemledger.ledger.keys import decode_blob
from gemledger.models.ledger import Stone, normalize_code
from gemledger.services.storage import CorruptPartitionError, KeyValueStore
from gemledger.services.storage import serialization


logger = structlog.get_logger(__name__)

# Locations that are places, not categories; they never become originalCategory.
NON_CATEGORY_LOCATIONS = {"bkk", "export"}


def migrate_original_category(raw_stones: list[Any]) -> bool:
    """
    Fill originalCategory from location for stones that predate it.

    Mutates the dicts in place. Returns True if anything changed.
    """
    changed = False
    for raw in raw_stones:
        if not isinstance(raw, dict) or raw.get("originalCategory"):
            continue
        location = raw.get("location")
        if not isinstance(location, str) or not location:
            continue
        if location.strip().lower() in NON_CATEGORY_LOCATIONS:
            continue
        raw["originalCategory"] = location
        changed = True
    return changed


class StoneRegistry:
    """Load, look up and save stones in the global registry."""

    def __init__(self, store: KeyValueStore, key: Optional[str] = None):
        self._store = store
        self.key = key or get_settings().ledger.stone_registry_key

    def _read_raw(self) -> list[Any]:
        blob = self._store.get(self.key)
        if not blob:
            return []
        records, error = decode_blob(self.key, blob)
        if error is not None:
            raise CorruptPartitionError(self.key, error)
        return records

    def _write_raw(self, raw_stones: list[Any]) -> None:
        self._store.set(self.key, serialization.dumps(raw_stones))

    def load(self) -> list[Stone]:
        """
        All valid stones, in registry order.

        Raises:
            CorruptPartitionError: The registry blob cannot be decoded
        """
        raw_stones = self._read_raw()

        if migrate_original_category(raw_stones):
            logger.info("stone_registry_migrated", key=self.key)
            self._write_raw(raw_stones)

        stones = []
        for raw in raw_stones:
            if not isinstance(raw, dict):
                logger.warning("stone_skipped", key=self.key, reason="not an object")
                continue
            try:
                stones.append(Stone.from_store(raw))
            except ValidationError as e:
                logger.warning(
                    "stone_skipped",
                    key=self.key,
                    stone_id=raw.get("id"),
                    error=str(e),
                )
        return stones

    def find_by_code(self, code: str) -> list[Stone]:
        """Every stone whose natural key matches, trimmed and case-insensitive."""
        wanted = normalize_code(code)
        if not wanted:
            return []
        return [stone for stone in self.load() if stone.natural_key == wanted]

    def save(self, stone: Stone) -> None:
        """Replace the stone with the same id, or append it."""
        raw_stones = self._read_raw()
        data = stone.to_store_dict()

        for index, raw in enumerate(raw_stones):
            if isinstance(raw, dict) and raw.get("id") is not None and str(raw["id"]) == stone.id:
                raw_stones[index] = data
                break
        else:
            raw_stones.append(data)

        self._write_raw(raw_stones)

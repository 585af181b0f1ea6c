"""
JSON File Storage Implementation

The whole store lives in one JSON object on disk ({key: blob}), the
closest file-based analogue of the browser storage the data came from.

TRADEOFFS:
- Every set() rewrites the file (fine for one user's records)
- No locking: two processes writing at once lose one update, exactly
  like two browser tabs did
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from gemledger.services.storage.interface import KeyValueStore, StorageError


class JsonFileKeyValueStore(KeyValueStore):
    """File-backed store; reads the file once, writes through on set()."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._data: Optional[dict[str, str]] = None

    def _load(self) -> dict[str, str]:
        if self._data is None:
            if not self._path.exists():
                self._data = {}
            else:
                try:
                    with self._path.open("r", encoding="utf-8") as fh:
                        data = json.load(fh)
                except (OSError, ValueError) as e:
                    raise StorageError(f"Failed to read store file {self._path}: {e}")
                if not isinstance(data, dict):
                    raise StorageError(f"Store file {self._path} is not a JSON object")
                self._data = {str(k): str(v) for k, v in data.items()}
        return self._data

    def _flush(self) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".store-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            Path(tmp_path).unlink(missing_ok=True)
            raise StorageError(f"Failed to write store file {self._path}: {e}")

    def refresh(self) -> None:
        self._data = None

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    def list_keys(self) -> list[str]:
        return list(self._load())

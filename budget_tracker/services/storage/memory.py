"""
In-Memory Storage Implementation

Used by tests and by callers that want the engine without touching disk.
Blobs are round-tripped through JSON on save so that anything this backend
accepts would also be accepted by the file backend.
"""

import json
from typing import Any, Optional

from budget_tracker.services.storage.interface import (
    KeyValueStorage,
    StorageError,
    StorageKey,
)


class InMemoryStorage(KeyValueStorage):
    """Dictionary-backed key-value storage."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, str] = {}
        for key, blob in (initial or {}).items():
            self.save(StorageKey(key), blob)

    def load(self, key: StorageKey) -> Optional[Any]:
        raw = self._data.get(StorageKey(key).value)
        if raw is None:
            return None
        return json.loads(raw)

    def save(self, key: StorageKey, blob: Any) -> None:
        try:
            self._data[StorageKey(key).value] = json.dumps(blob)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{StorageKey(key).value}' is not JSON serializable: {e}") from e

    def keys(self) -> list[str]:
        return sorted(self._data)

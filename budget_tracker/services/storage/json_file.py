"""
JSON File Storage Implementation

DESIGN DECISION: One JSON file per storage key, inside a configured data
directory. This keeps the data human-readable and trivially backed up.

TRADEOFFS:
- Not suitable for concurrent writers (the store serializes all writes)
- Whole-file rewrite on every save (fine for thousands of entries)

Writes go to a temporary file that then replaces the target, so a crash
mid-write never leaves a truncated file behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_tracker.config import get_settings
from budget_tracker.services.storage.interface import (
    CorruptDataError,
    KeyValueStorage,
    StorageError,
    StorageKey,
)


class JsonFileStorage(KeyValueStorage):
    """File-backed key-value storage."""

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = Path(data_dir) if data_dir else get_settings().storage.data_dir

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: StorageKey) -> Path:
        """File that holds a key's blob."""
        return self._data_dir / f"{StorageKey(key).value}.json"

    def load(self, key: StorageKey) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptDataError(f"{path} does not contain valid JSON: {e}") from e
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def save(self, key: StorageKey, blob: Any) -> None:
        path = self.path_for(key)
        try:
            payload = json.dumps(blob, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{StorageKey(key).value}' is not JSON serializable: {e}") from e

        try:
            self._write_file(path, payload)
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write_file(self, path: Path, payload: str) -> None:
        """Atomically replace path with payload, retrying transient OS errors."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}-",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

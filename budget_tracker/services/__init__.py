"""Services package."""

from budget_tracker.services.storage import (
    CorruptDataError,
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorage,
    StorageError,
    StorageKey,
)

__all__ = [
    "CorruptDataError",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "StorageError",
    "StorageKey",
]

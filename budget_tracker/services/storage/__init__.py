"""
Storage Services Package

Provides the abstract key-value interface and concrete implementations.
JSON files on disk are the default backend; an in-memory backend is used
for tests.
"""

from budget_tracker.services.storage.interface import (
    CorruptDataError,
    KeyValueStorage,
    StorageError,
    StorageKey,
)
from budget_tracker.services.storage.json_file import JsonFileStorage
from budget_tracker.services.storage.memory import InMemoryStorage

__all__ = [
    # Interface
    "KeyValueStorage",
    "StorageKey",
    # Exceptions
    "CorruptDataError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
]

"""
Abstract Storage Interface

DESIGN DECISION: The engine treats storage as an opaque key-value store.
Each registry is a plain ordered sequence serialized as JSON under one of
four fixed keys. This allows us to:
1. Use in-memory storage for testing
2. Keep JSON files on disk for a single user
3. Swap in another backend without touching business logic

There is no schema versioning. An absent key means an empty sequence.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional


class StorageKey(str, Enum):
    """The keys the engine reads and writes."""
    LEDGER = "ledger"
    SAVINGS_GOALS = "savings-goals"
    SUBSCRIPTIONS = "subscriptions"
    SCHEDULED_INCOME = "scheduled-income"


class KeyValueStorage(ABC):
    """
    Abstract interface for the storage collaborator.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def load(self, key: StorageKey) -> Optional[Any]:
        """
        Load the JSON blob stored under a key.

        Args:
            key: One of the StorageKey values

        Returns:
            The decoded JSON value, or None if nothing is stored

        Raises:
            CorruptDataError: Stored data cannot be decoded
            StorageError: The backend failed
        """
        pass

    @abstractmethod
    def save(self, key: StorageKey, blob: Any) -> None:
        """
        Store a JSON-serializable blob under a key, replacing what was there.

        Raises:
            StorageError: If save fails
        """
        pass

    def load_sequence(self, key: StorageKey) -> list:
        """
        Load a stored sequence, treating an absent key as empty.

        Raises:
            CorruptDataError: The stored value is not a JSON array
        """
        blob = self.load(key)
        if blob is None:
            return []
        if not isinstance(blob, list):
            raise CorruptDataError(
                f"Expected a JSON array under '{StorageKey(key).value}', "
                f"got {type(blob).__name__}"
            )
        return blob


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDataError(StorageError):
    """Stored data could not be decoded."""
    pass

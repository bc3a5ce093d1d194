"""
Abstract Storage Interface

DESIGN DECISION: The store talks to a tiny async key-value interface,
the same shape as device storage on a phone (getItem / setItem).
This allows us to:
1. Keep one JSON file per slot on disk
2. Use in-memory storage for testing (with a simulated quota)
3. Swap in an embedded database later behind the same contract

The interface is intentionally minimal: whole values in, whole values
out, no queries.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueBackend(ABC):
    """
    Abstract interface for a local key-value store.

    Any backend (files, memory, an embedded DB) must implement these
    methods. Values are opaque strings (serialized JSON).
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under key.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """
        Store value under key, atomically replacing any prior value.

        Raises:
            QuotaExceededError: If the backend is out of space
            StorageError: If the write fails for any other reason
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        """List every key currently stored."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """A stored value could not be read or decoded."""
    pass


class StorageWriteError(StorageError):
    """A value could not be written. The prior value is still in place."""
    pass


class QuotaExceededError(StorageWriteError):
    """The backend refused a write because it is out of space."""
    pass


class NotFoundError(StorageError):
    """Entity not found in its collection."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert an entity whose id is already in the collection."""
    pass

"""
Storage Services Package

Provides the abstract key-value interface, the local backends and the
PersistenceStore that maps named collections onto them.
"""

from freelance_core.config import StorageSettings
from freelance_core.identifiers import generate_id
from freelance_core.services.storage.interface import (
    DuplicateError,
    KeyValueBackend,
    NotFoundError,
    QuotaExceededError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from freelance_core.services.storage.local import (
    FileKeyValueBackend,
    InMemoryKeyValueBackend,
)
from freelance_core.services.storage.store import (
    COLLECTION_MODELS,
    ONBOARDING_KEY,
    SETTINGS_KEY,
    CollectionKey,
    PersistenceStore,
)


def create_backend(settings: StorageSettings) -> KeyValueBackend:
    """Build the backend selected by configuration."""
    if settings.backend == "memory":
        return InMemoryKeyValueBackend(quota_bytes=settings.quota_bytes)
    return FileKeyValueBackend(settings.data_dir)


__all__ = [
    # Interfaces
    "KeyValueBackend",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "QuotaExceededError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Backends
    "FileKeyValueBackend",
    "InMemoryKeyValueBackend",
    "create_backend",
    # Store
    "COLLECTION_MODELS",
    "ONBOARDING_KEY",
    "SETTINGS_KEY",
    "CollectionKey",
    "PersistenceStore",
    "generate_id",
]

"""Services package."""

from freelance_core.services.exchange import (
    ExchangeRateError,
    ExchangeRateProvider,
)
from freelance_core.services.storage import (
    CollectionKey,
    DuplicateError,
    FileKeyValueBackend,
    InMemoryKeyValueBackend,
    KeyValueBackend,
    NotFoundError,
    PersistenceStore,
    QuotaExceededError,
    StorageError,
    StorageReadError,
    StorageWriteError,
    create_backend,
    generate_id,
)

__all__ = [
    # Exchange rates
    "ExchangeRateError",
    "ExchangeRateProvider",
    # Storage
    "CollectionKey",
    "DuplicateError",
    "FileKeyValueBackend",
    "InMemoryKeyValueBackend",
    "KeyValueBackend",
    "NotFoundError",
    "PersistenceStore",
    "QuotaExceededError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "create_backend",
    "generate_id",
]

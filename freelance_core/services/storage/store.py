"""
Persistence Store

Whole-collection storage on top of a KeyValueBackend.

DESIGN DECISION: Each named collection is ONE JSON array under ONE key.
Reads and writes are always whole-collection: there are no point
queries and no partial updates.

CONTRACT:
- Reads fail soft: a missing, unreadable or corrupt slot loads as an
  empty collection (or default settings). The failure is logged, never
  raised. The UI shows an empty state instead of an error.
- Writes never clobber what could not be read: update_collection()
  raises StorageReadError instead of saving over a slot that exists
  but does not decode.
- Writes fail loud: any backend failure (quota, I/O, timeout) raises
  StorageWriteError. The caller must keep its in-memory state unchanged
  until a save returns.
- One writer per key: saves to the same key are serialized through a
  per-key asyncio.Lock. update_collection() runs the whole
  read-modify-write under that lock, so concurrent edits to different
  records of one collection cannot lose each other's changes.
"""

import asyncio
import json
from enum import Enum
from typing import Callable, Optional, Sequence, TypeVar

from pydantic import TypeAdapter, ValidationError

from freelance_core.activity import ActivityLogger
from freelance_core.models.activity import ActivityEventBuilder
from freelance_core.models.app_settings import AppSettings
from freelance_core.models.entities import (
    Client,
    Entity,
    Invoice,
    Project,
    Task,
    TimeLog,
)
from freelance_core.services.storage.interface import (
    KeyValueBackend,
    StorageError,
    StorageReadError,
    StorageWriteError,
)


T = TypeVar("T", bound=Entity)


class CollectionKey(str, Enum):
    """The fixed set of named collections."""
    CLIENTS = "clients"
    PROJECTS = "projects"
    TASKS = "tasks"
    TIME_LOGS = "timeLogs"
    INVOICES = "invoices"


SETTINGS_KEY = "settings"
ONBOARDING_KEY = "onboardingCompleted"


COLLECTION_MODELS: dict[CollectionKey, type[Entity]] = {
    CollectionKey.CLIENTS: Client,
    CollectionKey.PROJECTS: Project,
    CollectionKey.TASKS: Task,
    CollectionKey.TIME_LOGS: TimeLog,
    CollectionKey.INVOICES: Invoice,
}

_ADAPTERS: dict[CollectionKey, TypeAdapter] = {
    key: TypeAdapter(list[model]) for key, model in COLLECTION_MODELS.items()
}


class PersistenceStore:
    """
    Typed whole-collection repository.

    Usage:
        store = PersistenceStore(FileKeyValueBackend(data_dir))
        clients = await store.load_collection(CollectionKey.CLIENTS)
        await store.save_collection(CollectionKey.CLIENTS, [*clients, new_client])
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        activity_logger: Optional[ActivityLogger] = None,
        write_timeout: Optional[float] = None,
    ):
        """
        Initialize the store.

        Args:
            backend: Where the JSON blobs live
            activity_logger: Where load/save events go
            write_timeout: Seconds before a backend write counts as
                           failed. None or <= 0 disables the timeout.
        """
        self._backend = backend
        self._activity = activity_logger or ActivityLogger("freelance_core.store")
        self._write_timeout = write_timeout if write_timeout and write_timeout > 0 else None
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _write(self, key: str, value: str) -> None:
        """Write through the backend; every failure becomes StorageWriteError."""
        try:
            if self._write_timeout is None:
                await self._backend.set_item(key, value)
            else:
                await asyncio.wait_for(
                    self._backend.set_item(key, value),
                    timeout=self._write_timeout,
                )
        except asyncio.TimeoutError as e:
            raise StorageWriteError(
                f"Timed out after {self._write_timeout}s writing {key}"
            ) from e
        except StorageWriteError:
            raise
        except Exception as e:
            raise StorageWriteError(f"Failed to write {key}: {e}") from e

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    async def _read_collection(self, key: CollectionKey) -> list:
        """
        Strict load: an absent slot is empty, an undecodable one raises.

        Raises:
            StorageReadError: If the slot exists but cannot be read or
                              decoded
        """
        try:
            blob = await self._backend.get_item(key.value)
            if blob is None:
                return []
            items = _ADAPTERS[key].validate_json(blob)
        except StorageReadError:
            raise
        except (StorageError, ValidationError, ValueError) as e:
            raise StorageReadError(f"Cannot decode {key.value}: {e}") from e

        self._activity.log(ActivityEventBuilder.collection_loaded(key.value, len(items)))
        return items

    async def load_collection(self, key: CollectionKey) -> list:
        """
        Load every record of a collection.

        Returns an empty list if the slot is absent or cannot be decoded.
        Never raises for read or decode failures.
        """
        key = CollectionKey(key)
        try:
            return await self._read_collection(key)
        except StorageReadError as e:
            self._activity.log(
                ActivityEventBuilder.collection_load_failed(key.value, str(e))
            )
            return []

    async def _save_locked(self, key: CollectionKey, items: Sequence[Entity]) -> None:
        model = COLLECTION_MODELS[key]
        for item in items:
            if not isinstance(item, model):
                raise TypeError(
                    f"{key.value} holds {model.__name__}, got {type(item).__name__}"
                )

        blob = _ADAPTERS[key].dump_json(list(items), by_alias=True).decode("utf-8")
        try:
            await self._write(key.value, blob)
        except StorageWriteError as e:
            self._activity.log(
                ActivityEventBuilder.collection_save_failed(key.value, str(e))
            )
            raise

        self._activity.log(ActivityEventBuilder.collection_saved(key.value, len(items)))

    async def save_collection(self, key: CollectionKey, items: Sequence[Entity]) -> None:
        """
        Replace the whole collection with items.

        Raises:
            StorageWriteError: If the backend rejects the write. The
                               previously stored collection is unchanged.
            TypeError: If an item is not of the collection's model type
        """
        key = CollectionKey(key)
        async with self._lock_for(key.value):
            await self._save_locked(key, items)

    async def update_collection(
        self,
        key: CollectionKey,
        mutate: Callable[[list], list],
    ) -> list:
        """
        Serialized read-modify-write of one collection.

        Holds the key's lock while it loads the current collection,
        applies mutate() and saves the result. If mutate raises, nothing
        is written and the exception propagates.

        Unlike load_collection(), a slot that exists but does not decode
        is an error here: saving mutate([]) over it would wipe every
        record it still holds.

        Returns:
            The collection as saved

        Raises:
            StorageReadError: If the stored collection cannot be decoded.
                              Nothing is written.
        """
        key = CollectionKey(key)
        async with self._lock_for(key.value):
            try:
                current = await self._read_collection(key)
            except StorageReadError as e:
                self._activity.log(
                    ActivityEventBuilder.collection_load_failed(key.value, str(e))
                )
                raise
            updated = mutate(list(current))
            await self._save_locked(key, updated)
            return updated

    # -------------------------------------------------------------------------
    # Settings record
    # -------------------------------------------------------------------------

    async def load_settings(self) -> AppSettings:
        """
        Load the settings record, backfilled from the default table.

        Keys holding null are treated as missing, so every field is
        always populated. Any read or decode failure returns pure
        defaults.
        """
        try:
            blob = await self._backend.get_item(SETTINGS_KEY)
            if blob is None:
                self._activity.log(ActivityEventBuilder.settings_loaded(from_defaults=True))
                return AppSettings()

            data = json.loads(blob)
            if not isinstance(data, dict):
                raise ValueError(f"settings blob is a {type(data).__name__}, not an object")

            settings = AppSettings.model_validate(
                {name: value for name, value in data.items() if value is not None}
            )
        except (StorageError, ValidationError, ValueError) as e:
            self._activity.log(ActivityEventBuilder.settings_load_failed(str(e)))
            return AppSettings()

        self._activity.log(ActivityEventBuilder.settings_loaded(from_defaults=False))
        return settings

    async def save_settings(self, settings: AppSettings) -> None:
        """
        Write the full settings record.

        Raises:
            StorageWriteError: If the backend rejects the write
        """
        blob = settings.model_dump_json(by_alias=True)
        async with self._lock_for(SETTINGS_KEY):
            try:
                await self._write(SETTINGS_KEY, blob)
            except StorageWriteError as e:
                self._activity.log(ActivityEventBuilder.settings_save_failed(str(e)))
                raise

        self._activity.log(ActivityEventBuilder.settings_saved())

    # -------------------------------------------------------------------------
    # Onboarding flag
    # -------------------------------------------------------------------------

    async def is_onboarding_completed(self) -> bool:
        try:
            return await self._backend.get_item(ONBOARDING_KEY) == "true"
        except StorageError as e:
            self._activity.log(
                ActivityEventBuilder.collection_load_failed(ONBOARDING_KEY, str(e))
            )
            return False

    async def set_onboarding_completed(self) -> None:
        """
        Raises:
            StorageWriteError: If the flag cannot be written
        """
        async with self._lock_for(ONBOARDING_KEY):
            await self._write(ONBOARDING_KEY, "true")
        self._activity.log(ActivityEventBuilder.onboarding_completed())

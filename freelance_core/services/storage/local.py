"""
Local Key-Value Backends

DESIGN DECISION: Device storage is modelled as one file per slot.
- Human-inspectable (each slot is a plain JSON document)
- No database setup required
- Writes are atomic: temp file in the same directory, fsync, os.replace

TRADEOFFS:
- Every write rewrites the whole slot (fine for one user's data)
- No cross-slot transactions (the store never needs them)

The in-memory backend is used for tests and ephemeral sessions. It can
simulate a device quota so write-failure paths are testable.
"""

import asyncio
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from freelance_core.services.storage.interface import (
    KeyValueBackend,
    QuotaExceededError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_SUFFIX = ".json"


def _check_key(key: str) -> str:
    if not _KEY_PATTERN.match(key):
        raise StorageError(f"Invalid storage key: {key!r}")
    return key


class FileKeyValueBackend(KeyValueBackend):
    """
    Stores each key as <directory>/<key>.json.

    Blocking file I/O runs in a worker thread so the event loop stays free.
    """

    def __init__(self, directory: Path):
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        return self._directory / f"{_check_key(key)}{_SUFFIX}"

    def _read_file(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_file(self, key: str, value: str) -> None:
        path = self._path_for(key)
        self._directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self._directory,
            prefix=f".{key}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            # Never leave a half-written temp file behind
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def _remove_file(self, key: str) -> None:
        try:
            self._path_for(key).unlink()
        except FileNotFoundError:
            pass

    def _list_keys(self) -> list[str]:
        if not self._directory.exists():
            return []
        return sorted(
            path.stem
            for path in self._directory.glob(f"*{_SUFFIX}")
            if _KEY_PATTERN.match(path.stem)
        )

    async def get_item(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read_file, key)
        except StorageError:
            raise
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Failed to read {key}: {e}") from e

    async def set_item(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write_file, key, value)
        except StorageError:
            raise
        except OSError as e:
            raise StorageWriteError(f"Failed to write {key}: {e}") from e

    async def remove_item(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._remove_file, key)
        except StorageError:
            raise
        except OSError as e:
            raise StorageWriteError(f"Failed to remove {key}: {e}") from e

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(self._list_keys)


class InMemoryKeyValueBackend(KeyValueBackend):
    """
    Dict-backed storage.

    If quota_bytes is set, a write that would push the total UTF-8 size
    of all values over the quota is refused with QuotaExceededError and
    the prior value is left untouched.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        total = len(value.encode("utf-8"))
        for existing_key, existing in self._data.items():
            if existing_key != key:
                total += len(existing.encode("utf-8"))
        return total

    async def get_item(self, key: str) -> Optional[str]:
        return self._data.get(_check_key(key))

    async def set_item(self, key: str, value: str) -> None:
        _check_key(key)
        if self._quota_bytes is not None:
            needed = self._size_with(key, value)
            if needed > self._quota_bytes:
                raise QuotaExceededError(
                    f"Storage quota exceeded writing {key}: "
                    f"{needed} > {self._quota_bytes} bytes"
                )
        self._data[key] = value

    async def remove_item(self, key: str) -> None:
        self._data.pop(_check_key(key), None)

    async def keys(self) -> list[str]:
        return sorted(self._data)

"""Key-value store backends."""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

from pinsync.contracts.exceptions import StorageError
from pinsync.contracts.storage import KeyValueStore

# Percent-encoding keeps the key-to-file mapping injective; "@" stays readable.
_SAFE_KEY_CHARS = "@"


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKeyValueStore(KeyValueStore):
    """One file per key under *directory*.

    Writes go to a temporary sibling first and are moved into place with
    ``os.replace``, so readers see either the old or the new value of a key.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        if not key:
            raise StorageError("storage key must not be empty")
        safe = quote(key, safe=_SAFE_KEY_CHARS)
        return self._directory / f"{safe}.json"

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read, self.path_for(key))

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, self.path_for(key), value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._unlink, self.path_for(key))

    @staticmethod
    def _read(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"failed reading storage file: {path}") from exc

    @staticmethod
    def _write(path: Path, value: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"failed writing storage file: {path}") from exc

    @staticmethod
    def _unlink(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"failed removing storage file: {path}") from exc

"""Typed access to the on-device pin slots.

This is the only module that knows the storage keys. Every write replaces the
slot wholesale; there is no cross-slot transaction.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pinsync.contracts.exceptions import ConfigError, StorageError
from pinsync.contracts.pin import Pin, PinList, sort_pins
from pinsync.contracts.storage import KeyValueStore

_LOG = logging.getLogger(__name__)

ANONYMOUS_KEY = "@pinnit_pins"
SIGNED_IN_CACHE_KEY = "@pinnit_pins_cache"
PENDING_SYNC_KEY = "@pinnit_pending_sync"
LAST_SYNC_KEY = "@pinnit_last_sync_at"
SESSION_KEY = "@pinnit_session"

RESERVED_KEYS = frozenset({SIGNED_IN_CACHE_KEY, PENDING_SYNC_KEY, LAST_SYNC_KEY, SESSION_KEY})


class LocalPinCache:
    def __init__(self, store: KeyValueStore, *, anonymous_key: str = ANONYMOUS_KEY) -> None:
        if anonymous_key in RESERVED_KEYS:
            raise ConfigError(f"anonymous_key {anonymous_key!r} collides with a reserved storage slot")
        self._store = store
        self._anonymous_key = anonymous_key

    # ------------------------------------------------------------------
    # Anonymous slot
    # ------------------------------------------------------------------

    async def read_anonymous(self) -> list[Pin]:
        return await self._read_pins(self._anonymous_key)

    async def write_anonymous(self, pins: list[Pin]) -> None:
        await self._write_pins(self._anonymous_key, sort_pins(pins))

    async def clear_anonymous(self) -> None:
        await self._store.remove(self._anonymous_key)

    async def count_anonymous(self) -> int:
        try:
            return len(await self.read_anonymous())
        except StorageError as exc:
            _LOG.warning("Anonymous slot unreadable, reporting zero pins: %s", exc)
            return 0

    # ------------------------------------------------------------------
    # Signed-in cache slot
    # ------------------------------------------------------------------

    async def read_signed_in_cache(self) -> list[Pin]:
        return await self._read_pins(SIGNED_IN_CACHE_KEY)

    async def write_signed_in_cache(self, pins: list[Pin]) -> None:
        await self._write_pins(SIGNED_IN_CACHE_KEY, sort_pins(pins))

    async def read_signed_in_cache_raw(self) -> str | None:
        return await self._store.get(SIGNED_IN_CACHE_KEY)

    async def write_anonymous_raw(self, raw: str) -> None:
        await self._store.set(self._anonymous_key, raw)

    # ------------------------------------------------------------------
    # Pending flag and last-sync stamp
    # ------------------------------------------------------------------

    async def is_pending(self) -> bool:
        return bool(await self._store.get(PENDING_SYNC_KEY))

    async def set_pending(self) -> None:
        await self._store.set(PENDING_SYNC_KEY, "1")

    async def clear_pending(self) -> None:
        await self._store.remove(PENDING_SYNC_KEY)

    async def get_last_sync_at(self) -> int | None:
        raw = await self._store.get(LAST_SYNC_KEY)
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError as exc:
            raise StorageError(f"invalid last-sync value in {LAST_SYNC_KEY}: {raw!r}") from exc

    async def set_last_sync_at(self, timestamp: int) -> None:
        await self._store.set(LAST_SYNC_KEY, str(timestamp))

    # ------------------------------------------------------------------

    async def _read_pins(self, key: str) -> list[Pin]:
        raw = await self._store.get(key)
        if not raw:
            return []
        try:
            return PinList.validate_json(raw)
        except ValidationError as exc:
            raise StorageError(f"invalid pin data in storage slot {key}") from exc

    async def _write_pins(self, key: str, pins: list[Pin]) -> None:
        payload = PinList.dump_json(pins, by_alias=True, exclude_none=True).decode("utf-8")
        await self._store.set(key, payload)

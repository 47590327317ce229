"""Local/remote pin reconciliation.

Every operation derives its behaviour from the identity and connectivity it is
handed, so there is no long-lived state machine object:

* anonymous: the anonymous slot is the only source, the network is never used;
* signed in and online: the remote store is the source of truth and the
  signed-in cache slot mirrors it;
* signed in and offline (or remote failing): the signed-in cache slot is
  served and writes are marked pending for a later replay.

Remote failures are absorbed (cache fallback or pending marker). Storage
failures propagate.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pinsync.contracts.exceptions import AuthenticationError, RemoteUnavailableError
from pinsync.contracts.identity import Identity
from pinsync.contracts.pin import Pin, merge_and_dedupe, sort_pins, with_created_at, with_owner_label
from pinsync.contracts.remote import RemoteStore
from pinsync.contracts.sync import MergeResult, SyncStatus
from pinsync.format import now_ms
from pinsync.storage.local_cache import LocalPinCache

_LOG = logging.getLogger(__name__)


class PinReconciler:
    def __init__(
        self,
        cache: LocalPinCache,
        remote: RemoteStore,
        *,
        device_label: str = "This device",
        clock: Callable[[], int] = now_ms,
        refresh_identity: Callable[[], Awaitable[Identity | None]] | None = None,
    ) -> None:
        self._cache = cache
        self._remote = remote
        self._device_label = device_label
        self._clock = clock
        self._refresh_identity = refresh_identity

    async def load_pins(self, identity: Identity | None, *, online: bool) -> list[Pin]:
        if identity is None:
            return self._present(await self._cache.read_anonymous(), self._device_label)

        if online:
            try:
                remote_pins = await self._fetch(identity)
            except RemoteUnavailableError as exc:
                _LOG.warning("Loading pins from remote failed, using cache: %s", exc)
            else:
                pins = self._present(remote_pins, identity.display_name)
                await self._cache.write_signed_in_cache(pins)
                await self._cache.set_last_sync_at(self._clock())
                return pins

        return self._present(await self._cache.read_signed_in_cache(), identity.display_name)

    async def save_pins(self, pins: list[Pin], identity: Identity | None, *, online: bool) -> None:
        ordered = sort_pins(pins)
        if identity is None:
            await self._cache.write_anonymous(ordered)
            return

        # The flag goes up before the remote attempt and only comes down after
        # both replace phases succeed.
        await self._cache.write_signed_in_cache(ordered)
        await self._cache.set_pending()
        if not online:
            _LOG.info("Offline; %d pin(s) saved to cache and marked pending", len(ordered))
            return
        await self._push(identity, ordered, operation="save")

    async def run_pending_sync(self, identity: Identity | None, *, online: bool) -> bool:
        """Replay the signed-in cache to the remote if a write is pending.

        Returns ``True`` only when a replay ran and succeeded.
        """
        if identity is None or not online:
            return False
        if not await self._cache.is_pending():
            return False
        pins = await self._cache.read_signed_in_cache()
        return await self._push(identity, pins, operation="replay")

    async def has_pending_changes(self) -> bool:
        return await self._cache.is_pending()

    async def get_last_sync_at(self) -> int | None:
        return await self._cache.get_last_sync_at()

    async def get_local_only_pins_count(self, identity: Identity | None) -> int:
        if identity is None:
            return 0
        return await self._cache.count_anonymous()

    async def merge_local_pins_to_remote(self, identity: Identity | None, *, online: bool) -> MergeResult:
        """Move the anonymous slot into *identity*'s remote partition.

        Destroys the anonymous slot on success, so callers must confirm with the
        user first: on a shared device those pins may belong to someone else.
        """
        if identity is None:
            raise AuthenticationError("Sign in before merging local pins into an account")
        if not online:
            raise RemoteUnavailableError("Merging local pins requires a network connection")

        local_pins = await self._cache.read_anonymous()
        if not local_pins:
            return MergeResult()

        if await self._cache.is_pending() and not await self.run_pending_sync(identity, online=True):
            raise RemoteUnavailableError("Pending changes could not be synced; merge aborted")

        remote_pins = await self._fetch(identity)
        merged = [
            pin.model_copy(update={"owner_label": identity.display_name})
            for pin in merge_and_dedupe(remote_pins, local_pins)
        ]

        await self._cache.write_signed_in_cache(merged)
        await self._cache.set_pending()
        try:
            await self._replace(identity, merged)
        except RemoteUnavailableError as exc:
            _LOG.warning("Merge upload failed; merged pins kept in cache as pending: %s", exc)
            raise

        await self._cache.set_last_sync_at(self._clock())
        await self._cache.clear_pending()
        await self._cache.clear_anonymous()

        return MergeResult(
            local_count=len(local_pins),
            remote_count=len(remote_pins),
            merged_count=len(merged),
            duplicates_dropped=len(local_pins) + len(remote_pins) - len(merged),
            merged=True,
        )

    async def copy_cache_to_local_on_logout(self) -> None:
        raw = await self._cache.read_signed_in_cache_raw()
        if raw:
            await self._cache.write_anonymous_raw(raw)

    async def status(self, identity: Identity | None) -> SyncStatus:
        return SyncStatus(
            signed_in=identity is not None,
            pending=await self._cache.is_pending(),
            last_sync_at=await self._cache.get_last_sync_at(),
            local_only_count=await self.get_local_only_pins_count(identity),
        )

    async def _push(self, identity: Identity, pins: list[Pin], *, operation: str) -> bool:
        try:
            await self._replace(identity, pins)
        except RemoteUnavailableError as exc:
            _LOG.warning("Remote %s failed, keeping pending marker: %s", operation, exc)
            return False
        await self._cache.set_last_sync_at(self._clock())
        await self._cache.clear_pending()
        return True

    async def _fetch(self, identity: Identity) -> list[Pin]:
        async with self._remote:
            try:
                return await self._remote.fetch_all(identity)
            except AuthenticationError:
                refreshed = await self._refreshed(identity)
                if refreshed is None:
                    raise
                return await self._remote.fetch_all(refreshed)

    async def _replace(self, identity: Identity, pins: list[Pin]) -> None:
        # A rejected token surfaces on the partition delete, before anything
        # changed remotely, so the whole replace can be repeated.
        async with self._remote:
            try:
                await self._remote.replace_all(identity, pins)
            except AuthenticationError:
                refreshed = await self._refreshed(identity)
                if refreshed is None:
                    raise
                await self._remote.replace_all(refreshed, pins)

    async def _refreshed(self, identity: Identity) -> Identity | None:
        """Return a fresh identity for the same account, or ``None`` if there is none."""
        if self._refresh_identity is None:
            return None
        refreshed = await self._refresh_identity()
        if refreshed is None or refreshed.user_id != identity.user_id:
            return None
        if refreshed.access_token == identity.access_token:
            return None
        _LOG.info("Access token rejected; retrying with a refreshed session")
        return refreshed

    def _present(self, pins: list[Pin], label: str) -> list[Pin]:
        return sort_pins(with_created_at(with_owner_label(pins, label), now=self._clock()))

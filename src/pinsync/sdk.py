"""SDK composition root for pinsync."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pinsync.auth import StoredSessionProvider, SupabaseAuthClient, create_key_resolver
from pinsync.connectivity import HttpConnectivityProbe, StaticConnectivity
from pinsync.contracts.config import PinSyncConfig
from pinsync.contracts.connectivity import ConnectivityMonitor
from pinsync.contracts.exceptions import PinSyncError
from pinsync.contracts.identity import Identity
from pinsync.contracts.pin import Pin, create_pin, remove_pin, rename_pin
from pinsync.contracts.session import SessionProvider
from pinsync.contracts.sync import MergeResult, SyncStatus
from pinsync.format import now_ms
from pinsync.remote import create_remote_store
from pinsync.storage import FileKeyValueStore, LocalPinCache
from pinsync.sync import PinReconciler, ReconnectReplayer

_LOG = logging.getLogger(__name__)


class PinSync:
    """pinsync SDK public API.

    Each call samples the current identity and connectivity, then hands both
    to the reconciler. When a replayer is attached, pending writes are also
    pushed as soon as the connectivity monitor reports a return to online;
    call :meth:`aclose` to wait for those and detach.
    """

    def __init__(
        self,
        *,
        reconciler: PinReconciler,
        session: SessionProvider,
        connectivity: ConnectivityMonitor,
        config: PinSyncConfig,
        clock: Callable[[], int] = now_ms,
        replayer: ReconnectReplayer | None = None,
    ) -> None:
        self._reconciler = reconciler
        self._session = session
        self._connectivity = connectivity
        self._config = config
        self._clock = clock
        self._replayer = replayer

    @classmethod
    async def from_config(cls, config: PinSyncConfig, *, online: bool | None = None) -> PinSync:
        """Wire file storage, Supabase remote/auth and a connectivity monitor.

        *online* forces a static connectivity state instead of probing the network.
        """
        api_key = await create_key_resolver(config).resolve()
        store = FileKeyValueStore(config.storage_dir)
        cache = LocalPinCache(store, anonymous_key=config.anonymous_key)
        remote = create_remote_store(config, api_key=api_key)
        auth = SupabaseAuthClient(
            url=config.supabase_url,
            api_key=api_key,
            account_label=config.account_label,
            timeout=config.request_timeout,
        )
        session = StoredSessionProvider(auth, store)
        connectivity: ConnectivityMonitor
        if online is None:
            connectivity = HttpConnectivityProbe(config.supabase_url)
        else:
            connectivity = StaticConnectivity(online)
        reconciler = PinReconciler(
            cache,
            remote,
            device_label=config.device_label,
            refresh_identity=session.refresh,
        )
        return cls(
            reconciler=reconciler,
            session=session,
            connectivity=connectivity,
            config=config,
            replayer=ReconnectReplayer(reconciler, session, connectivity),
        )

    @property
    def reconciler(self) -> PinReconciler:
        return self._reconciler

    async def aclose(self) -> None:
        if self._replayer is None:
            return
        try:
            await self._replayer.wait_idle()
        finally:
            self._replayer.close()

    async def _context(self) -> tuple[Identity | None, bool]:
        return await self._session.current_identity(), await self._connectivity.is_online()

    async def _load_current(self, identity: Identity | None, online: bool) -> list[Pin]:
        # A remote read overwrites the signed-in cache, so pending edits go up
        # first; if they cannot, the cache stays authoritative for this call.
        if identity is not None and online:
            await self._reconciler.run_pending_sync(identity, online=True)
            if await self._reconciler.has_pending_changes():
                online = False
        return await self._reconciler.load_pins(identity, online=online)

    async def list_pins(self) -> list[Pin]:
        identity, online = await self._context()
        return await self._load_current(identity, online)

    async def add_pin(self, name: str, latitude: float, longitude: float) -> Pin:
        identity, online = await self._context()
        owner_label = identity.display_name if identity is not None else self._config.device_label
        pin = create_pin(
            name,
            latitude,
            longitude,
            timestamp=self._clock(),
            placeholder=self._config.placeholder_name,
            owner_label=owner_label,
        )
        existing = await self._load_current(identity, online)
        await self._reconciler.save_pins([pin, *existing], identity, online=online)
        return pin

    async def rename_pin(self, pin_id: str, name: str) -> Pin:
        identity, online = await self._context()
        pins = rename_pin(await self._load_current(identity, online), pin_id, name)
        await self._reconciler.save_pins(pins, identity, online=online)
        return next(pin for pin in pins if pin.id == pin_id)

    async def delete_pin(self, pin_id: str) -> None:
        identity, online = await self._context()
        pins = remove_pin(await self._load_current(identity, online), pin_id)
        await self._reconciler.save_pins(pins, identity, online=online)

    async def sync_now(self) -> bool:
        identity, online = await self._context()
        return await self._reconciler.run_pending_sync(identity, online=online)

    async def status(self) -> SyncStatus:
        identity = await self._session.current_identity()
        return await self._reconciler.status(identity)

    async def current_identity(self) -> Identity | None:
        return await self._session.current_identity()

    async def local_only_count(self) -> int:
        identity = await self._session.current_identity()
        return await self._reconciler.get_local_only_pins_count(identity)

    async def merge_local_pins(self, *, confirmed: bool) -> MergeResult:
        """Upload device-only pins into the signed-in account. Requires explicit confirmation."""
        if not confirmed:
            raise PinSyncError("Merging local pins into the account must be confirmed")
        identity, online = await self._context()
        result = await self._reconciler.merge_local_pins_to_remote(identity, online=online)
        _LOG.info("Merged local pins", extra={"merged": result.merged_count, "dropped": result.duplicates_dropped})
        return result

    async def sign_in(self, username: str, password: str) -> Identity:
        return await self._session.sign_in(username, password)

    async def sign_up(self, username: str, password: str, *, full_name: str | None = None) -> Identity:
        return await self._session.sign_up(username, password, full_name=full_name)

    async def sign_out(self, *, keep_local_copy: bool = False) -> None:
        if keep_local_copy and await self._session.current_identity() is not None:
            await self._reconciler.copy_cache_to_local_on_logout()
        await self._session.sign_out()

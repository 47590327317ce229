"""Opportunistic replay of pending writes when connectivity returns."""

from __future__ import annotations

import asyncio
import logging

from pinsync.contracts.connectivity import ConnectivityMonitor
from pinsync.contracts.session import SessionProvider
from pinsync.sync.reconciler import PinReconciler

_LOG = logging.getLogger(__name__)


class ReconnectReplayer:
    """Runs one pending-sync replay each time the monitor reports online.

    Monitors only report transitions they observe: a polling monitor such as
    ``HttpConnectivityProbe`` has to be polled (``is_online`` or ``watch``) for
    a reconnect to be noticed.

    There is no retry loop: a failed replay waits for the next transition or
    an explicit ``run_pending_sync`` call.
    """

    def __init__(
        self,
        reconciler: PinReconciler,
        session: SessionProvider,
        connectivity: ConnectivityMonitor,
    ) -> None:
        self._reconciler = reconciler
        self._session = session
        self._tasks: set[asyncio.Task[bool]] = set()
        self._unsubscribe = connectivity.subscribe(self._on_change)

    def _on_change(self, online: bool) -> None:
        if not online:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _LOG.debug("Back online outside an event loop; replay deferred to the next sync")
            return
        task = loop.create_task(self.replay())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def replay(self) -> bool:
        identity = await self._session.current_identity()
        synced = await self._reconciler.run_pending_sync(identity, online=True)
        if synced:
            _LOG.info("Pending pin changes synced after reconnect")
        return synced

    async def wait_idle(self) -> None:
        """Await scheduled replays; storage errors raised by them surface here."""
        if self._tasks:
            await asyncio.gather(*self._tasks)

    def close(self) -> None:
        self._unsubscribe()

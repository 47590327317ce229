"""Connectivity monitors."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import httpx

from pinsync.contracts.connectivity import ConnectivityListener, ConnectivityMonitor

_LOG = logging.getLogger(__name__)


class _ListenerRegistry:
    def __init__(self) -> None:
        self._listeners: list[ConnectivityListener] = []

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, online: bool) -> None:
        for listener in list(self._listeners):
            listener(online)


class StaticConnectivity(ConnectivityMonitor):
    """Reachability set by the caller. Defaults to online, like an unknown network state."""

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._registry = _ListenerRegistry()

    async def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        self._registry.notify(online)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        return self._registry.subscribe(listener)


class HttpConnectivityProbe(ConnectivityMonitor):
    """Treats any HTTP answer from *url* as online and any transport failure as offline.

    Subscribers are told about a transition when a check observes it, so
    something has to keep checking: either regular SDK calls or :meth:`watch`.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport
        self._last: bool | None = None
        self._registry = _ListenerRegistry()

    async def is_online(self) -> bool:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=httpx.Timeout(self._timeout)) as client:
                await client.head(self._url)
            online = True
        except httpx.TransportError as exc:
            _LOG.debug("Connectivity probe failed: %s", exc)
            online = False

        changed = self._last is not None and online != self._last
        self._last = online
        if changed:
            self._registry.notify(online)
        return online

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        return self._registry.subscribe(listener)

    async def watch(self, interval: float, *, max_polls: int | None = None) -> None:
        """Probe every *interval* seconds until cancelled, or *max_polls* times."""
        polls = 0
        while True:
            await self.is_online()
            polls += 1
            if max_polls is not None and polls >= max_polls:
                return
            await asyncio.sleep(interval)

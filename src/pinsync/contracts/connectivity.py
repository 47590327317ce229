"""Network reachability contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

ConnectivityListener = Callable[[bool], None]


class ConnectivityMonitor(ABC):
    @abstractmethod
    async def is_online(self) -> bool: ...  # pragma: no cover

    @abstractmethod
    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register *listener* for reachability changes; returns an unsubscribe callable."""

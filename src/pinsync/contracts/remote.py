"""Remote pin store contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from pinsync.contracts.identity import Identity
from pinsync.contracts.pin import Pin


class RemoteStore(ABC):
    @abstractmethod
    async def __aenter__(self) -> RemoteStore: ...  # pragma: no cover

    @abstractmethod
    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...  # pragma: no cover

    @abstractmethod
    async def fetch_all(self, identity: Identity) -> list[Pin]:
        """Return every pin owned by *identity*, newest first."""

    @abstractmethod
    async def replace_all(self, identity: Identity, pins: list[Pin]) -> None:
        """Delete every pin owned by *identity*, then insert *pins*."""

"""In-memory remote store."""

from __future__ import annotations

from types import TracebackType

from pinsync.contracts.identity import Identity
from pinsync.contracts.pin import Pin, sort_pins
from pinsync.contracts.remote import RemoteStore


class InMemoryRemoteStore(RemoteStore):
    """Per-identity partitions held in a dict; no network calls."""

    def __init__(self, partitions: dict[str, list[Pin]] | None = None) -> None:
        self.partitions: dict[str, list[Pin]] = {user_id: list(pins) for user_id, pins in (partitions or {}).items()}

    async def __aenter__(self) -> InMemoryRemoteStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        return None

    async def fetch_all(self, identity: Identity) -> list[Pin]:
        return sort_pins(self.partitions.get(identity.user_id, []))

    async def replace_all(self, identity: Identity, pins: list[Pin]) -> None:
        self.partitions.pop(identity.user_id, None)
        if pins:
            self.partitions[identity.user_id] = [pin.model_copy(update={"owner_label": None}) for pin in pins]

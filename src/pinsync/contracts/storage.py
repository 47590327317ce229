"""Durable key-value storage contract."""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """String-keyed durable storage. Each key is read and written atomically on its own."""

    @abstractmethod
    async def get(self, key: str) -> str | None: ...  # pragma: no cover

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...  # pragma: no cover

    @abstractmethod
    async def remove(self, key: str) -> None: ...  # pragma: no cover

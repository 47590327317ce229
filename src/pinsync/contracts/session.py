"""Identity/session provider contract."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pinsync.contracts.identity import Identity


class SessionProvider(ABC):
    @abstractmethod
    async def current_identity(self) -> Identity | None: ...  # pragma: no cover

    @abstractmethod
    async def sign_in(self, username: str, password: str) -> Identity: ...  # pragma: no cover

    @abstractmethod
    async def sign_up(self, username: str, password: str, *, full_name: str | None = None) -> Identity:
        ...  # pragma: no cover

    @abstractmethod
    async def refresh(self) -> Identity | None:
        """Exchange the stored refresh token for a new access token.

        Returns ``None`` when the session is gone, and the unchanged identity
        when the auth server cannot be reached.
        """

    @abstractmethod
    async def sign_out(self) -> None: ...  # pragma: no cover

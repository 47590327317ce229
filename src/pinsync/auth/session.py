"""Session provider backed by the key-value store."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from pydantic import ValidationError

from pinsync.auth.supabase import SupabaseAuthClient
from pinsync.contracts.exceptions import AuthenticationError, RemoteUnavailableError, StorageError
from pinsync.contracts.identity import Identity
from pinsync.contracts.session import SessionProvider
from pinsync.contracts.storage import KeyValueStore
from pinsync.storage.local_cache import SESSION_KEY

_LOG = logging.getLogger(__name__)

# Access tokens this close to expiry are refreshed before use.
EXPIRY_MARGIN_SECONDS = 60


class StoredSessionProvider(SessionProvider):
    """Keeps the signed-in identity in durable storage so it survives restarts.

    An access token about to expire is exchanged for a new one on read. A
    refresh token the server rejects ends the session, the same way a
    signed-out event would.
    """

    def __init__(
        self,
        auth: SupabaseAuthClient,
        store: KeyValueStore,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._auth = auth
        self._store = store
        self._clock = clock
        self._refresh_lock = asyncio.Lock()

    async def current_identity(self) -> Identity | None:
        identity = await self._stored()
        if identity is None or not self._expiring(identity):
            return identity
        return await self._refresh(identity)

    async def refresh(self) -> Identity | None:
        identity = await self._stored()
        if identity is None:
            return None
        return await self._refresh(identity)

    async def sign_in(self, username: str, password: str) -> Identity:
        identity = await self._auth.sign_in(username, password)
        await self._persist(identity)
        return identity

    async def sign_up(self, username: str, password: str, *, full_name: str | None = None) -> Identity:
        identity = await self._auth.sign_up(username, password, full_name=full_name)
        await self._persist(identity)
        return identity

    async def sign_out(self) -> None:
        identity = await self._stored()
        await self._store.remove(SESSION_KEY)
        if identity is None:
            return
        try:
            await self._auth.sign_out(identity)
        except RemoteUnavailableError as exc:
            _LOG.warning("Remote sign-out failed; local session cleared anyway: %s", exc)

    async def _refresh(self, identity: Identity) -> Identity | None:
        async with self._refresh_lock:
            # Another caller may have refreshed while this one waited.
            stored = await self._stored()
            if stored is None or stored.access_token != identity.access_token:
                return stored
            return await self._exchange(stored)

    async def _exchange(self, identity: Identity) -> Identity | None:
        if not identity.refresh_token:
            return identity
        try:
            refreshed = await self._auth.refresh(identity)
        except AuthenticationError as exc:
            _LOG.warning("Session refresh rejected; signing out locally: %s", exc)
            await self._store.remove(SESSION_KEY)
            return None
        except RemoteUnavailableError as exc:
            _LOG.info("Session refresh unavailable, keeping current token: %s", exc)
            return identity
        await self._persist(refreshed)
        return refreshed

    def _expiring(self, identity: Identity) -> bool:
        if identity.expires_at is None:
            return False
        return identity.expires_at - EXPIRY_MARGIN_SECONDS <= self._clock()

    async def _stored(self) -> Identity | None:
        raw = await self._store.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return Identity.model_validate_json(raw)
        except ValidationError as exc:
            raise StorageError(f"invalid session data in storage slot {SESSION_KEY}") from exc

    async def _persist(self, identity: Identity) -> None:
        await self._store.set(SESSION_KEY, identity.model_dump_json())

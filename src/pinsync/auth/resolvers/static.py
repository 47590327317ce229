"""Static key resolver."""

from __future__ import annotations

from dataclasses import dataclass

from pinsync.auth.base import KeyResolver, check_client_key
from pinsync.contracts.exceptions import ConfigError


@dataclass(frozen=True)
class StaticKeyResolver(KeyResolver):
    """Key taken from the ``anon_key`` config field."""

    key: str

    async def resolve(self) -> str:
        key = self.key.strip()
        if not key:
            raise ConfigError("Static anon key is empty")
        return check_client_key(key, source="anon_key")

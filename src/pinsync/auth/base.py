"""Auth resolver interfaces."""

from __future__ import annotations

import base64
import json
from abc import ABC, abstractmethod

from pinsync.contracts.exceptions import ConfigError

_SECRET_KEY_PREFIX = "sb_secret_"
_PRIVILEGED_ROLES = frozenset({"service_role", "supabase_admin"})


class KeyResolver(ABC):
    @abstractmethod
    async def resolve(self) -> str:
        """Resolve and return the Supabase API (anon) key."""


def check_client_key(key: str, *, source: str) -> str:
    """Reject keys that bypass row-level security.

    A device only ever sees its own owner's rows because PostgREST applies the
    table policies to the anon role. Secret keys (``sb_secret_...``) and legacy
    JWT keys carrying a privileged ``role`` claim skip those policies.
    """
    if key.startswith(_SECRET_KEY_PREFIX):
        raise ConfigError(f"{source} holds a Supabase secret key; configure the publishable (anon) key instead")
    role = _jwt_role(key)
    if role in _PRIVILEGED_ROLES:
        raise ConfigError(f"{source} holds a '{role}' key; configure the anon key instead")
    return key


def _jwt_role(key: str) -> str | None:
    parts = key.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment))
    except ValueError:
        return None
    if not isinstance(claims, dict):
        return None
    role = claims.get("role")
    return role if isinstance(role, str) else None

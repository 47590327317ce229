"""Environment key resolver."""

from __future__ import annotations

import os

from pinsync.auth.base import KeyResolver, check_client_key
from pinsync.contracts.exceptions import ConfigError

ENV_VAR = "SUPABASE_ANON_KEY"


class EnvKeyResolver(KeyResolver):
    def __init__(self, env_var: str = ENV_VAR) -> None:
        self._env_var = env_var

    async def resolve(self) -> str:
        key = (os.getenv(self._env_var) or "").strip()
        if not key:
            raise ConfigError(f"{self._env_var} is not set or empty")
        return check_client_key(key, source=self._env_var)

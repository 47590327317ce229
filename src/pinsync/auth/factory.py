"""Key resolver factory."""

from __future__ import annotations

from pinsync.auth.base import KeyResolver
from pinsync.auth.resolvers.env import EnvKeyResolver
from pinsync.auth.resolvers.static import StaticKeyResolver
from pinsync.contracts.config import PinSyncConfig
from pinsync.contracts.exceptions import ConfigError

RESOLVERS: dict[str, type[KeyResolver]] = {
    "env": EnvKeyResolver,
    "static": StaticKeyResolver,
}


def create_key_resolver(config: PinSyncConfig) -> KeyResolver:
    if config.auth not in RESOLVERS:
        raise ConfigError(f"Unknown auth mode: {config.auth}")
    if config.auth == "env":
        return EnvKeyResolver(config.anon_key_env)
    return StaticKeyResolver(key=config.anon_key or "")

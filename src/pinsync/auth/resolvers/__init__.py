"""Concrete key resolvers."""

from pinsync.auth.resolvers.env import EnvKeyResolver
from pinsync.auth.resolvers.static import StaticKeyResolver

__all__ = ["EnvKeyResolver", "StaticKeyResolver"]

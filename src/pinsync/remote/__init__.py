"""Remote store implementations and factory."""

from pinsync.remote.factory import create_remote_store
from pinsync.remote.memory import InMemoryRemoteStore
from pinsync.remote.supabase import SupabaseRemoteStore

__all__ = ["InMemoryRemoteStore", "SupabaseRemoteStore", "create_remote_store"]

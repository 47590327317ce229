"""Supabase REST remote store."""

from pinsync.remote.supabase.store import SupabaseRemoteStore

__all__ = ["SupabaseRemoteStore"]

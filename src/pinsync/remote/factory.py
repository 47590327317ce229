"""Remote store factory."""

from __future__ import annotations

from pinsync.contracts.config import PinSyncConfig
from pinsync.contracts.remote import RemoteStore
from pinsync.remote.supabase import SupabaseRemoteStore


def create_remote_store(config: PinSyncConfig, *, api_key: str) -> RemoteStore:
    return SupabaseRemoteStore(
        url=config.supabase_url,
        api_key=api_key,
        table=config.table,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )

"""Reconciliation result contracts."""

from __future__ import annotations

from pydantic import BaseModel


class MergeResult(BaseModel):
    local_count: int = 0
    remote_count: int = 0
    merged_count: int = 0
    duplicates_dropped: int = 0
    merged: bool = False


class SyncStatus(BaseModel):
    signed_in: bool
    pending: bool
    last_sync_at: int | None = None
    local_only_count: int = 0

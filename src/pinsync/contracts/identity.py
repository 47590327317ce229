"""Authenticated identity contract."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class Identity(BaseModel):
    user_id: str
    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None
    display_name: str

    model_config = {"frozen": True}


def display_name_from_metadata(metadata: dict[str, Any] | None, *, fallback: str) -> str:
    """Pick the owner label for an account: full name, then username, then *fallback*."""
    metadata = metadata or {}
    for key in ("full_name", "username"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback

"""Configuration contracts."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class PinSyncConfig(BaseModel):
    supabase_url: str
    auth: str = "env"
    anon_key: str | None = None
    anon_key_env: str = "SUPABASE_ANON_KEY"
    table: str = "pins"
    storage_dir: Path = Path(".pinsync")
    anonymous_key: str = "@pinnit_pins"
    device_label: str = "This device"
    account_label: str = "My account"
    placeholder_name: str = "Unnamed location"
    request_timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0, le=10)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_auth_key(self) -> PinSyncConfig:
        if not self.supabase_url.startswith(("http://", "https://")):
            raise ValueError("supabase_url must be an http(s) URL")
        key = (self.anon_key or "").strip()
        if self.auth == "static":
            if not key:
                raise ValueError("static auth requires a non-empty anon_key")
            return self
        if key:
            raise ValueError("anon_key must be unset when auth is not 'static'")
        if self.auth != "env":
            raise ValueError("auth must be one of: env, static")
        return self

    @model_validator(mode="after")
    def validate_labels(self) -> PinSyncConfig:
        if not self.placeholder_name.strip():
            raise ValueError("placeholder_name must not be empty")
        if not self.anon_key_env.strip():
            raise ValueError("anon_key_env must not be empty")
        if not self.anonymous_key.strip():
            raise ValueError("anonymous_key must not be empty")
        return self

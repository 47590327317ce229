"""Supabase GoTrue auth client."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from pinsync.contracts.exceptions import AuthenticationError, RemoteUnavailableError
from pinsync.contracts.identity import Identity, display_name_from_metadata

_LOG = logging.getLogger(__name__)

AUTH_EMAIL_DOMAIN = "pinnit.local"


def email_from_username(username: str) -> str:
    name = username.lower().strip()
    if not name:
        raise AuthenticationError("username must not be empty")
    return f"{name}@{AUTH_EMAIL_DOMAIN}"


class SupabaseAuthClient:
    """Username/password accounts mapped onto GoTrue e-mail accounts."""

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        account_label: str = "My account",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._account_label = account_label
        self._timeout = timeout
        self._transport = transport

    async def sign_in(self, username: str, password: str) -> Identity:
        payload = await self._post(
            "sign_in",
            "/token",
            params={"grant_type": "password"},
            json={"email": email_from_username(username), "password": password},
        )
        return self._identity_from_session(payload)

    async def sign_up(self, username: str, password: str, *, full_name: str | None = None) -> Identity:
        metadata: dict[str, str] = {"username": username.strip()}
        if full_name and full_name.strip():
            metadata["full_name"] = full_name.strip()
        payload = await self._post(
            "sign_up",
            "/signup",
            json={"email": email_from_username(username), "password": password, "data": metadata},
        )
        if not payload.get("access_token"):
            raise AuthenticationError("sign-up succeeded but the account needs confirmation before sign-in")
        return self._identity_from_session(payload)

    async def refresh(self, identity: Identity) -> Identity:
        if not identity.refresh_token:
            raise AuthenticationError("session has no refresh token")
        payload = await self._post(
            "refresh",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": identity.refresh_token},
        )
        return self._identity_from_session(payload)

    async def sign_out(self, identity: Identity) -> None:
        await self._post("sign_out", "/logout", access_token=identity.access_token)

    async def _post(
        self,
        operation: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        headers = {"apikey": self._api_key}
        if access_token is not None:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            async with httpx.AsyncClient(
                base_url=f"{self._url}/auth/v1",
                transport=self._transport,
                timeout=httpx.Timeout(self._timeout),
            ) as client:
                response = await client.post(path, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(f"{operation} failed: {exc}") from exc

        if response.status_code in (400, 401, 403, 422):
            raise AuthenticationError(f"{operation} rejected: {self._error_message(response)}")
        if response.is_error:
            raise RemoteUnavailableError(f"{operation} failed with HTTP {response.status_code}")
        if response.status_code == 204 or not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteUnavailableError(f"{operation} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise RemoteUnavailableError(f"{operation} returned a non-object payload")
        return data

    def _identity_from_session(self, payload: dict[str, Any]) -> Identity:
        user = payload.get("user")
        access_token = payload.get("access_token")
        if not isinstance(user, dict) or not isinstance(user.get("id"), str) or not isinstance(access_token, str):
            raise AuthenticationError("auth response is missing the user session")
        refresh_token = payload.get("refresh_token")
        _LOG.debug("Auth session established", extra={"user_id": user["id"]})
        return Identity(
            user_id=user["id"],
            access_token=access_token,
            refresh_token=refresh_token if isinstance(refresh_token, str) else None,
            expires_at=self._expires_at(payload),
            display_name=display_name_from_metadata(user.get("user_metadata"), fallback=self._account_label),
        )

    @staticmethod
    def _expires_at(payload: dict[str, Any]) -> int | None:
        expires_at = payload.get("expires_at")
        if isinstance(expires_at, int):
            return expires_at
        expires_in = payload.get("expires_in")
        if isinstance(expires_in, int):
            return int(time.time()) + expires_in
        return None

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(data, dict):
            for key in ("error_description", "msg", "message", "error"):
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
        return f"HTTP {response.status_code}"

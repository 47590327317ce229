"""Supabase (PostgREST) remote pin store."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

import httpx

from pinsync.contracts.exceptions import (
    AuthenticationError,
    PartialReplaceError,
    RemoteUnavailableError,
)
from pinsync.contracts.identity import Identity
from pinsync.contracts.pin import Pin, sort_pins
from pinsync.contracts.remote import RemoteStore
from pinsync.format import format_time_ago
from pinsync.remote.supabase._retrying_transport import RetryingTransport

_LOG = logging.getLogger(__name__)

_SELECT_COLUMNS = "id,name,latitude,longitude,created_at,timestamp"


class SupabaseRemoteStore(RemoteStore):
    """Per-user pin table behind the Supabase REST API.

    Must be entered with ``async with`` before use. Overlapping operations may
    enter the same store; they share one HTTP client, which is closed when the
    last of them exits.
    """

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        table: str = "pins",
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._table = table
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._active = 0

    async def __aenter__(self) -> SupabaseRemoteStore:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self._url}/rest/v1",
                headers={"apikey": self._api_key},
                transport=RetryingTransport(transport=self._transport, max_retries=self._max_retries),
                timeout=httpx.Timeout(self._timeout),
            )
        self._active += 1
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._active -= 1
        if self._active > 0 or self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()

    async def fetch_all(self, identity: Identity) -> list[Pin]:
        response = await self._request(
            "fetch_all",
            "GET",
            identity,
            params={
                "select": _SELECT_COLUMNS,
                "user_id": f"eq.{identity.user_id}",
                "order": "timestamp.desc",
            },
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteUnavailableError("fetch_all returned invalid JSON") from exc
        if not isinstance(payload, list):
            raise RemoteUnavailableError("fetch_all returned a non-list payload")
        return sort_pins(self._pin_from_row(row) for row in payload)

    async def replace_all(self, identity: Identity, pins: list[Pin]) -> None:
        await self._request("delete_partition", "DELETE", identity, params={"user_id": f"eq.{identity.user_id}"})
        if not pins:
            return

        rows = [self._row_from_pin(identity, pin) for pin in pins]
        try:
            await self._request(
                "insert_rows",
                "POST",
                identity,
                json=rows,
                headers={"Prefer": "return=minimal"},
            )
        except RemoteUnavailableError as exc:
            _LOG.warning("Insert failed after partition delete", extra={"user_id": identity.user_id})
            raise PartialReplaceError(
                f"replace_all failed after deleting remote pins: {exc}",
                completed_phases=("delete_partition",),
            ) from exc

    async def _request(
        self,
        operation: str,
        method: str,
        identity: Identity,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        if self._client is None:
            raise RemoteUnavailableError("Remote store is not initialized. Use 'async with'.")

        request_headers = {"Authorization": f"Bearer {identity.access_token}", **(headers or {})}
        try:
            response = await self._client.request(
                method,
                f"/{self._table}",
                params=params,
                json=json,
                headers=request_headers,
            )
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(f"{operation} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthenticationError(f"{operation} rejected with HTTP {response.status_code}")
        if response.is_error:
            raise RemoteUnavailableError(f"{operation} failed with HTTP {response.status_code}: {response.text[:200]}")
        return response

    @staticmethod
    def _pin_from_row(row: Any) -> Pin:
        if not isinstance(row, dict):
            raise RemoteUnavailableError("Missing/invalid pin row")
        try:
            timestamp = int(row["timestamp"])
            return Pin(
                id=str(row["id"]),
                name=row["name"],
                latitude=float(row["latitude"]),
                longitude=float(row["longitude"]),
                timestamp=timestamp,
                created_at=format_time_ago(timestamp),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteUnavailableError(f"Missing/invalid pin row: {row!r}") from exc

    @staticmethod
    def _row_from_pin(identity: Identity, pin: Pin) -> dict[str, Any]:
        return {
            "id": pin.id,
            "user_id": identity.user_id,
            "name": pin.name,
            "latitude": pin.latitude,
            "longitude": pin.longitude,
            "timestamp": pin.timestamp,
        }

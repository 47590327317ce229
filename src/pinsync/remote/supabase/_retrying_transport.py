"""httpx async transport wrapper that retries transient Supabase failures."""

from __future__ import annotations

import asyncio
import logging
import random

import httpx

_LOG = logging.getLogger(__name__)

# The server did not act on the request, so any method may be repeated.
_UNPROCESSED_STATUS_CODES = frozenset({429, 503})
# The request may have reached the database; only idempotent methods are repeated.
_GATEWAY_STATUS_CODES = frozenset({502, 504})
_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "DELETE"})
# Nothing was sent, so any method may be repeated.
_NOT_SENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)

_MAX_BACKOFF_SECONDS = 4.0
_MAX_RETRY_AFTER_SECONDS = 30.0


class RetryingTransport(httpx.AsyncBaseTransport):
    """Wraps an httpx async transport with retries on transient failures.

    A PostgREST ``DELETE`` filtered by owner can be repeated safely; a bulk
    ``POST`` insert cannot, so inserts are retried only when the request was
    never processed. The server's ``Retry-After`` replaces the exponential
    backoff when present.

    This only smooths over a single flaky request. Pending pin writes are
    never retried here; they wait for the next replay.
    """

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = 3,
    ) -> None:
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._max_retries = max_retries

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self._transport.handle_async_request(request)
            except httpx.TransportError as exc:
                if attempt >= self._max_retries or not self._can_retry_error(request, exc):
                    raise
                await self._pause(attempt, None, reason=type(exc).__name__)
                attempt += 1
                continue

            if attempt >= self._max_retries or not self._can_retry_status(request, response.status_code):
                return response
            await self._pause(attempt, self._retry_after(response), reason=f"HTTP {response.status_code}")
            attempt += 1

    async def aclose(self) -> None:
        await self._transport.aclose()

    @staticmethod
    def _can_retry_error(request: httpx.Request, exc: httpx.TransportError) -> bool:
        return isinstance(exc, _NOT_SENT_ERRORS) or request.method in _IDEMPOTENT_METHODS

    @staticmethod
    def _can_retry_status(request: httpx.Request, status_code: int) -> bool:
        if status_code in _UNPROCESSED_STATUS_CODES:
            return True
        return status_code in _GATEWAY_STATUS_CODES and request.method in _IDEMPOTENT_METHODS

    @staticmethod
    def _retry_after(response: httpx.Response) -> float | None:
        raw = response.headers.get("Retry-After")
        if raw is None:
            return None
        try:
            return min(_MAX_RETRY_AFTER_SECONDS, max(0.0, float(raw)))
        except ValueError:
            return None

    @staticmethod
    def backoff_delay(attempt: int) -> float:
        return min(_MAX_BACKOFF_SECONDS, float(2**attempt)) + random.uniform(0.0, 0.25)

    async def _pause(self, attempt: int, retry_after: float | None, *, reason: str) -> None:
        delay = retry_after if retry_after is not None else self.backoff_delay(attempt)
        _LOG.warning("Retrying Supabase request after %s (attempt %d, %.2fs)", reason, attempt + 1, delay)
        await asyncio.sleep(delay)

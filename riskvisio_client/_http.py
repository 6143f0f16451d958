"""HTTP transport for the RiskVisio API.

Handles connection pooling, credential headers, retries and error mapping.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import httpx

from riskvisio_client.errors import raise_for_error_response

logger = logging.getLogger("riskvisio_client")

RETRYABLE_METHODS = frozenset({"GET", "PUT", "DELETE"})
_ERROR_SNIPPET_CHARS = 500


@dataclass(frozen=True)
class RetryPolicy:
    """When and how long to wait before repeating a request.

    Only idempotent methods are repeated. A retry follows a transport error,
    a 429, or any 5xx (503 ``store_unavailable`` included).
    """

    max_retries: int = 3
    base_delay: float = 0.2
    max_delay: float = 1.5
    methods: frozenset[str] = RETRYABLE_METHODS

    def attempts_for(self, method: str) -> int:
        if method.upper() in self.methods:
            return self.max_retries + 1
        return 1

    def should_retry_status(self, status_code: int) -> bool:
        return status_code == 429 or status_code >= 500

    def delay(self, retry_index: int) -> float:
        """Backoff before retry number ``retry_index`` (zero-based)."""
        return min(self.base_delay * (2**retry_index), self.max_delay)


def _decode_body(response: httpx.Response) -> dict[str, Any]:
    """Decode a response body into a dict.

    Error responses that are not JSON (a proxy's HTML page, for instance)
    become a RiskVisio error envelope carrying a snippet of the raw text.
    """
    try:
        payload = response.json()
    except ValueError:
        if response.status_code < 400:
            return {}
        text = response.text or ""
        return {
            "error": {
                "message": f"HTTP {response.status_code} returned non-JSON error response",
                "details": {
                    "raw_response_snippet": text[:_ERROR_SNIPPET_CHARS],
                    "raw_response_truncated": len(text) > _ERROR_SNIPPET_CHARS,
                },
            }
        }
    return payload if isinstance(payload, dict) else {"data": payload}


class HTTPClient:
    """Async HTTP client for the RiskVisio API.

    Wraps httpx.AsyncClient with:
    - Connection pooling
    - Credential headers on every request
    - Retries with capped exponential backoff for idempotent methods
    - Error response mapping to RiskVisioClientError
    """

    def __init__(
        self,
        base_url: str,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        admin_key: str | None = None,
        legacy_key: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize HTTP client.

        Args:
            base_url: API base URL (e.g., "http://localhost:8080")
            client_id: Dual-credential client id (``key_...``)
            client_secret: Dual-credential secret (``secret_...``)
            admin_key: Sent as x-admin-key for key-management calls
            legacy_key: Sent as x-api-key when the server runs in legacy mode
            timeout: Default request timeout in seconds
            max_retries: Maximum retry attempts for transient errors
            transport: Optional httpx transport (e.g. ASGITransport in tests)
        """
        self._base_url = base_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._admin_key = admin_key
        self._legacy_key = legacy_key
        self._timeout = timeout
        self._retry = RetryPolicy(max_retries=max_retries)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._client_id:
            headers["x-client-id"] = self._client_id
        if self._client_secret:
            headers["x-client-secret"] = self._client_secret
        if self._legacy_key:
            headers["x-api-key"] = self._legacy_key
        if self._admin_key:
            headers["x-admin-key"] = self._admin_key
        return headers

    async def __aenter__(self) -> HTTPClient:
        """Enter async context, creating HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers=self._auth_headers(),
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context, closing HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the underlying httpx client."""
        if self._client is None:
            raise RuntimeError("HTTPClient not initialized. Use 'async with' context.")
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Make an HTTP request to the RiskVisio API.

        POST is never retried: record upserts and key creation are not
        safe to repeat blindly.

        Raises:
            RiskVisioClientError: On API error responses
            httpx.TransportError: When the server stays unreachable
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        logger.debug("Request: %s %s", method, path)

        attempts = self._retry.attempts_for(method)

        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            try:
                response = await self.client.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
                )
            except httpx.TransportError as exc:
                if last_attempt:
                    raise
                logger.debug("Transport error on %s %s: %s", method, path, exc)
                await asyncio.sleep(self._retry.delay(attempt))
                continue

            logger.debug("Response: %s %s", response.status_code, path)

            if response.status_code == 204:
                return {}

            if not last_attempt and self._retry.should_retry_status(response.status_code):
                await asyncio.sleep(self._retry.delay(attempt))
                continue

            body = _decode_body(response)
            if response.status_code >= 400:
                raise_for_error_response(response.status_code, body)
            return body

        raise RuntimeError("HTTP request attempt loop exhausted unexpectedly")

    async def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Make a GET request."""
        return await self.request("GET", path, params=params, timeout=timeout)

    async def post(
        self,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Make a POST request."""
        return await self.request("POST", path, json=json, timeout=timeout)

    async def delete(
        self,
        path: str,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Make a DELETE request."""
        return await self.request("DELETE", path, timeout=timeout)

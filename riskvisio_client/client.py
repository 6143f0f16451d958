"""RiskVisioClient - main entry point for the RiskVisio client."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any

import httpx

from riskvisio_client._http import HTTPClient
from riskvisio_client.types import (
    AccessType,
    ApiKeyInfo,
    ApiKeyList,
    CreatedApiKey,
    FactoryList,
    HealthInfo,
    RecordInfo,
    RecordKind,
    RecordList,
    RevokeResult,
    SyncResult,
)


def _kind_value(kind: RecordKind | str) -> str:
    return RecordKind(kind).value


class RiskVisioClient:
    """Client for the RiskVisio API.

    Use as an async context manager to ensure proper cleanup.

    Example:
        async with RiskVisioClient(
            endpoint_url="http://localhost:8080",
            client_id="key_...",
            client_secret="secret_...",
        ) as client:
            incidents = await client.list_records("incidents", factory="ALL")
    """

    def __init__(
        self,
        endpoint_url: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        *,
        admin_key: str | None = None,
        legacy_key: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint_url: API base URL. Falls back to RISKVISIO_ENDPOINT env var.
            client_id: Falls back to RISKVISIO_CLIENT_ID env var.
            client_secret: Falls back to RISKVISIO_CLIENT_SECRET env var.
            admin_key: Admin key for creating/revoking keys. Falls back to
                RISKVISIO_ADMIN_KEY env var.
            legacy_key: Static key for servers in legacy mode.
            timeout: Default request timeout in seconds.
            max_retries: Maximum retry attempts for GET/PUT/DELETE.
            transport: Optional httpx transport.

        Raises:
            ValueError: If endpoint_url is not provided and not in env.
        """
        self._endpoint_url = endpoint_url or os.environ.get("RISKVISIO_ENDPOINT")
        self._client_id = client_id or os.environ.get("RISKVISIO_CLIENT_ID")
        self._client_secret = client_secret or os.environ.get("RISKVISIO_CLIENT_SECRET")
        self._admin_key = admin_key or os.environ.get("RISKVISIO_ADMIN_KEY")
        self._legacy_key = legacy_key

        if not self._endpoint_url:
            raise ValueError("endpoint_url required (or set RISKVISIO_ENDPOINT env var)")

        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._http: HTTPClient | None = None

    async def __aenter__(self) -> RiskVisioClient:
        """Enter async context, initializing HTTP client."""
        self._http = HTTPClient(
            base_url=self._endpoint_url,
            client_id=self._client_id,
            client_secret=self._client_secret,
            admin_key=self._admin_key,
            legacy_key=self._legacy_key,
            timeout=self._timeout,
            max_retries=self._max_retries,
            transport=self._transport,
        )
        await self._http.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context, closing HTTP client."""
        if self._http:
            await self._http.__aexit__(exc_type, exc_val, exc_tb)
            self._http = None

    @property
    def http(self) -> HTTPClient:
        """Get the HTTP client."""
        if self._http is None:
            raise RuntimeError("RiskVisioClient not initialized. Use 'async with' context.")
        return self._http

    async def health(self) -> HealthInfo:
        """Public health check; needs no credentials."""
        response = await self.http.get("/api/health")
        return HealthInfo.model_validate(response)

    # Records

    async def list_records(
        self,
        kind: RecordKind | str,
        *,
        factory: str | None = None,
        status: str | None = None,
        record_type: str | None = None,
        limit: int | None = None,
    ) -> RecordList:
        """List records of one kind.

        Args:
            kind: Record kind (e.g. RecordKind.INCIDENTS or "incidents")
            factory: Factory code; "ALL" or None returns every factory
            status: Filter by status
            record_type: Filter by record type
            limit: Max records (server default 1000, max 5000)
        """
        response = await self.http.get(
            f"/api/{_kind_value(kind)}",
            params={
                "factory": factory,
                "status": status,
                "type": record_type,
                "limit": limit,
            },
        )
        return RecordList.model_validate(response)

    async def get_record(self, kind: RecordKind | str, record_id: str) -> RecordInfo:
        """Get one record.

        Raises:
            NotFoundError: If no record of this kind has the id
        """
        response = await self.http.get(f"/api/{_kind_value(kind)}/{record_id}")
        return RecordInfo.model_validate(response)

    async def save_record(
        self,
        kind: RecordKind | str,
        record: Mapping[str, Any],
    ) -> RecordInfo:
        """Create or replace a record. Requires a full access key."""
        response = await self.http.post(f"/api/{_kind_value(kind)}", json=dict(record))
        return RecordInfo.model_validate(response)

    async def sync(
        self,
        batches: Mapping[RecordKind | str, Sequence[Mapping[str, Any]]],
    ) -> SyncResult:
        """Bulk upsert records of several kinds. Requires a full access key."""
        body = {
            _kind_value(kind): [dict(item) for item in items]
            for kind, items in batches.items()
        }
        response = await self.http.post("/api/sync", json=body)
        return SyncResult.model_validate(response)

    async def list_factories(self) -> FactoryList:
        response = await self.http.get("/api/factories")
        return FactoryList.model_validate(response)

    # API keys

    async def list_api_keys(self) -> ApiKeyList:
        """List all key records, active and revoked."""
        response = await self.http.get("/api/api-keys")
        return ApiKeyList.model_validate(response)

    async def get_api_key(self, key_id: str) -> ApiKeyInfo:
        response = await self.http.get(f"/api/api-keys/{key_id}")
        return ApiKeyInfo.model_validate(response)

    async def create_api_key(
        self,
        name: str,
        *,
        access_type: AccessType | str = AccessType.LIMITED,
        created_by: str | None = None,
    ) -> CreatedApiKey:
        """Create a key. The returned client_secret cannot be fetched again."""
        body: dict[str, Any] = {
            "name": name,
            "access_type": AccessType(access_type).value,
        }
        if created_by is not None:
            body["created_by"] = created_by
        response = await self.http.post("/api/api-keys", json=body)
        return CreatedApiKey.model_validate(response)

    async def revoke_api_key(
        self,
        key_id: str,
        *,
        revoked_by: str | None = None,
    ) -> RevokeResult:
        """Permanently revoke a key.

        Raises:
            NotFoundError: If the key id is unknown
        """
        body = {"revoked_by": revoked_by} if revoked_by is not None else {}
        response = await self.http.post(f"/api/api-keys/{key_id}/revoke", json=body)
        return RevokeResult.model_validate(response)

"""API key management endpoints.

Create, list and revoke the keys external integrations (Power BI
connectors, scripts) use. Key records are never deleted; revoked keys stay
listed for audit. Plaintext secrets appear only in the create response.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Body
from pydantic import BaseModel, Field

from riskvisio.api.dependencies import AdmissionDep, CurrentKeyDep, KeyStoreDep
from riskvisio.errors import NotFoundError
from riskvisio.models.api_key import AccessType, ApiKey
from riskvisio.services.gate import Admission, AdmissionMode, KeyIdentity
from riskvisio.services.key_store import KeyStore, RevokeOutcome

router = APIRouter()


# Request/Response Models


class CreateApiKeyRequest(BaseModel):
    """Request to create an API key."""

    name: str = Field(min_length=1, max_length=200)
    access_type: AccessType = AccessType.LIMITED
    created_by: str | None = Field(default=None, max_length=200)


class RevokeApiKeyRequest(BaseModel):
    revoked_by: str | None = Field(default=None, max_length=200)


class ApiKeyResponse(BaseModel):
    """Key record as exposed to clients. Never includes the secret hash."""

    id: str
    client_id: str
    name: str
    enabled: bool
    access_type: AccessType
    created_date: datetime
    created_by: str
    last_used: datetime | None
    revoked_date: datetime | None
    revoked_by: str | None


class CreatedApiKeyResponse(ApiKeyResponse):
    """Create response; the only place the plaintext secret is returned."""

    client_secret: str


class RevokeApiKeyResponse(BaseModel):
    status: RevokeOutcome
    key: ApiKeyResponse


class ApiKeyListResponse(BaseModel):
    items: list[ApiKeyResponse]
    active_count: int


def _key_to_response(api_key: ApiKey) -> ApiKeyResponse:
    """Convert ApiKey model to API response."""
    return ApiKeyResponse(
        id=api_key.id,
        client_id=api_key.client_id,
        name=api_key.name,
        enabled=api_key.enabled,
        access_type=api_key.access_type,
        created_date=api_key.created_date,
        created_by=api_key.created_by,
        last_used=api_key.last_used,
        revoked_date=api_key.revoked_date,
        revoked_by=api_key.revoked_by,
    )


def _actor(requested: str | None, admission: Admission, identity: KeyIdentity | None) -> str:
    """Who performed a key-management operation, for the audit columns."""
    if requested:
        return requested
    if identity is not None:
        return identity.client_id
    if admission.mode == AdmissionMode.BOOTSTRAP:
        return "bootstrap"
    return admission.mode.value


# Endpoints


@router.get("", response_model=ApiKeyListResponse)
async def list_api_keys(store: KeyStoreDep) -> ApiKeyListResponse:
    """List all keys, active and revoked."""
    keys = await store.list_keys()
    return ApiKeyListResponse(
        items=[_key_to_response(k) for k in keys],
        active_count=sum(1 for k in keys if k.is_active),
    )


@router.post("", response_model=CreatedApiKeyResponse, status_code=201)
async def create_api_key(
    request: CreateApiKeyRequest,
    store: KeyStoreDep,
    admission: AdmissionDep,
    identity: CurrentKeyDep,
) -> CreatedApiKeyResponse:
    """Create a key.

    Store the returned client_secret immediately: it cannot be retrieved
    again.
    """
    create = store.create_key
    if admission.mode == AdmissionMode.BOOTSTRAP:
        create = store.create_first_key
    api_key, client_secret = await create(
        name=request.name.strip(),
        access_type=request.access_type,
        created_by=_actor(request.created_by, admission, identity),
    )
    return CreatedApiKeyResponse(
        **_key_to_response(api_key).model_dump(),
        client_secret=client_secret,
    )


@router.get("/{key_id}", response_model=ApiKeyResponse)
async def get_api_key(key_id: str, store: KeyStoreDep) -> ApiKeyResponse:
    """Get one key record."""
    api_key = await store.get_key(key_id)
    if api_key is None:
        raise NotFoundError(f"API key not found: {key_id}")
    return _key_to_response(api_key)


async def _revoke(
    key_id: str,
    revoked_by: str | None,
    store: KeyStore,
    admission: Admission,
    identity: KeyIdentity | None,
) -> RevokeApiKeyResponse:
    result = await store.revoke_key(key_id, _actor(revoked_by, admission, identity))
    if result.outcome == RevokeOutcome.NOT_FOUND or result.key is None:
        raise NotFoundError(f"API key not found: {key_id}")
    return RevokeApiKeyResponse(status=result.outcome, key=_key_to_response(result.key))


@router.post("/{key_id}/revoke", response_model=RevokeApiKeyResponse)
async def revoke_api_key(
    key_id: str,
    store: KeyStoreDep,
    admission: AdmissionDep,
    identity: CurrentKeyDep,
    request: RevokeApiKeyRequest | None = Body(default=None),
) -> RevokeApiKeyResponse:
    """Permanently revoke a key.

    Revoking an already revoked key is a no-op reported as
    ``already_revoked``.
    """
    revoked_by = request.revoked_by if request else None
    return await _revoke(key_id, revoked_by, store, admission, identity)


@router.delete("/{key_id}", response_model=RevokeApiKeyResponse)
async def delete_api_key(
    key_id: str,
    store: KeyStoreDep,
    admission: AdmissionDep,
    identity: CurrentKeyDep,
) -> RevokeApiKeyResponse:
    """Revoke a key. Records are kept for audit, never physically removed."""
    return await _revoke(key_id, None, store, admission, identity)

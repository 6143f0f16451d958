"""Type definitions for the RiskVisio client.

Pydantic models for request/response serialization.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RecordKind(str, Enum):
    """Tracked record kinds, one per data endpoint."""

    OCCURRENCES = "occurrences"
    INCIDENTS = "incidents"
    RISKS = "risks"
    COMPLIANCE = "compliance"
    INVESTIGATIONS = "investigations"


class AccessType(str, Enum):
    FULL = "full"  # Read and write
    LIMITED = "limited"  # Read only


class RevokeStatus(str, Enum):
    REVOKED = "revoked"
    ALREADY_REVOKED = "already_revoked"


class HealthInfo(BaseModel):
    status: str
    auth_mode: str | None = None
    timestamp: str | None = None


class RecordInfo(BaseModel):
    """One tracked record."""

    id: str
    kind: RecordKind
    title: str | None = None
    description: str | None = None
    status: str | None = None
    type: str | None = None
    factory: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None


class RecordList(BaseModel):
    data: list[RecordInfo]
    count: int
    timestamp: str


class SyncResult(BaseModel):
    """Per-kind counts of upserted records."""

    synced: dict[str, int]
    timestamp: str


class FactoryInfo(BaseModel):
    name: str
    record_count: int


class FactoryList(BaseModel):
    data: list[FactoryInfo]
    count: int


class ApiKeyInfo(BaseModel):
    """Key record. Secrets are never part of it."""

    id: str
    client_id: str
    name: str
    enabled: bool
    access_type: AccessType
    created_date: datetime
    created_by: str
    last_used: datetime | None = None
    revoked_date: datetime | None = None
    revoked_by: str | None = None


class CreatedApiKey(ApiKeyInfo):
    """Result of key creation.

    ``client_secret`` is shown only here; store it before discarding this
    object.
    """

    client_secret: str


class ApiKeyList(BaseModel):
    items: list[ApiKeyInfo]
    active_count: int


class RevokeResult(BaseModel):
    status: RevokeStatus
    key: ApiKeyInfo

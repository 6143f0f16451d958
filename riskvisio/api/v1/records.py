"""Tracked record endpoints.

Serves occurrences, incidents, risks, compliance items and investigations to
reporting tools. Reads are open to any admitted key; writes need a full
access key (enforced by the gate before these handlers run).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from riskvisio.api.dependencies import CurrentKeyDep, RecordManagerDep
from riskvisio.managers.records import RecordInput
from riskvisio.models.record import RecordKind, TrackedRecord
from riskvisio.utils.datetime import isoformat_utc

router = APIRouter()


# Request/Response Models


class RecordRequest(BaseModel):
    """Record body for create/replace. ``id`` is generated when omitted."""

    id: str | None = Field(default=None, max_length=100)
    title: str | None = None
    description: str | None = None
    status: str | None = None
    type: str | None = None
    factory: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    def to_input(self) -> RecordInput:
        return RecordInput(
            id=self.id,
            title=self.title,
            description=self.description,
            status=self.status,
            record_type=self.type,
            factory=self.factory,
            data=self.data,
        )


class RecordResponse(BaseModel):
    id: str
    kind: RecordKind
    title: str | None
    description: str | None
    status: str | None
    type: str | None
    factory: str | None
    data: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    created_by: str | None


class RecordListResponse(BaseModel):
    data: list[RecordResponse]
    count: int
    timestamp: str


class SyncRequest(BaseModel):
    """Bulk upsert payload, one list per record kind."""

    occurrences: list[RecordRequest] = Field(default_factory=list)
    incidents: list[RecordRequest] = Field(default_factory=list)
    risks: list[RecordRequest] = Field(default_factory=list)
    compliance: list[RecordRequest] = Field(default_factory=list)
    investigations: list[RecordRequest] = Field(default_factory=list)


class SyncResponse(BaseModel):
    synced: dict[str, int]
    timestamp: str


class FactoryInfo(BaseModel):
    name: str
    record_count: int


class FactoryListResponse(BaseModel):
    data: list[FactoryInfo]
    count: int


def _record_to_response(record: TrackedRecord) -> RecordResponse:
    """Convert TrackedRecord model to API response."""
    return RecordResponse(
        id=record.id,
        kind=record.kind,
        title=record.title,
        description=record.description,
        status=record.status,
        type=record.record_type,
        factory=record.factory,
        data=record.data or {},
        created_at=record.created_at,
        updated_at=record.updated_at,
        created_by=record.created_by,
    )


# Endpoints
# Fixed paths are registered before /{kind} so they are not captured by it.


@router.get("/factories", response_model=FactoryListResponse)
async def list_factories(record_mgr: RecordManagerDep) -> FactoryListResponse:
    """Factories that have at least one record."""
    factories = await record_mgr.factories()
    items = [FactoryInfo(name=name, record_count=count) for name, count in factories]
    return FactoryListResponse(data=items, count=len(items))


@router.post("/sync", response_model=SyncResponse)
async def sync_records(
    request: SyncRequest,
    record_mgr: RecordManagerDep,
    identity: CurrentKeyDep,
) -> SyncResponse:
    """Upsert records of several kinds in one call."""
    batches = {
        kind: [item.to_input() for item in getattr(request, kind.value)]
        for kind in RecordKind
    }
    counts = await record_mgr.sync(
        batches,
        actor=identity.client_id if identity else None,
    )
    return SyncResponse(synced=counts, timestamp=isoformat_utc())


@router.get("/{kind}", response_model=RecordListResponse)
async def list_records(
    kind: RecordKind,
    record_mgr: RecordManagerDep,
    factory: str | None = Query(None, description="Factory code; ALL disables the filter"),
    status: str | None = Query(None),
    type: str | None = Query(None),
    limit: int = Query(1000, ge=1, le=5000),
) -> RecordListResponse:
    """List records of one kind, newest first."""
    records = await record_mgr.list(
        kind,
        factory=factory,
        status=status,
        record_type=type,
        limit=limit,
    )
    items = [_record_to_response(r) for r in records]
    return RecordListResponse(data=items, count=len(items), timestamp=isoformat_utc())


@router.get("/{kind}/{record_id}", response_model=RecordResponse)
async def get_record(
    kind: RecordKind,
    record_id: str,
    record_mgr: RecordManagerDep,
) -> RecordResponse:
    """Get one record."""
    record = await record_mgr.get(kind, record_id)
    return _record_to_response(record)


@router.post("/{kind}", response_model=RecordResponse)
async def save_record(
    kind: RecordKind,
    request: RecordRequest,
    record_mgr: RecordManagerDep,
    identity: CurrentKeyDep,
) -> RecordResponse:
    """Create or replace a record."""
    record = await record_mgr.upsert(
        kind,
        request.to_input(),
        actor=identity.client_id if identity else None,
    )
    return _record_to_response(record)

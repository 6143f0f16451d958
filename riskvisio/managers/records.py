"""RecordManager - tracked record storage and queries."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from riskvisio.errors import ConflictError, NotFoundError
from riskvisio.models.record import RecordKind, TrackedRecord
from riskvisio.utils.datetime import utcnow

logger = structlog.get_logger()

ALL_FACTORIES = "ALL"


@dataclass
class RecordInput:
    """Fields accepted when creating or replacing a record."""

    id: str | None = None
    title: str | None = None
    description: str | None = None
    status: str | None = None
    record_type: str | None = None
    factory: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class RecordManager:
    """Manages tracked records of every kind."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session
        self._log = logger.bind(manager="records")

    async def list(
        self,
        kind: RecordKind,
        *,
        factory: str | None = None,
        status: str | None = None,
        record_type: str | None = None,
        limit: int = 1000,
    ) -> list[TrackedRecord]:
        """List records of one kind, newest first.

        A factory of ``ALL`` (or None) disables the factory filter.
        """
        query = select(TrackedRecord).where(TrackedRecord.kind == kind)
        if factory and factory != ALL_FACTORIES:
            query = query.where(TrackedRecord.factory == factory)
        if status:
            query = query.where(TrackedRecord.status == status)
        if record_type:
            query = query.where(TrackedRecord.record_type == record_type)
        query = query.order_by(TrackedRecord.created_at.desc()).limit(limit)

        result = await self._db.execute(query)
        return list(result.scalars().all())

    async def get(self, kind: RecordKind, record_id: str) -> TrackedRecord:
        """Get one record.

        Raises:
            NotFoundError: If no record of this kind has the id
        """
        record = await self._db.get(TrackedRecord, record_id)
        if record is None or record.kind != kind:
            raise NotFoundError(f"Record not found: {kind.value}/{record_id}")
        return record

    async def upsert(
        self,
        kind: RecordKind,
        payload: RecordInput,
        *,
        actor: str | None = None,
    ) -> TrackedRecord:
        """Create a record or replace an existing one with the same id.

        Raises:
            ConflictError: If the id is already used by a record of another kind
        """
        record_id = payload.id or uuid.uuid4().hex
        now = utcnow()

        record = await self._db.get(TrackedRecord, record_id)
        if record is not None and record.kind != kind:
            raise ConflictError(
                f"Record id already used by another kind: {record_id}",
                details={"existing_kind": record.kind.value},
            )

        if record is None:
            record = TrackedRecord(
                id=record_id,
                kind=kind,
                created_at=now,
                created_by=actor,
            )

        record.title = payload.title
        record.description = payload.description
        record.status = payload.status
        record.record_type = payload.record_type
        record.factory = payload.factory
        record.data = dict(payload.data)
        record.updated_at = now

        self._db.add(record)
        await self._db.flush()

        self._log.info("record.upsert", kind=kind.value, record_id=record_id, actor=actor)
        return record

    async def sync(
        self,
        batches: dict[RecordKind, Iterable[RecordInput]],
        *,
        actor: str | None = None,
    ) -> dict[str, int]:
        """Upsert several batches at once. Returns the count per kind."""
        counts: dict[str, int] = {}
        for kind, items in batches.items():
            count = 0
            for item in items:
                await self.upsert(kind, item, actor=actor)
                count += 1
            counts[kind.value] = count
        self._log.info("record.sync", counts=counts, actor=actor)
        return counts

    async def factories(self) -> list[tuple[str, int]]:
        """Distinct factories with their record counts."""
        result = await self._db.execute(
            select(TrackedRecord.factory, func.count())
            .where(TrackedRecord.factory.is_not(None))
            .group_by(TrackedRecord.factory)
            .order_by(TrackedRecord.factory)
        )
        return [(name, int(count)) for name, count in result.all()]

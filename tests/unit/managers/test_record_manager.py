"""Unit tests for RecordManager.

Tests record queries, upserts and bulk sync using in-memory SQLite.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from riskvisio.errors import ConflictError, NotFoundError
from riskvisio.managers.records import RecordInput, RecordManager
from riskvisio.models.record import RecordKind


@pytest.fixture
async def db_session():
    """Create in-memory SQLite database and session."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async_session_factory = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def record_manager(db_session) -> RecordManager:
    return RecordManager(db_session=db_session)


class TestUpsert:
    """Test RecordManager.upsert."""

    async def test_create_generates_id(self, record_manager: RecordManager):
        record = await record_manager.upsert(
            RecordKind.INCIDENTS,
            RecordInput(title="Forklift collision", factory="F1", status="open"),
            actor="key_abc",
        )

        assert record.id
        assert record.kind == RecordKind.INCIDENTS
        assert record.title == "Forklift collision"
        assert record.created_by == "key_abc"

    async def test_replace_keeps_created_fields(self, record_manager: RecordManager):
        first = await record_manager.upsert(
            RecordKind.RISKS,
            RecordInput(id="r-1", title="Old", data={"score": 3}),
            actor="creator",
        )
        created_at = first.created_at

        updated = await record_manager.upsert(
            RecordKind.RISKS,
            RecordInput(id="r-1", title="New", data={"score": 5}),
            actor="editor",
        )

        assert updated.id == "r-1"
        assert updated.title == "New"
        assert updated.data == {"score": 5}
        assert updated.created_at == created_at
        assert updated.created_by == "creator"
        assert updated.updated_at >= created_at

    async def test_timestamps_reload_as_utc(self, record_manager: RecordManager, db_session):
        record = await record_manager.upsert(RecordKind.RISKS, RecordInput(id="r-2"))
        await db_session.commit()

        await db_session.refresh(record)

        assert record.created_at.tzinfo is not None
        assert record.created_at.utcoffset() == timedelta(0)
        assert record.updated_at >= record.created_at

    async def test_id_reused_across_kinds_conflicts(self, record_manager: RecordManager):
        await record_manager.upsert(RecordKind.RISKS, RecordInput(id="x-1"))

        with pytest.raises(ConflictError) as exc_info:
            await record_manager.upsert(RecordKind.INCIDENTS, RecordInput(id="x-1"))

        assert exc_info.value.details["existing_kind"] == "risks"


class TestGet:
    """Test RecordManager.get."""

    async def test_get_existing(self, record_manager: RecordManager):
        await record_manager.upsert(RecordKind.COMPLIANCE, RecordInput(id="c-1", title="ISO"))

        record = await record_manager.get(RecordKind.COMPLIANCE, "c-1")

        assert record.title == "ISO"

    async def test_get_missing(self, record_manager: RecordManager):
        with pytest.raises(NotFoundError):
            await record_manager.get(RecordKind.COMPLIANCE, "nope")

    async def test_get_wrong_kind(self, record_manager: RecordManager):
        await record_manager.upsert(RecordKind.COMPLIANCE, RecordInput(id="c-1"))

        with pytest.raises(NotFoundError):
            await record_manager.get(RecordKind.INVESTIGATIONS, "c-1")


class TestList:
    """Test RecordManager.list filters."""

    @pytest.fixture
    async def seeded(self, record_manager: RecordManager) -> RecordManager:
        for record_id, factory, status, record_type in [
            ("o-1", "F1", "open", "near_miss"),
            ("o-2", "F1", "closed", "near_miss"),
            ("o-3", "F2", "open", "hazard"),
        ]:
            await record_manager.upsert(
                RecordKind.OCCURRENCES,
                RecordInput(id=record_id, factory=factory, status=status, record_type=record_type),
            )
        await record_manager.upsert(RecordKind.INCIDENTS, RecordInput(id="i-1", factory="F1"))
        return record_manager

    async def test_list_only_requested_kind(self, seeded: RecordManager):
        records = await seeded.list(RecordKind.OCCURRENCES)

        assert {r.id for r in records} == {"o-1", "o-2", "o-3"}

    async def test_factory_filter(self, seeded: RecordManager):
        records = await seeded.list(RecordKind.OCCURRENCES, factory="F1")

        assert {r.id for r in records} == {"o-1", "o-2"}

    async def test_factory_all_disables_filter(self, seeded: RecordManager):
        records = await seeded.list(RecordKind.OCCURRENCES, factory="ALL")

        assert len(records) == 3

    async def test_status_and_type_filters(self, seeded: RecordManager):
        records = await seeded.list(RecordKind.OCCURRENCES, status="open", record_type="hazard")

        assert [r.id for r in records] == ["o-3"]

    async def test_limit(self, seeded: RecordManager):
        records = await seeded.list(RecordKind.OCCURRENCES, limit=2)

        assert len(records) == 2


class TestSyncAndFactories:
    """Test bulk sync and factory aggregation."""

    async def test_sync_counts_per_kind(self, record_manager: RecordManager):
        counts = await record_manager.sync(
            {
                RecordKind.INCIDENTS: [RecordInput(id="i-1"), RecordInput(id="i-2")],
                RecordKind.RISKS: [RecordInput(id="r-1")],
                RecordKind.COMPLIANCE: [],
            },
            actor="key_sync",
        )

        assert counts == {"incidents": 2, "risks": 1, "compliance": 0}
        assert len(await record_manager.list(RecordKind.INCIDENTS)) == 2

    async def test_factories(self, record_manager: RecordManager):
        await record_manager.upsert(RecordKind.INCIDENTS, RecordInput(id="i-1", factory="F2"))
        await record_manager.upsert(RecordKind.RISKS, RecordInput(id="r-1", factory="F1"))
        await record_manager.upsert(RecordKind.RISKS, RecordInput(id="r-2", factory="F1"))
        await record_manager.upsert(RecordKind.RISKS, RecordInput(id="r-3"))

        assert await record_manager.factories() == [("F1", 2), ("F2", 1)]

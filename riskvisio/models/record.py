"""Tracked record data model.

Occurrences, incidents, risks, compliance items and investigations share one
table. The ``kind`` column is the explicit discriminant, set when the record
is created and never inferred from which fields happen to be present.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from riskvisio.models.types import UTCDateTime
from riskvisio.utils.datetime import utcnow


class RecordKind(str, Enum):
    """Kinds of tracked records (also the URL segment under /api)."""

    OCCURRENCES = "occurrences"
    INCIDENTS = "incidents"
    RISKS = "risks"
    COMPLIANCE = "compliance"
    INVESTIGATIONS = "investigations"


class TrackedRecord(SQLModel, table=True):
    """A tracked risk-management record."""

    __tablename__ = "records"

    id: str = Field(primary_key=True)
    kind: RecordKind = Field(index=True)
    title: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    status: Optional[str] = Field(default=None, index=True)
    record_type: Optional[str] = Field(default=None)
    factory: Optional[str] = Field(default=None, index=True)
    data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    created_by: Optional[str] = Field(default=None)

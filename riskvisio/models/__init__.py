"""SQLModel data models."""

from riskvisio.models.api_key import AccessType, ApiKey
from riskvisio.models.record import RecordKind, TrackedRecord

__all__ = [
    "AccessType",
    "ApiKey",
    "RecordKind",
    "TrackedRecord",
]

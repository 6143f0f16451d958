"""API key data model.

Stores hashed client secrets for dual-credential authentication.
Plaintext secrets are never stored, only SHA-256 hashes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from riskvisio.models.types import UTCDateTime
from riskvisio.utils.datetime import utcnow


class AccessType(str, Enum):
    """Privilege tier of a key."""

    FULL = "full"  # read and write application data
    LIMITED = "limited"  # read only


class ApiKey(SQLModel, table=True):
    """Key record for an external integration.

    ``client_id`` is the public lookup key and is unique across active and
    revoked records. Revocation sets ``enabled`` to False together with
    ``revoked_date``/``revoked_by`` and is never undone.
    """

    __tablename__ = "api_keys"

    id: str = Field(primary_key=True)
    client_id: str = Field(index=True, unique=True)
    secret_hash: str = Field()  # SHA-256 hex digest
    name: str = Field()
    enabled: bool = Field(default=True)
    access_type: AccessType = Field(default=AccessType.LIMITED)
    created_date: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    created_by: str = Field()
    last_used: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    revoked_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    revoked_by: Optional[str] = Field(default=None)

    @property
    def is_active(self) -> bool:
        return self.enabled and self.revoked_date is None

"""Key Store: persistence of API key records.

Each operation opens its own session from the injected session factory, so a
fire-and-forget call (``touch_last_used``) never depends on the lifetime of
the request that scheduled it.
"""

from __future__ import annotations

import asyncio
import json
import os
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

import structlog
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from riskvisio.db.session import get_async_session
from riskvisio.errors import MissingCredentialsError
from riskvisio.models.api_key import AccessType, ApiKey
from riskvisio.services.credentials import (
    generate_client_id,
    generate_client_secret,
    hash_secret,
)
from riskvisio.utils.datetime import isoformat_utc, utcnow

logger = structlog.get_logger()

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_CLIENT_ID_ATTEMPTS = 5
INITIAL_KEY_NAME = "Initial Admin Key"


class RevokeOutcome(str, Enum):
    REVOKED = "revoked"
    NOT_FOUND = "not_found"
    ALREADY_REVOKED = "already_revoked"


@dataclass(frozen=True)
class RevokeResult:
    outcome: RevokeOutcome
    key: ApiKey | None = None


def _active_clause():
    return (ApiKey.enabled == True) & (ApiKey.revoked_date.is_(None))  # noqa: E712


class KeyStore:
    """Persistent table of key records, queried by client identifier."""

    def __init__(self, session_factory: SessionFactory = get_async_session) -> None:
        self._session_factory = session_factory
        self._bootstrap_lock = asyncio.Lock()
        self._log = logger.bind(component="key_store")

    async def count_active_keys(self) -> int:
        """Count records that are enabled and not revoked."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(func.count()).select_from(ApiKey).where(_active_clause())
            )
            return int(result.scalar_one())

    async def find_active_key_by_client_id(self, client_id: str) -> ApiKey | None:
        """Look up an active record by its client id.

        Revoked and disabled records are indistinguishable from unknown ids.
        """
        async with self._session_factory() as db:
            result = await db.execute(
                select(ApiKey).where(ApiKey.client_id == client_id, _active_clause())
            )
            return result.scalars().first()

    async def touch_last_used(self, key_id: str, timestamp: datetime | None = None) -> bool:
        """Record a successful authentication. Returns False if no row matched."""
        async with self._session_factory() as db:
            result = await db.execute(
                update(ApiKey)
                .where(ApiKey.id == key_id)
                .values(last_used=timestamp or utcnow())
            )
            return (result.rowcount or 0) > 0

    async def create_key(
        self,
        name: str,
        access_type: AccessType,
        created_by: str,
    ) -> tuple[ApiKey, str]:
        """Create a key record.

        Returns:
            Tuple of (record, plaintext_secret). The secret is not recoverable
            afterwards.
        """
        client_secret = generate_client_secret()
        secret_hash = hash_secret(client_secret)

        for attempt in range(_CLIENT_ID_ATTEMPTS):
            api_key = ApiKey(
                id=str(uuid.uuid4()),
                client_id=generate_client_id(),
                secret_hash=secret_hash,
                name=name,
                enabled=True,
                access_type=access_type,
                created_date=utcnow(),
                created_by=created_by,
            )
            try:
                async with self._session_factory() as db:
                    db.add(api_key)
                    await db.flush()
            except IntegrityError:
                self._log.warning("api_key.create.client_id_collision", attempt=attempt)
                continue

            self._log.info(
                "api_key.create",
                key_id=api_key.id,
                client_id=api_key.client_id,
                access_type=api_key.access_type.value,
                created_by=created_by,
            )
            return api_key, client_secret

        raise RuntimeError("Could not allocate a unique client id")

    async def create_first_key(
        self,
        name: str,
        access_type: AccessType,
        created_by: str,
    ) -> tuple[ApiKey, str]:
        """Create a key only while no active key exists.

        Concurrent callers are serialized; once one of them has created a
        key the others find the bootstrap window closed.

        Raises:
            MissingCredentialsError: An active key already exists
        """
        async with self._bootstrap_lock:
            if await self.count_active_keys() > 0:
                self._log.info("api_key.bootstrap.closed", name=name)
                raise MissingCredentialsError(
                    details={
                        "missing": ["x-client-id", "x-client-secret"],
                        "hint": "An API key already exists. Authenticate to create more keys",
                        "auth_mode": "dual-credential",
                    }
                )
            return await self.create_key(name, access_type, created_by)

    async def revoke_key(self, key_id: str, revoked_by: str) -> RevokeResult:
        """Permanently revoke a key. Revoking twice reports ALREADY_REVOKED.

        The revocation is a single conditional UPDATE, so of two concurrent
        calls exactly one reports REVOKED and its audit fields are kept.
        """
        async with self._session_factory() as db:
            result = await db.execute(
                update(ApiKey)
                .where(ApiKey.id == key_id, ApiKey.revoked_date.is_(None))
                .values(enabled=False, revoked_date=utcnow(), revoked_by=revoked_by)
                .execution_options(synchronize_session=False)
            )
            revoked = (result.rowcount or 0) > 0
            api_key = await db.get(ApiKey, key_id, populate_existing=True)

        if api_key is None:
            return RevokeResult(RevokeOutcome.NOT_FOUND)
        if not revoked:
            return RevokeResult(RevokeOutcome.ALREADY_REVOKED, api_key)

        self._log.info(
            "api_key.revoke",
            key_id=key_id,
            client_id=api_key.client_id,
            revoked_by=revoked_by,
        )
        return RevokeResult(RevokeOutcome.REVOKED, api_key)

    async def list_keys(self) -> list[ApiKey]:
        """All key records, active and revoked, newest first."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(ApiKey).order_by(ApiKey.created_date.desc())
            )
            return list(result.scalars().all())

    async def get_key(self, key_id: str) -> ApiKey | None:
        async with self._session_factory() as db:
            return await db.get(ApiKey, key_id)

    async def provision_initial_key(self, data_dir: Path, endpoint: str) -> ApiKey | None:
        """Create a full-access key on first boot.

        Skipped when any active key exists. The credentials are written to
        ``data_dir/credentials.json`` since they cannot be shown again.
        """
        async with self._bootstrap_lock:
            if await self.count_active_keys() > 0:
                logger.debug("api_key.provision.skip", reason="active keys exist")
                return None

            api_key, client_secret = await self.create_key(
                name=INITIAL_KEY_NAME,
                access_type=AccessType.FULL,
                created_by="system",
            )
        write_credentials_file(data_dir, api_key.client_id, client_secret, endpoint)
        logger.info(
            "api_key.provision.generated",
            client_id=api_key.client_id,
            msg="First boot: initial API key generated. See credentials.json.",
        )
        return api_key


def write_credentials_file(
    data_dir: Path,
    client_id: str,
    client_secret: str,
    endpoint: str,
) -> Path:
    """Write credentials.json for the operator.

    Args:
        data_dir: Directory to write the file to
        client_id: Public client id
        client_secret: Plaintext client secret
        endpoint: API endpoint URL

    Returns:
        Path of the written file
    """
    credentials = {
        "client_id": client_id,
        "client_secret": client_secret,
        "endpoint": endpoint,
        "generated_at": isoformat_utc(),
    }

    cred_path = data_dir / "credentials.json"
    data_dir.mkdir(parents=True, exist_ok=True)
    cred_path.write_text(json.dumps(credentials, indent=2) + "\n")

    # Owner read/write only
    try:
        os.chmod(cred_path, 0o600)
    except OSError:
        logger.warning(
            "api_key.credentials.chmod_failed",
            path=str(cred_path),
            msg="Could not set file permissions to 0600",
        )

    logger.info("api_key.credentials.written", path=str(cred_path))
    return cred_path

"""Credential Gate.

Decides, for every request under the protected prefix, whether it may
proceed and with which identity. The decision is a single linear policy
evaluated per request; there are no sessions or tokens.

Decision order (first match wins):
1. Public diagnostic path -> admit, no identity
2. Legacy static key configured -> admin key for key-management mutations,
   legacy key for everything else
3. Dual-credential mode:
   a. No active keys (bootstrap) -> admit key listing/creation and all
      non-key-management requests
   b. Otherwise -> admin key for key-management mutations, then client id +
      client secret, then access type for writes
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError

from riskvisio.config import SecurityConfig
from riskvisio.errors import (
    AdminKeyRequiredError,
    InsufficientPrivilegesError,
    InvalidCredentialsError,
    MissingCredentialsError,
    StoreUnavailableError,
)
from riskvisio.models.api_key import AccessType, ApiKey
from riskvisio.services.credentials import keys_equal, verify_secret
from riskvisio.utils.datetime import utcnow

logger = structlog.get_logger()

T = TypeVar("T")

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

HEADER_CLIENT_ID = "x-client-id"
HEADER_CLIENT_SECRET = "x-client-secret"
HEADER_LEGACY_KEY = "x-api-key"
HEADER_ADMIN_KEY = "x-admin-key"
QUERY_CLIENT_ID = "client_id"
QUERY_CLIENT_SECRET = "client_secret"
QUERY_LEGACY_KEY = "api_key"


class KeyLookup(Protocol):
    """The part of the Key Store the gate depends on."""

    async def count_active_keys(self) -> int: ...

    async def find_active_key_by_client_id(self, client_id: str) -> ApiKey | None: ...

    async def touch_last_used(self, key_id: str, timestamp=None) -> bool: ...


class AdmissionMode(str, Enum):
    EXEMPT = "exempt"
    LEGACY = "legacy"
    BOOTSTRAP = "bootstrap"
    CREDENTIAL = "credential"


@dataclass(frozen=True)
class KeyIdentity:
    """Read-only view of the key a request authenticated with."""

    id: str
    client_id: str
    name: str
    access_type: AccessType
    enabled: bool

    @classmethod
    def from_record(cls, record: ApiKey) -> KeyIdentity:
        return cls(
            id=record.id,
            client_id=record.client_id,
            name=record.name,
            access_type=record.access_type,
            enabled=record.enabled,
        )


@dataclass(frozen=True)
class Admission:
    """Outcome of an admitted request. Rejections are raised as errors."""

    mode: AdmissionMode
    identity: KeyIdentity | None = None


@dataclass(frozen=True)
class CredentialRequest:
    """The parts of an HTTP request the gate looks at.

    ``headers`` lookups must be case-insensitive (Starlette headers are).
    """

    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        return self.headers.get(name) or None

    def param(self, name: str) -> str | None:
        return self.query.get(name) or None


class CredentialGate:
    """API-key admission policy.

    Args:
        config: Security settings, resolved once at process start
        store: Key Store used for counting and looking up active keys
    """

    def __init__(self, config: SecurityConfig, store: KeyLookup) -> None:
        self._config = config
        self._store = store
        self._pending: set[asyncio.Task] = set()
        self._log = logger.bind(component="gate")

    @property
    def mode(self) -> str:
        return self._config.auth_mode

    # ---- Path classification ----

    def is_public(self, path: str) -> bool:
        return path in self._config.public_paths

    def is_key_management(self, path: str) -> bool:
        prefix = self._config.key_management_prefix.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")

    def is_key_collection(self, path: str) -> bool:
        prefix = self._config.key_management_prefix.rstrip("/")
        return path.rstrip("/") == prefix

    # ---- Policy ----

    async def evaluate(self, request: CredentialRequest) -> Admission:
        """Admit the request or raise the matching RiskVisioError."""
        method = request.method.upper()
        path = request.path

        if self.is_public(path):
            return Admission(AdmissionMode.EXEMPT)

        key_management = self.is_key_management(path)
        mutating = method in MUTATING_METHODS

        if self._config.api_key:
            return self._evaluate_legacy(request, key_management=key_management, mutating=mutating)

        active_count = await self._bounded(self._store.count_active_keys())
        if active_count == 0 and self._bootstrap_allows(request, method, key_management):
            self._log.debug("auth.admit", mode="bootstrap", method=method, path=path)
            return Admission(AdmissionMode.BOOTSTRAP)

        if key_management and mutating:
            self._require_admin_key(request)

        client_id = (
            request.header(HEADER_CLIENT_ID)
            or request.header(HEADER_LEGACY_KEY)
            or request.param(QUERY_CLIENT_ID)
            or request.param(QUERY_LEGACY_KEY)
        )
        client_secret = request.header(HEADER_CLIENT_SECRET) or request.param(QUERY_CLIENT_SECRET)

        if not client_id or not client_secret:
            missing = []
            if not client_id:
                missing.append(HEADER_CLIENT_ID)
            if not client_secret:
                missing.append(HEADER_CLIENT_SECRET)
            self._reject("missing_credentials", method, path, missing=missing)
            raise MissingCredentialsError(
                details={
                    "missing": missing,
                    "hint": "Provide both x-client-id and x-client-secret headers",
                    "auth_mode": "dual-credential",
                }
            )

        record = await self._bounded(self._store.find_active_key_by_client_id(client_id))
        if record is None or not verify_secret(client_secret, record.secret_hash):
            self._reject("invalid_credentials", method, path, client_id=client_id)
            raise InvalidCredentialsError(
                details={"hint": "Check the x-client-id and x-client-secret values"}
            )

        if mutating and not key_management and record.access_type != AccessType.FULL:
            self._reject("insufficient_privileges", method, path, client_id=client_id)
            raise InsufficientPrivilegesError(
                details={"hint": "Write operations require a full access key"}
            )

        self._schedule_touch(record.id, client_id)
        self._log.debug("auth.admit", mode="credential", client_id=client_id, method=method, path=path)
        return Admission(AdmissionMode.CREDENTIAL, KeyIdentity.from_record(record))

    def _evaluate_legacy(
        self,
        request: CredentialRequest,
        *,
        key_management: bool,
        mutating: bool,
    ) -> Admission:
        if key_management and mutating and self._config.admin_key:
            self._require_admin_key(request)
            return Admission(AdmissionMode.LEGACY)

        provided = request.header(HEADER_LEGACY_KEY) or request.param(QUERY_LEGACY_KEY)
        if not keys_equal(provided, self._config.api_key):
            self._reject("invalid_legacy_key", request.method, request.path)
            raise InvalidCredentialsError(
                "Unauthorized: invalid API key",
                details={"hint": "Provide valid x-api-key header", "auth_mode": "legacy"},
            )
        return Admission(AdmissionMode.LEGACY)

    def _bootstrap_allows(self, request: CredentialRequest, method: str, key_management: bool) -> bool:
        if not key_management:
            return True
        if method == "GET":
            return True
        if method == "POST" and self.is_key_collection(request.path):
            if self._config.bootstrap_requires_admin_key and self._config.admin_key:
                self._require_admin_key(request)
            return True
        return False

    def _require_admin_key(self, request: CredentialRequest) -> None:
        if not self._config.admin_key:
            return
        if not keys_equal(request.header(HEADER_ADMIN_KEY), self._config.admin_key):
            self._reject("admin_key_required", request.method, request.path)
            raise AdminKeyRequiredError(
                details={"hint": "Provide x-admin-key header with valid admin key"}
            )

    def _reject(self, reason: str, method: str, path: str, **context) -> None:
        self._log.info("auth.reject", reason=reason, method=method, path=path, **context)

    # ---- Store access ----

    async def _bounded(self, call: Awaitable[T]) -> T:
        """Await a store call within the configured timeout."""
        try:
            return await asyncio.wait_for(call, timeout=self._config.store_timeout_seconds)
        except (TimeoutError, SQLAlchemyError, OSError) as exc:
            self._log.error("auth.store_unavailable", error=repr(exc))
            raise StoreUnavailableError(
                details={"hint": "Temporary failure, retry with backoff"}
            ) from exc

    def _schedule_touch(self, key_id: str, client_id: str) -> None:
        task = asyncio.create_task(self._touch(key_id, client_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _touch(self, key_id: str, client_id: str) -> None:
        try:
            await self._store.touch_last_used(key_id, utcnow())
        except Exception as exc:  # noqa: BLE001
            self._log.warning("api_key.touch_failed", client_id=client_id, error=repr(exc))

    async def drain(self) -> None:
        """Wait for outstanding last-used updates."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

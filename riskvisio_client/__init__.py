"""RiskVisio Python client.

Async client for the RiskVisio API, authenticating with a client id and
client secret.
"""

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from riskvisio_client.client import RiskVisioClient
from riskvisio_client.errors import (
    AdminKeyRequiredError,
    ConflictError,
    InsufficientPrivilegesError,
    InvalidCredentialsError,
    MissingCredentialsError,
    NotFoundError,
    RiskVisioClientError,
    StoreUnavailableError,
    ValidationError,
)
from riskvisio_client.types import (
    AccessType,
    ApiKeyInfo,
    ApiKeyList,
    CreatedApiKey,
    FactoryInfo,
    FactoryList,
    HealthInfo,
    RecordInfo,
    RecordKind,
    RecordList,
    RevokeResult,
    RevokeStatus,
    SyncResult,
)

__all__ = [
    # Client
    "RiskVisioClient",
    # Types
    "AccessType",
    "ApiKeyInfo",
    "ApiKeyList",
    "CreatedApiKey",
    "FactoryInfo",
    "FactoryList",
    "HealthInfo",
    "RecordInfo",
    "RecordKind",
    "RecordList",
    "RevokeResult",
    "RevokeStatus",
    "SyncResult",
    # Errors
    "RiskVisioClientError",
    "MissingCredentialsError",
    "InvalidCredentialsError",
    "AdminKeyRequiredError",
    "InsufficientPrivilegesError",
    "StoreUnavailableError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
]

try:
    __version__ = _pkg_version("riskvisio-api")
except PackageNotFoundError:
    __version__ = "0.0.0"

"""RiskVisio client error types.

One exception class per server ``error.code``, so integrators can tell a
missing credential from a revoked one from a temporary outage.
"""

from __future__ import annotations

from typing import Any


class RiskVisioClientError(Exception):
    """Base error for all RiskVisio client exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        self.request_id = request_id
        super().__init__(self.message)


class MissingCredentialsError(RiskVisioClientError):
    """Client id and/or secret were not sent (401)."""

    code = "missing_credentials"
    message = "Client ID and Client Secret required"
    status_code = 401


class InvalidCredentialsError(RiskVisioClientError):
    """Credentials rejected: unknown, revoked or wrong secret (401)."""

    code = "invalid_credentials"
    message = "Invalid API credentials"
    status_code = 401


class AdminKeyRequiredError(RiskVisioClientError):
    """Key-management call without a valid admin key (401)."""

    code = "admin_key_required"
    message = "Admin key required for key management operations"
    status_code = 401


class InsufficientPrivilegesError(RiskVisioClientError):
    """Key lacks full access for a write (403)."""

    code = "insufficient_privileges"
    message = "Insufficient privileges"
    status_code = 403


class StoreUnavailableError(RiskVisioClientError):
    """Server could not reach its credential store; retry later (503)."""

    code = "store_unavailable"
    message = "Credential store unavailable"
    status_code = 503


class NotFoundError(RiskVisioClientError):
    """Resource not found (404)."""

    code = "not_found"
    message = "Resource not found"
    status_code = 404


class ConflictError(RiskVisioClientError):
    """Conflict (409)."""

    code = "conflict"
    message = "Conflict"
    status_code = 409


class ValidationError(RiskVisioClientError):
    """Request validation error (400)."""

    code = "validation_error"
    message = "Validation error"
    status_code = 400


# Error code to exception class mapping
ERROR_CODE_MAP: dict[str, type[RiskVisioClientError]] = {
    "missing_credentials": MissingCredentialsError,
    "invalid_credentials": InvalidCredentialsError,
    "admin_key_required": AdminKeyRequiredError,
    "insufficient_privileges": InsufficientPrivilegesError,
    "store_unavailable": StoreUnavailableError,
    "not_found": NotFoundError,
    "conflict": ConflictError,
    "validation_error": ValidationError,
}


def raise_for_error_response(
    status_code: int,
    response_body: dict[str, Any],
) -> None:
    """Raise the RiskVisioClientError subclass matching an error response.

    Args:
        status_code: HTTP status code
        response_body: Parsed JSON response body

    Raises:
        RiskVisioClientError: Subclass chosen by ``error.code``; the base
            class (carrying the HTTP status) for unknown codes
    """
    error_data = response_body.get("error") or {}
    code = error_data.get("code", "internal_error")
    message = error_data.get("message")
    details = error_data.get("details") or {}

    error_class = ERROR_CODE_MAP.get(code, RiskVisioClientError)
    raise error_class(
        message=message,
        details=details,
        status_code=status_code,
        request_id=error_data.get("request_id"),
    )

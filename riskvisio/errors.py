"""RiskVisio error types.

Error codes are stable strings for programmatic handling by integrators.
Every error renders to the same JSON envelope::

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": {...}}}
"""

from __future__ import annotations

from typing import Any


class RiskVisioError(Exception):
    """Base error for all RiskVisio API exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Render the error envelope returned to clients."""
        body: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "request_id": request_id,
        }
        if self.details:
            body["details"] = self.details
        return {"error": body}


# ---- Authentication / authorization ----


class MissingCredentialsError(RiskVisioError):
    """Client id and/or client secret absent (401)."""

    code = "missing_credentials"
    message = "Client ID and Client Secret required"
    status_code = 401


class InvalidCredentialsError(RiskVisioError):
    """Unknown client id, wrong secret, or wrong legacy key (401).

    The message never distinguishes an unknown or revoked client id from a
    wrong secret.
    """

    code = "invalid_credentials"
    message = "Invalid API credentials"
    status_code = 401


class AdminKeyRequiredError(RiskVisioError):
    """Key-management mutation without a valid admin key (401)."""

    code = "admin_key_required"
    message = "Admin key required for key management operations"
    status_code = 401


class InsufficientPrivilegesError(RiskVisioError):
    """Authenticated key lacks the access type for this operation (403)."""

    code = "insufficient_privileges"
    message = "Insufficient privileges"
    status_code = 403


class StoreUnavailableError(RiskVisioError):
    """Key Store could not be queried; safe to retry with backoff (503)."""

    code = "store_unavailable"
    message = "Credential store unavailable"
    status_code = 503


# ---- Generic ----


class NotFoundError(RiskVisioError):
    """Resource not found (404)."""

    code = "not_found"
    message = "Resource not found"
    status_code = 404


class ConflictError(RiskVisioError):
    """State conflict (409)."""

    code = "conflict"
    message = "Conflict"
    status_code = 409


class ValidationError(RiskVisioError):
    """Request validation error (400)."""

    code = "validation_error"
    message = "Validation error"
    status_code = 400

"""Discovery and diagnostic endpoints under /api.

Both paths are in ``security.public_paths`` and are served without
credentials. The index route is registered directly on the v1 router
because its path is the bare prefix.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from riskvisio import __version__
from riskvisio.api.dependencies import SettingsDep
from riskvisio.models.record import RecordKind
from riskvisio.utils.datetime import isoformat_utc

router = APIRouter()


async def api_index(settings: SettingsDep) -> dict:
    """Describe the API for integrators (e.g. Power BI connector setup)."""
    security = settings.security
    endpoints = {
        f"GET /api/{kind.value}": f"List {kind.value} (filters: factory, status, type, limit)"
        for kind in RecordKind
    }
    endpoints.update(
        {
            "POST /api/{kind}": "Create or replace a record (full access)",
            "GET /api/factories": "Factories with record counts",
            "POST /api/sync": "Bulk upsert records (full access)",
            "GET /api/api-keys": "List API keys",
            "POST /api/api-keys": "Create an API key",
            "POST /api/api-keys/{id}/revoke": "Revoke an API key",
        }
    )

    if security.auth_mode == "legacy":
        headers = {"x-api-key": "Your API key"}
    else:
        headers = {
            "x-client-id": "Your client ID (starts with key_)",
            "x-client-secret": "Your client secret (starts with secret_)",
        }
    if security.admin_key:
        headers["x-admin-key"] = "Admin key, required to create or revoke keys"

    return {
        "name": "RiskVisio API",
        "version": __version__,
        "description": "Risk, incident and compliance data for reporting tools",
        "endpoints": endpoints,
        "authentication": {"mode": security.auth_mode, "headers": headers},
    }


@router.get("/health")
async def api_health(request: Request) -> dict[str, str]:
    """Health check under the API prefix."""
    return {
        "status": "ok",
        "auth_mode": request.app.state.gate.mode,
        "timestamp": isoformat_utc(),
    }

"""FastAPI dependencies for the RiskVisio API.

Provides dependency injection for:
- Database sessions
- Managers (Records)
- Key Store and Credential Gate
- Authentication
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from riskvisio.config import Settings
from riskvisio.db.session import get_session_dependency
from riskvisio.managers.records import RecordManager
from riskvisio.services.gate import (
    Admission,
    CredentialGate,
    CredentialRequest,
    KeyIdentity,
)
from riskvisio.services.key_store import KeyStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_key_store(request: Request) -> KeyStore:
    return request.app.state.key_store


def get_gate(request: Request) -> CredentialGate:
    return request.app.state.gate


async def get_record_manager(
    session: Annotated[AsyncSession, Depends(get_session_dependency)],
) -> RecordManager:
    """Get RecordManager bound to the request session."""
    return RecordManager(db_session=session)


async def authenticate(request: Request) -> Admission:
    """Run the Credential Gate for this request.

    Registered on the /api router so it runs before any handler. Rejections
    propagate as RiskVisioError and are rendered by the app error handler.
    The identity (if any) is attached as ``request.state.api_key``.
    """
    gate = get_gate(request)
    admission = await gate.evaluate(
        CredentialRequest(
            method=request.method,
            path=request.url.path,
            headers=request.headers,
            query=request.query_params,
        )
    )
    request.state.admission = admission
    request.state.api_key = admission.identity
    return admission


def get_current_key(request: Request) -> KeyIdentity | None:
    """Identity resolved by the gate, or None (exempt/legacy/bootstrap)."""
    return getattr(request.state, "api_key", None)


def get_admission(request: Request) -> Admission:
    return request.state.admission


# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
KeyStoreDep = Annotated[KeyStore, Depends(get_key_store)]
RecordManagerDep = Annotated[RecordManager, Depends(get_record_manager)]
AdmissionDep = Annotated[Admission, Depends(get_admission)]
CurrentKeyDep = Annotated[KeyIdentity | None, Depends(get_current_key)]

"""Helpers shared by the API tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any

import httpx
from fastapi import FastAPI

from riskvisio.config import Settings
from riskvisio.main import create_app, lifespan


@asynccontextmanager
async def running_app(settings: Settings) -> AsyncIterator[SimpleNamespace]:
    """Real application with its lifespan entered and an ASGI client."""
    app: FastAPI = create_app(settings)
    async with lifespan(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield SimpleNamespace(app=app, client=client)


async def create_key(
    client: httpx.AsyncClient,
    *,
    name: str = "integration",
    access_type: str = "full",
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    response = await client.post(
        "/api/api-keys",
        json={"name": name, "access_type": access_type},
        headers=headers or {},
    )
    assert response.status_code == 201, response.text
    return response.json()


def creds(key: dict[str, Any]) -> dict[str, str]:
    return {"x-client-id": key["client_id"], "x-client-secret": key["client_secret"]}

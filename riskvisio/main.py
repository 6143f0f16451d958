"""RiskVisio FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from riskvisio import __version__
from riskvisio.config import Settings, get_settings
from riskvisio.db import close_db, init_db
from riskvisio.errors import RiskVisioError, ValidationError
from riskvisio.services.gate import CredentialGate
from riskvisio.services.key_store import KeyStore
from riskvisio.structured_logging import (
    bind_request_context,
    clear_request_context,
    setup_logging,
)
from riskvisio.utils.datetime import isoformat_utc

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings: Settings = app.state.settings
    security = settings.security

    # Startup
    logger.info("riskvisio.startup", version=__version__)
    await init_db(settings.database)

    key_store = KeyStore()
    app.state.key_store = key_store
    app.state.gate = CredentialGate(security, key_store)

    if security.provision_initial_key and not security.api_key:
        endpoint = f"http://{settings.server.host}:{settings.server.port}"
        await key_store.provision_initial_key(Path(security.data_dir), endpoint)

    logger.info(
        "riskvisio.auth_mode",
        mode=security.auth_mode,
        admin_key_configured=bool(security.admin_key),
    )

    yield

    # Shutdown
    logger.info("riskvisio.shutdown")
    await app.state.gate.drain()
    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()
    setup_logging(settings.logging)

    app = FastAPI(
        title="RiskVisio",
        description="Risk, incident and compliance tracking API",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.settings = settings

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add request ID to all requests and to the log context."""
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        bind_request_context(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-Id"] = request_id
        return response

    # Error handler
    @app.exception_handler(RiskVisioError)
    async def riskvisio_error_handler(request: Request, exc: RiskVisioError):
        """Handle RiskVisio errors with consistent format."""
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(request_id),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Render FastAPI validation failures in the RiskVisio error envelope."""
        request_id = getattr(request.state, "request_id", None)
        error = ValidationError(details={"errors": jsonable_encoder(exc.errors())})
        return JSONResponse(
            status_code=error.status_code,
            content=error.to_dict(request_id),
        )

    # Health check
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "app": "RiskVisio", "timestamp": isoformat_utc()}

    # Import and register API routers
    from riskvisio.api.v1 import router as v1_router

    app.include_router(v1_router, prefix=settings.security.protected_prefix)

    return app


# Create default app instance
app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
    )


if __name__ == "__main__":
    run()

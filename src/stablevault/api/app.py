"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stablevault.config import get_settings
from stablevault.errors import (
    CollaboratorError,
    NoRouteAvailable,
    NotOwner,
    OracleUnavailable,
    ReentrancyAttempt,
    StalePrice,
    VaultError,
)
from stablevault.factory import bootstrap_vault, get_vault, reset_vault
from stablevault.ledger.database import close_db, init_db
from stablevault.ledger.repository import VaultNotInitialized
from stablevault.utils.locks import LockTimeoutError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    await bootstrap_vault(get_vault())
    yield
    # Shutdown
    reset_vault()
    await close_db()


def error_status(exc: VaultError) -> int:
    """HTTP status for a vault error."""
    if isinstance(exc, NotOwner):
        return 403
    if isinstance(exc, ReentrancyAttempt):
        return 409
    if isinstance(exc, NoRouteAvailable):
        return 422
    if isinstance(exc, (OracleUnavailable, StalePrice)):
        return 503
    if isinstance(exc, CollaboratorError):
        return 502
    return 400


async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
    return JSONResponse(status_code=error_status(exc), content=exc.to_dict())


async def unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning(f"{request.url.path}: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=503, content={"error": "unavailable", "message": str(exc), "context": {}}
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="StableVault API",
        description="Custodial value-normalization vault",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(VaultError, vault_error_handler)
    app.add_exception_handler(LockTimeoutError, unavailable_handler)
    app.add_exception_handler(VaultNotInitialized, unavailable_handler)

    # Register routes
    from stablevault.api.routes import admin, health, vault

    app.include_router(health.router, tags=["Health"])
    app.include_router(vault.router, prefix="/api/v1", tags=["Vault"])
    app.include_router(admin.router, tags=["Admin"])

    return app


# Default app instance
app = create_app()

"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nftgift import __version__
from nftgift.api.deps import reset_vault
from nftgift.config import get_settings
from nftgift.errors import (
    AuthorizationError,
    ExchangeError,
    InsufficientFundsError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidClaimIdError,
    LedgerInvariantError,
    LockTimeoutError,
    ReentrancyError,
    SlippageError,
    UnknownClaimError,
    VaultError,
)
from nftgift.ledger.database import close_db, init_db

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS: list[tuple[type[VaultError], int]] = [
    (AuthorizationError, 403),
    (UnknownClaimError, 404),
    (SlippageError, 409),
    (ReentrancyError, 409),
    (InsufficientFundsError, 400),
    (InvalidAddressError, 422),
    (InvalidAmountError, 422),
    (InvalidClaimIdError, 422),
    (ExchangeError, 502),
    (LockTimeoutError, 503),
    (LedgerInvariantError, 500),
]


def status_for(exc: VaultError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
    """Surface the rejection reason to the caller."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": type(exc).__name__, "detail": str(exc)},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    yield
    # Shutdown
    reset_vault()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="NFTGift API",
        description="Custody vault wrapping fungible deposits into transferable claims",
        version=__version__,
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

    # Register routes
    from nftgift.api.routes import assets, claims, health

    app.include_router(health.router, tags=["Health"])
    app.include_router(claims.router, prefix="/api/v1", tags=["Claims"])
    app.include_router(assets.router, prefix="/api/v1", tags=["Dry-run assets"])

    return app


# Default app instance
app = create_app()

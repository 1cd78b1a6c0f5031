"""
FastAPI server: presale transaction relay.

Exposes /api/transactions (create + verify-and-submit), /health and a root
descriptor. The relay configuration and the RPC gateway are built once when
the app is created and kept on app.state; handlers only read them.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from presale_relay import __version__
from presale_relay.api_server.middleware import install_cors, install_request_logging
from presale_relay.api_server.transactions import router as transactions_router
from presale_relay.config.env import mask_rpc_url
from presale_relay.config.settings import Settings, get_settings, load_relay_config
from presale_relay.core.exceptions import ConfigurationError, RelayError
from presale_relay.logging import get_logger
from presale_relay.presale.network import RpcGateway, SolanaRpcGateway

logger = get_logger(__name__)

SERVICE_NAME = "Presale Relay API Server"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(
        "api_server_started",
        env=settings.app_env,
        rpc_url=mask_rpc_url(settings.solana_rpc_url),
        presale_ready=app.state.relay_config is not None,
    )
    yield
    logger.info("api_server_stopped")


def create_app(
    settings: Settings | None = None,
    gateway: RpcGateway | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    """
    Build the ASGI app.

    Args:
        settings: Process settings; read from the environment when omitted.
        gateway: RPC gateway; a SolanaRpcGateway on settings.solana_rpc_url when omitted.
        sleep: Sleep used between confirmation attempts.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Presale Relay API",
        description="Builds, co-signs and submits SPL token presale transactions.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sleep = sleep
    app.state.relay_config = None
    app.state.config_error = None
    try:
        app.state.relay_config = load_relay_config(settings)
        logger.info("presale_config_loaded", server_pubkey=str(app.state.relay_config.server_pubkey))
    except ConfigurationError as e:
        app.state.config_error = e
        logger.error(
            "presale_config_invalid",
            error=str(e),
            HASH_PRIVATE_KEY=bool(settings.hash_private_key),
            PRESALE_MINT_ADDRESS=bool(settings.presale_mint_address),
            PRESALE_RECIPIENT_KEY=bool(settings.presale_recipient_key),
        )
    app.state.gateway = gateway or SolanaRpcGateway(settings.solana_rpc_url)

    install_cors(app, settings)
    install_request_logging(app)
    _install_exception_handlers(app, settings)

    app.include_router(transactions_router, prefix="/api")

    @app.get("/health")
    def health():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "env": settings.app_env,
        }

    @app.get("/")
    def root():
        return {
            "message": SERVICE_NAME,
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "transactions": "/api/transactions",
            },
        }

    return app


def _install_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("http_invalid_body", errors=len(exc.errors()))
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unknown methods on known paths are both "not found"
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("http_unhandled_error", error=str(exc), error_type=type(exc).__name__)
        message = "Internal server error" if settings.is_production else str(exc)
        return JSONResponse(status_code=500, content={"error": message})

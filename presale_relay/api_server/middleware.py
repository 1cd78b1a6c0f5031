"""
HTTP middleware: CORS and request logging.

- CORS: every origin in development (request origin echoed), ALLOWED_ORIGINS in production.
- Request log line per request with method, path, status and duration; request_id bound
  to every log call made while handling it.
"""

from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from presale_relay.config.settings import Settings
from presale_relay.logging import bind_request, clear_request, get_logger

logger = get_logger(__name__)


def install_cors(app: FastAPI, settings: Settings) -> None:
    if settings.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


def install_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        bind_request(request_id, method=request.method, path=request.url.path)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("http_request_failed", duration_ms=round((time.perf_counter() - start) * 1000, 2))
            clear_request()
            raise
        logger.info(
            "http_request",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        response.headers["x-request-id"] = request_id
        clear_request()
        return response

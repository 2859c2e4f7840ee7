"""
Global middleware.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        # Path only: OAuth callbacks carry code/state in the query string
        logger.debug("%s %s → %s in %.3fs", request.method, request.url.path, response.status_code, elapsed)
        return response

    @app.middleware("http")
    async def no_store_auth_responses(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api/x/"):
            response.headers.setdefault("Cache-Control", "no-store")
        return response


def register_error_handlers(app: FastAPI) -> None:
    """Render every HTTP error as a top-level ``{"error", "details"?}`` body."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if isinstance(exc.detail, dict):
            body = exc.detail
        else:
            body = {"error": exc.detail}
        return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))

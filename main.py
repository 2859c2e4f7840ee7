"""
X Connection Service — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_error_handlers, register_middleware
from api.routes import router as api_router
from config.settings import config
from connectors.routes import router as x_router
from crypto.encryption import check_encryption_key
from database.session import dispose_engine

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "sqlalchemy.engine"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="X Connection Service",
        version="1.0.0",
        description="Connect an X account via OAuth2/PKCE and keep its tokens encrypted at rest.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_error_handlers(app)

    # Routes
    app.include_router(api_router)
    app.include_router(x_router, prefix="/api/x")

    @app.on_event("startup")
    async def on_startup():
        check_encryption_key()
        if not (config.x_client_id and config.x_client_secret and config.x_redirect_uri):
            logger.warning("X OAuth not configured (missing X_CLIENT_ID / X_CLIENT_SECRET / X_REDIRECT_URI)")
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await dispose_engine()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )

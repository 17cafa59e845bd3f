"""
Auth & Orders API — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.error_handlers import register_error_handlers
from api.middleware import register_middleware
from api.routes import router as api_router
from auth.routes import router as auth_router
from config.settings import config
from database.session import create_tables

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("sqlalchemy.engine", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Auth & Orders API",
        version="1.0.0",
        description="Password login, stateless signed tokens and role-scoped orders.",
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
    app.include_router(auth_router, prefix="/api")
    app.include_router(api_router, prefix="/api")

    @app.on_event("startup")
    async def on_startup():
        if not config.jwt_secret:
            logger.warning("JWT_SECRET is not set; token routes will answer 500")
        if config.bootstrap_admin_enabled:
            logger.info("Bootstrap admin login enabled for %s", config.admin_email)
        if config.create_tables_on_startup:
            logger.info("Creating missing tables…")
            await create_tables()
        logger.info("Application ready to accept requests.")

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

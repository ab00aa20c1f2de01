"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codetrack.api.errors import register_error_handlers
from codetrack.api.routes import admin, health, leaderboard, profiles
from codetrack.api.services import AppServices
from codetrack.config import Config
from codetrack.utils.logger import setup_logger

logger = setup_logger(__name__)


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """Build the app. Passing ``services`` skips production wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app.state.services = services if services is not None else await AppServices.start()
        logger.info("CodeTrack API started")
        try:
            yield
        finally:
            if owned:
                await app.state.services.close()
            logger.info("CodeTrack API stopped")

    app = FastAPI(title="CodeTrack", lifespan=lifespan)
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(profiles.router)
    app.include_router(leaderboard.router)
    app.include_router(admin.router)
    return app

"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance holding exactly one SecurityProvider on app.state.security.
Lifespan initializes it at startup (schema + admin seed on first run)
and disposes its engine at shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from simplesecurity import __version__
from simplesecurity.api import api_router
from simplesecurity.config import Settings, settings as default_settings
from simplesecurity.middleware.auth_context import AuthContextMiddleware
from simplesecurity.provider import SecurityProvider

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    cfg: Settings = app.state.settings
    logger.info(
        "simplesecurity.starting",
        version=__version__,
        environment=cfg.environment,
        port=cfg.port,
    )

    provider: SecurityProvider = app.state.security
    await provider.initialize()

    yield

    logger.info("simplesecurity.shutdown")
    await provider.close()


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[SecurityProvider] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings
    provider = provider or SecurityProvider.from_settings(settings)

    app = FastAPI(
        title="SimpleSecurity",
        description="Forms authentication with a single user table",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.security = provider

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → AuthContext → handler

    app.add_middleware(
        AuthContextMiddleware,
        provider=provider,
        cookie_secure=settings.cookie_secure,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: simplesecurity.main:app)
app = create_app()

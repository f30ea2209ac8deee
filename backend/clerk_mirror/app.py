"""
FastAPI application factory for the Clerk identity mirror.

Process-scoped handles live on app.state:
- settings: the frozen Settings the app was built with
- session_factory: sessionmaker bound to the configured engine
- jwt_verifier: ClerkJWTVerifier, only when CLERK_ISSUER_URL is set

Handles that are injected (tests) are used as-is; the lifespan builds the
rest from settings.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from clerk_mirror import __version__
from clerk_mirror.api.routes import (
    invitations,
    organizations,
    roles,
    sessions,
    users,
    webhook_events,
    webhooks_clerk,
)
from clerk_mirror.auth.clerk_verifier import ClerkJWTVerifier
from clerk_mirror.config.settings import Settings
from clerk_mirror.database.session import build_engine, build_session_factory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings: Settings = app.state.settings
    logger.info("Starting Clerk mirror API")

    engine = None
    if app.state.session_factory is None:
        if settings.database_url:
            engine = build_engine(settings)
            app.state.session_factory = build_session_factory(engine)
        else:
            logger.error(
                "DATABASE_URL is not set. Webhook and read endpoints will return 503."
            )

    if app.state.jwt_verifier is None:
        if settings.auth_configured:
            app.state.jwt_verifier = ClerkJWTVerifier(
                issuer=settings.clerk_issuer_url,
                audience=settings.clerk_jwt_audience,
            )
            logger.info("Clerk authentication configured", extra={"issuer": settings.clerk_issuer_url})
        else:
            logger.warning(
                "Clerk authentication not configured (missing CLERK_ISSUER_URL). "
                "Read endpoints will return 503."
            )

    if not settings.webhook_configured:
        logger.warning("CLERK_WEBHOOK_SECRET is not set. Webhook deliveries will be rejected.")

    yield

    # Shutdown
    if engine is not None:
        engine.dispose()
    logger.info("Shutting down Clerk mirror API")


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    jwt_verifier: Optional[ClerkJWTVerifier] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Process configuration; read from the environment when omitted
        session_factory: Pre-built session factory (skips engine creation)
        jwt_verifier: Pre-built JWT verifier (skips JWKS client creation)

    Returns:
        Configured FastAPI app
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Clerk Mirror API",
        description="Local mirror of Clerk identity data, synchronized from Clerk webhooks",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.jwt_verifier = jwt_verifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Clerk webhook routes (Svix signature verification, not JWT)
    app.include_router(webhooks_clerk.router)

    # Read routes (Clerk session JWT)
    app.include_router(users.router)
    app.include_router(organizations.router)
    app.include_router(invitations.router)
    app.include_router(sessions.router)
    app.include_router(roles.router)

    # Audit log routes (system admins only)
    app.include_router(webhook_events.router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unhandled exceptions with proper logging."""
        logger.error(
            "Unhandled exception",
            extra={
                "error": str(exc),
                "error_type": type(exc).__name__,
                "path": request.url.path,
            },
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "detail": "An unexpected error occurred",
            },
        )

    return app

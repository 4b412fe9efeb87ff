"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The token codec, OAuth providers and OTP sender are built once
here from settings and stored on app.state; routes reach them through
the dependencies in api/deps.py and auth/dependencies.py.

AuthError subclasses raised anywhere in a request (gates, resolver,
account service) are rendered by one exception handler as
{"error": {"reason", "message"}} with the error's fixed status code.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crafthub import __version__
from crafthub.api import api_router
from crafthub.auth.errors import AuthError, StoreError
from crafthub.auth.jwt import TokenCodec
from crafthub.config import Settings, settings as default_settings
from crafthub.identity.providers import build_providers
from crafthub.services.otp_service import LogOtpSender

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "crafthub.starting",
        version=__version__,
        environment=app.state.settings.environment,
        port=app.state.settings.port,
        providers=sorted(app.state.identity_providers),
    )

    yield

    logger.info("crafthub.shutdown")

    from crafthub.db.engine import engine
    await engine.dispose()


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"reason": exc.reason, "message": exc.message}},
        headers=headers,
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("crafthub.store_error", error=str(exc))
    return JSONResponse(
        status_code=503,
        content={
            "error": {
                "reason": "StoreError",
                "message": "Service temporarily unavailable. Please try again.",
            }
        },
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings
    app = FastAPI(
        title="CraftHub Identity",
        description="Identity and access layer for the CraftHub customer/artisan marketplace",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.token_codec = TokenCodec.from_settings(settings)
    app.state.identity_providers = build_providers(settings)
    app.state.otp_sender = LogOtpSender()

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from crafthub.middleware.request_id import RequestIdMiddleware
    from crafthub.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: crafthub.main:app)
app = create_app()

"""
FastAPI application factory and entry point.

create_app() builds and configures the application:
  1. Lifespan manager — creates the store handle and mail transport once at
     startup, disposes the store handle once at shutdown
  2. Rate limiting — per-client request budget (slowapi), 429 when exceeded
  3. Security headers — hardening headers on every response
  4. CORS middleware — allows frontend origins to make cross-origin requests
  5. Exception handlers — maps domain errors to HTTP responses
  6. Router registration — mounts all API endpoint groups

Everything reads the process-wide settings singleton, so the signing key,
password policy and store URL always come from the same configuration.

Running locally:
    uvicorn roster.main:app --reload

Importing this module requires SECRET_KEY and DATABASE_URL; startup also
fails if the database cannot be reached. The service never runs degraded.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from roster.config import settings
from roster.database import create_engine_and_sessionmaker, init_models
from roster.exceptions import rate_limit_exceeded_handler, register_exception_handlers
from roster.logging_config import configure_logging
from roster.middleware import SecurityHeadersMiddleware
from roster.routers import auth, dashboards, users
from roster.services.mailer import SmtpMailer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Builds the engine and session factory, creates tables, and constructs
      the mail transport. An unreachable database aborts startup.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    engine, session_factory = create_engine_and_sessionmaker(
        settings.DATABASE_URL, echo=settings.DEBUG
    )
    try:
        await init_models(engine)
    except Exception:
        logger.critical("Database is unreachable at startup; refusing to start")
        await engine.dispose()
        raise
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.mailer = SmtpMailer.from_settings(settings)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await engine.dispose()
    logger.info("%s stopped", settings.APP_NAME)


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Squadron roster API: registration, login, password reset and role-gated member management",
        lifespan=lifespan,
    )

    # ---------------------------------------------------------------------------
    # Middleware (the last one added runs first)
    # ---------------------------------------------------------------------------

    # Per client address and endpoint; counters live in process memory
    app.state.limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.RATE_LIMIT],
        enabled=settings.RATE_LIMIT_ENABLED,
    )
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------------------------------
    # Exception handlers
    # ---------------------------------------------------------------------------

    register_exception_handlers(app)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # ---------------------------------------------------------------------------
    # Routers
    # ---------------------------------------------------------------------------

    app.include_router(auth.router, tags=["Auth"])
    app.include_router(users.router, prefix="/users", tags=["Users"])
    app.include_router(dashboards.router, tags=["Dashboards"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness check for deployments."""
        return {"status": "ok", "version": settings.APP_VERSION}

    return app


app = create_app()

"""
WifiAtlas Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       the lifespan owns the shared collaborators.
Who:   uvicorn (`uvicorn wifiatlas.main:app`) and the test suite.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware: RateLimit → RequestID → Logging → GZip → CORS│
    │                                                           │
    │  Routers (/api): auth, access-points, organizations,      │
    │                  speed-test, user, wigle                  │
    │  Other:          /health, WS /ws                          │
    │                                                           │
    │  app.state: broadcaster (OrganizationBroadcaster)         │
    │             network_directory (WigleClient)               │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration warnings, create broadcaster and
              directory client
    Shutdown: close the directory client, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from wifiatlas import __version__
from wifiatlas.config import settings
from wifiatlas.database import dispose_engine
from wifiatlas.exceptions import (
    DatabaseError,
    RateLimitExceededError,
    ValidationError,
    WifiAtlasError,
)
from wifiatlas.middleware.logging import RequestLoggingMiddleware
from wifiatlas.middleware.rate_limit import RateLimitMiddleware
from wifiatlas.middleware.request_id import RequestIDMiddleware, request_id_var
from wifiatlas.routes import (
    access_points,
    auth,
    health,
    organizations,
    realtime,
    speed_test,
    user,
    wigle,
)
from wifiatlas.services.broadcaster import OrganizationBroadcaster
from wifiatlas.services.directory_client import WigleClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: 2024-01-15T12:00:00 [INFO] wifiatlas.services.x: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Replaced by RequestLoggingMiddleware / too chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("WifiAtlas Backend starting up...")

    # Keep serving: /health and the local features work without these
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.warning("%s", e)

    app.state.broadcaster = OrganizationBroadcaster()
    app.state.network_directory = WigleClient.from_settings()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("WifiAtlas Backend shutting down...")
    await app.state.network_directory.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(exc: WifiAtlasError) -> dict:
    return {
        "error": {
            "message": exc.message,
            "status": exc.status_code,
            "code": exc.code,
            "request_id": request_id_var.get("") or None,
        }
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions onto the `{"error": {...}}` envelope.

        WifiAtlasError (any subclass) → its own status_code
        RequestValidationError        → 400 validation_error
        SQLAlchemyError               → DatabaseError, 500 server_error
        Exception (fallback)          → 500, generic message

    `context` is logged, never returned.
    """

    @app.exception_handler(WifiAtlasError)
    async def handle_app_error(request: Request, exc: WifiAtlasError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, exc.code, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, exc.code, exc.message)

        headers = {}
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Validation failed")
        if location:
            message = f"{location}: {message}"

        wrapped = ValidationError(message, field=location or None)
        logger.info("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return JSONResponse(status_code=wrapped.status_code, content=error_body(wrapped))

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        rid = request_id_var.get("")
        wrapped = DatabaseError(context={"original_error": type(exc).__name__})
        logger.error("[%s] Database error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(status_code=wrapped.status_code, content=error_body(wrapped))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "message": "Internal server error",
                    "status": 500,
                    "code": "server_error",
                    "request_id": rid or None,
                }
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="WifiAtlas API",
        description=(
            "Location-based WiFi access-point directory: proximity search, shared "
            "credentials with organization-scoped visibility, ratings and speed tests."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Executed in reverse order of addition: RateLimit runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(access_points.router)
    app.include_router(organizations.router)
    app.include_router(speed_test.router)
    app.include_router(user.router)
    app.include_router(wigle.router)
    app.include_router(realtime.router)
    app.include_router(health.router)

    return app


app = create_app()

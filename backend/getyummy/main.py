"""
Get Yummy Backend - FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) builds the app-scoped services from one Settings
       object, stores them on app.state, and wires middleware, exception
       handlers and routers. Tests call it with their own Settings.
Who:   uvicorn (`uvicorn getyummy.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  app.state: settings, token_codec, mail_service,         │
    │             auth_service, image_service                  │
    │                                                          │
    │  Middleware: RequestID → RateLimit(/auth) → Logging      │
    │              → GZip → CORS                               │
    │                                                          │
    │  Routers: /auth  /users  /recipes  /favorites            │
    │           /upload  /uploads/{file}  /health              │
    │                                                          │
    │  Exception handlers: GetYummyError → status/error_code   │
    │                      RequestValidationError → 400        │
    │                      Exception → 500                     │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration report, upload directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from getyummy import __version__
from getyummy.config import Settings, settings as default_settings
from getyummy.database import dispose_engine
from getyummy.exceptions import GetYummyError, RateLimitExceededError
from getyummy.middleware.logging import RequestLoggingMiddleware
from getyummy.middleware.rate_limit import DEFAULT_LIMITED_PATHS, RateLimitMiddleware
from getyummy.middleware.request_id import RequestIDMiddleware, request_id_var
from getyummy.routes import auth, favorites, health, recipes, uploads, users
from getyummy.services.auth_service import AuthService
from getyummy.services.image_service import ImageService
from getyummy.services.mail_service import MailService
from getyummy.services.token_codec import TokenCodec

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging for the whole process.

    Format: 2025-01-15T12:00:00 [INFO] getyummy.services.auth_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings

    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("Get Yummy Backend %s starting up...", __version__)

    # Misconfiguration is reported, not fatal: auth and recipes work without SMTP
    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        logger.warning("%s", e)

    upload_root = Path(app_settings.upload_root)
    upload_root.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory: %s", upload_root.resolve())
    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Get Yummy Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the JSON error envelope:
        {"error": <code>, "message": <text>, "details"?: {...}, "request_id": <id>}

    5xx responses never include details; the context is logged instead.
    """

    @app.exception_handler(GetYummyError)
    async def handle_app_error(request: Request, exc: GetYummyError):
        rid = request_id_var.get("")
        headers = {}
        content = {"error": exc.error_code, "message": exc.message, "request_id": rid}

        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            if exc.context:
                content["details"] = exc.context

        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed request bodies and parameters: 400 with the offending fields."""
        rid = request_id_var.get("")
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.info("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": errors[0]["message"] if errors else "Invalid request",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Assemble the application.

    Args:
        app_settings: configuration for this instance; defaults to the
                      environment-backed singleton
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="Get Yummy API",
        description="Recipe sharing: accounts, recipes, favorites and image uploads.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── App-scoped services ───────────────────────────────────────────────
    codec = TokenCodec(app_settings)
    mailer = MailService(app_settings)
    app.state.settings = app_settings
    app.state.token_codec = codec
    app.state.mail_service = mailer
    app.state.auth_service = AuthService(app_settings, codec, mailer)
    app.state.image_service = ImageService(app_settings)

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=app_settings.auth_rate_limit_requests,
        window_seconds=app_settings.auth_rate_limit_window,
        paths=DEFAULT_LIMITED_PATHS,
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(recipes.router)
    app.include_router(favorites.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    return app


# uvicorn getyummy.main:app
app = create_app()

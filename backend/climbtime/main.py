"""
ClimbTime Backend - FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn climbtime.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  Request ID → Rate Limit → Logging → GZip → CORS         │
    │                                                          │
    │  Routers:                                                │
    │  auth · posts · follow · users · profile · messages      │
    │  proxy · grade · files · health                          │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ClimbTimeError subclasses → {error, message, details?,  │
    │                               request_id}                │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, storage directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from climbtime import __version__
from climbtime.config import settings
from climbtime.database import dispose_engine
from climbtime.exceptions import (
    AuthenticationError,
    ClimbTimeError,
    ConflictError,
    DatabaseError,
    FileStorageError,
    NotFoundError,
    PermissionDeniedError,
    PredictionServiceError,
    RateLimitExceededError,
    ValidationError,
)
from climbtime.middleware.logging import RequestLoggingMiddleware
from climbtime.middleware.rate_limit import RateLimitMiddleware
from climbtime.middleware.request_id import RequestIDMiddleware, request_id_var
from climbtime.routes import auth, files, follow, grade, health, messages, posts, profile, proxy, users
from climbtime.schemas.common import error_body

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] climbtime.services.post_service: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Chatty third-party loggers; climbtime.access replaces uvicorn.access
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("ClimbTime Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and docs still work
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Prediction service: %s", settings.prediction_service_url)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("ClimbTime Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _field_name(loc) -> str:
    # ("body", "content") → "content", ("query", "postId") → "postId"
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the shared error body.

    Handler table:
        ValidationError, RequestValidationError → 400 validation_error
        AuthenticationError                      → 401 unauthorized
        PermissionDeniedError                    → 403 forbidden
        NotFoundError                            → 404 not_found
        ConflictError                            → 409 conflict
        RateLimitExceededError                   → 429 rate_limit_exceeded
        PredictionServiceError                   → upstream status
        FileStorageError, DatabaseError          → 500 server_error
        ClimbTimeError, Exception                → 500 internal_server_error

    Internal details (SQL, paths, stack traces) are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content=error_body("validation_error", exc.message, rid, details=exc.context or None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Missing or malformed body fields, query params and form parts."""
        rid = request_id_var.get("")
        details = [
            {
                "field": _field_name(error.get("loc", ())),
                "message": str(error.get("msg", "")).removeprefix("Value error, "),
            }
            for error in exc.errors()
        ]
        first = details[0] if details else {"field": "", "message": "Invalid request"}
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
        logger.warning("[%s] Request validation failed: %s", rid, message)
        return JSONResponse(
            status_code=400,
            content=error_body("validation_error", message, rid, details=details),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        rid = request_id_var.get("")
        return JSONResponse(status_code=401, content=error_body("unauthorized", exc.message, rid))

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        rid = request_id_var.get("")
        logger.warning("[%s] Permission denied: %s", rid, exc.message)
        return JSONResponse(status_code=403, content=error_body("forbidden", exc.message, rid))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(status_code=404, content=error_body("not_found", exc.message, rid))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        rid = request_id_var.get("")
        return JSONResponse(status_code=409, content=error_body("conflict", exc.message, rid))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=429,
            content=error_body("rate_limit_exceeded", exc.message, rid, details=exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(PredictionServiceError)
    async def handle_prediction_error(request: Request, exc: PredictionServiceError):
        rid = request_id_var.get("")
        logger.error("[%s] Prediction service error (%d): %s", rid, exc.status_code, exc.message)
        code = "service_unavailable" if exc.status_code == 503 else "prediction_service_error"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(code, exc.message, rid, details=exc.details),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=error_body(
                "server_error", "An internal error occurred. Please try again later.", rid
            ),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=error_body("server_error", exc.message, rid))

    @app.exception_handler(ClimbTimeError)
    async def handle_climbtime_error(request: Request, exc: ClimbTimeError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500, content=error_body("internal_server_error", exc.message, rid)
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """Unknown paths (404) and wrong methods (405) get the same error body."""
        rid = request_id_var.get("")
        code = "not_found" if exc.status_code == 404 else "http_error"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(code, str(exc.detail), rid),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
                rid,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="ClimbTime API",
        description=(
            "Backend for ClimbTime, a social network for climbers: posts, follows, "
            "direct messages, profiles, and route segmentation of climbing-wall photos."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID runs first, so a 429
    # from RateLimit already carries the request id.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Next-Cursor", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(posts.router)
    app.include_router(follow.router)
    app.include_router(users.router)
    app.include_router(profile.router)
    app.include_router(messages.router)
    app.include_router(proxy.router)
    app.include_router(grade.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()

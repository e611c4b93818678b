"""
Knowledge Scout Backend - FastAPI Application Factory
=====================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, route mounting, exception
       handling and lifespan in one place.
How:   Factory pattern: create_app(settings, llm) returns a configured app
       that owns its own Database, services and LLM on `app.state`.
Who:   scout.lifecycle.LifecycleManager (the process entry point), tests,
       or `uvicorn scout.main:create_app --factory`.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain (execution order):                         │
    │  Security headers → CORS → Request ID → Logging → JSON body  │
    │  → unhandled errors (structured 500)                         │
    │                                                              │
    │  Routes:                                                     │
    │  /api/auth  /api/documents  /api/chat  /health  /api/health  │
    │  /uploads (static)                                           │
    │                                                              │
    │  Exception Handlers:                                         │
    │  ScoutError → its status │ 404 → route_not_found │ else 500  │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (warn only)
    3. Create storage directory
    4. Create database tables

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from scout import __version__
from scout.config import Settings
from scout.config import settings as default_settings
from scout.database import Database
from scout.exceptions import CircuitBreakerOpenError, LLMServiceError, ScoutError
from scout.middleware.body_parser import JSONBodyParserMiddleware
from scout.middleware.logging import RequestLoggingMiddleware
from scout.middleware.request_id import RequestIDMiddleware, request_id_var
from scout.middleware.security_headers import SecurityHeadersMiddleware
from scout.middleware.server_errors import UnhandledErrorMiddleware
from scout.responses import error_response, internal_error_response
from scout.routes import ai, auth, chat, documents, health
from scout.services.ai_service import AIService
from scout.services.auth_service import AuthService
from scout.services.chat_service import ChatService
from scout.services.document_service import DocumentService
from scout.services.file_service import FileService
from scout.services.gemini_service import GeminiService
from scout.services.llm_base import LLMService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    database: Database = app.state.database

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings)
    logger.info("=" * 60)
    logger.info("Knowledge Scout Backend starting up (environment=%s)...", settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: health checks and auth keep working without the LLM
        logger.warning("Configuration warning: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    try:
        await database.create_all()
        logger.info("Database schema ready")
    except (SQLAlchemyError, OSError) as e:
        # The process stays up; data routes fail until the database recovers
        logger.error("Database initialization failed: %s", str(e))

    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Knowledge Scout Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map every failure to the structured error payload.

    Handler hierarchy:
        ScoutError (and subclasses)  → exc.status_code / exc.error_code
        RequestValidationError       → 422 request_validation_error
        StarletteHTTPException       → 404 route_not_found, 405, other HTTP codes
        Exception (fallback)         → 500 internal_server_error

    Security: 5xx payloads never carry storage paths or SQL. Unhandled
    exception text is only returned outside production.
    """

    @app.exception_handler(ScoutError)
    async def handle_scout_error(request: Request, exc: ScoutError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        headers: Dict[str, str] = {}
        if exc.status_code == 401:
            headers["WWW-Authenticate"] = "Bearer"
        if isinstance(exc, CircuitBreakerOpenError):
            headers["Retry-After"] = str(exc.recovery_time)
        elif isinstance(exc, LLMServiceError) and exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)

        # Plain 500s keep their context server-side
        details = exc.context if exc.status_code != 500 else None
        return error_response(
            exc.status_code,
            exc.error_code,
            exc.message,
            details=details,
            headers=headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return error_response(
            422,
            "request_validation_error",
            "Request data is invalid",
            details={"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(
                404,
                "route_not_found",
                f"Route {request.method} {request.url.path} not found",
            )
        if exc.status_code == 405:
            return error_response(
                405,
                "method_not_allowed",
                f"Method {request.method} not allowed for {request.url.path}",
                headers=exc.headers,
            )
        return error_response(exc.status_code, "http_error", str(exc.detail), headers=exc.headers)

    # Route exceptions are answered by UnhandledErrorMiddleware inside the
    # chain; this covers faults raised by the middleware layers themselves.
    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error outside routes: %s", rid, str(exc), exc_info=True)
        return internal_error_response(exc, not request.app.state.settings.is_production)


# ══════════════════════════════════════════════════════════════════════════
# Middleware
# ══════════════════════════════════════════════════════════════════════════

def install_middleware(app: FastAPI, settings: Settings) -> None:
    """
    Register the middleware chain.

    Starlette runs middleware in REVERSE order of addition, so the chain is
    added innermost first. Execution order:
        SecurityHeaders → CORS → RequestID → RequestLogging → JSONBodyParser
        → UnhandledError
    """
    app.add_middleware(UnhandledErrorMiddleware, expose_detail=not settings.is_production)
    app.add_middleware(
        JSONBodyParserMiddleware,
        skip_paths={documents.UPLOAD_PATH},
        limit=settings.json_body_limit,
    )
    app.add_middleware(RequestLoggingMiddleware, quiet_paths={"/health"})
    app.add_middleware(RequestIDMiddleware)

    origins = settings.cors_origins_list
    cors_kwargs = {"allow_origins": origins}
    if "*" in origins:
        # Reflect the caller's origin; a literal "*" cannot carry credentials
        cors_kwargs = {"allow_origins": [], "allow_origin_regex": ".*"}
    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
        **cors_kwargs,
    )

    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.is_production)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None, llm: Optional[LLMService] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Server settings (defaults to the environment-loaded instance)
        llm:      LLM implementation (defaults to GeminiService)

    Returns:
        A fully configured app. Nothing is shared between two apps built
        by separate calls.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Knowledge Scout API",
        description="Upload documents, then summarize, question and chat with them.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Per-app state ─────────────────────────────────────────────────────
    database = Database(settings)
    llm = llm or GeminiService(settings)
    file_service = FileService(settings.storage_root, settings.max_upload_size)
    document_service = DocumentService(file_service, database)

    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.database = database
    app.state.llm = llm
    app.state.auth_service = AuthService(settings)
    app.state.document_service = document_service
    app.state.chat_service = ChatService(document_service, llm)
    app.state.ai_service = AIService(document_service, llm)

    install_middleware(app, settings)
    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(documents.router)
    app.include_router(ai.router)
    app.include_router(chat.router)

    # check_dir=False: the lifespan creates the directory on startup
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.storage_root, check_dir=False),
        name="uploads",
    )

    return app

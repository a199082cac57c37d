"""
VoiceNotes Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application.
How:   ``create_app(settings, ai_delegate)`` builds the engine, session
       factory, AI delegate and services, stores them on ``app.state``,
       registers middleware, exception handlers and routers.
Who:   uvicorn imports ``voicenotes.main:app``; tests call ``create_app``
       with their own Settings and a fake AI delegate.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware: Request ID → Access Log → GZip → CORS      │
    │                                                         │
    │  Routes:                                                │
    │    /api/auth/*    signup, login, me                     │
    │    /api/notes/*   CRUD + search/sort                    │
    │    /api/ai/*      transcribe, summarize                 │
    │    /health                                              │
    │                                                         │
    │  app.state:                                             │
    │    settings, engine, session_factory, ai_delegate,      │
    │    note_service, auth_service, audio_service, tokens    │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, check configuration, wait for the
              database, create tables on SQLite
    Shutdown: dispose the engine (close pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from voicenotes import __version__
from voicenotes.config import Settings, get_settings
from voicenotes.database import (
    create_engine_from_settings,
    create_schema,
    create_session_factory,
    dispose_engine,
    is_sqlite_url,
    wait_for_database,
)
from voicenotes.exceptions import (
    AuthError,
    CircuitBreakerOpenError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PersistenceError,
    ServiceTimeoutError,
    ValidationError,
    VoiceNotesError,
)
from voicenotes.middleware.logging import RequestLoggingMiddleware
from voicenotes.middleware.request_id import RequestIDMiddleware, request_id_var
from voicenotes.routes import ai, auth, health, notes
from voicenotes.security import PasswordHasher, TokenCodec
from voicenotes.services.ai_base import AIDelegate
from voicenotes.services.audio_service import AudioService
from voicenotes.services.auth_service import AuthService
from voicenotes.services.gemini_service import GeminiService
from voicenotes.services.note_service import NoteService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] voicenotes.services.note_service: ...
    Output goes to stdout so container runtimes capture it.
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    engine = app.state.engine

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("VoiceNotes Backend %s starting up...", __version__)

    # A misconfigured server still starts so /health can report it.
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    await wait_for_database(engine, attempts=settings.db_connect_attempts)
    if is_sqlite_url(settings.database_url):
        await create_schema(engine)
        logger.info("SQLite schema ensured")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("VoiceNotes Backend shutting down...")
    await dispose_engine(engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler table:
        ValidationError          → 400
        AuthError                → 401 + WWW-Authenticate: Bearer
        NotFoundError            → 404
        ConflictError            → 409
        RequestValidationError   → 422 (FastAPI schema validation)
        CircuitBreakerOpenError  → 503 + Retry-After
        ExternalServiceError     → 503
        ServiceTimeoutError      → 504
        PersistenceError         → 500, generic message
        VoiceNotesError / other  → 500, generic message, stack trace logged

    Only client errors echo ``context`` back as ``details``; server-side
    failures keep it in the log.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, details=exc.context)

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        # Reason stays server-side; clients only learn that auth failed.
        logger.info("[%s] Authentication failed: %s", request_id_var.get(""), exc.context)
        return _error_response(
            401,
            "unauthorized",
            exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, "conflict", exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error_response(
            422,
            "request_validation_error",
            "The request is missing required fields or has invalid values.",
            details={"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            "service_unavailable",
            exc.message,
            details={"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(ExternalServiceError)
    async def handle_external_service_error(request: Request, exc: ExternalServiceError):
        logger.error(
            "[%s] AI service error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return _error_response(503, "ai_service_error", exc.message, headers=headers)

    @app.exception_handler(ServiceTimeoutError)
    async def handle_timeout(request: Request, exc: ServiceTimeoutError):
        logger.error("[%s] AI service timeout: %s", request_id_var.get(""), exc.message)
        return _error_response(504, "ai_timeout", exc.message)

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(
            500,
            "server_error",
            "An internal error occurred. Please try again later.",
        )

    @app.exception_handler(VoiceNotesError)
    async def handle_application_error(request: Request, exc: VoiceNotesError):
        logger.error(
            "[%s] Unhandled application error %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
        )
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    ai_delegate: Optional[AIDelegate] = None,
) -> FastAPI:
    """
    Assemble the application.

    Args:
        settings: Explicit configuration; defaults to ``get_settings()``.
        ai_delegate: AI provider; defaults to a GeminiService built from
            ``settings``. Tests pass a deterministic fake.

    Collaborators are created here rather than in the lifespan, so the app
    is fully wired as soon as this function returns.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="VoiceNotes API",
        description=(
            "Voice note taking backend: record or upload audio, get a transcript "
            "and an AI summary, and manage searchable notes."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Shared State ──────────────────────────────────────────────────────
    engine = create_engine_from_settings(settings)
    ai_delegate = ai_delegate or GeminiService(settings)
    tokens = TokenCodec.from_settings(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.ai_delegate = ai_delegate
    app.state.tokens = tokens
    app.state.note_service = NoteService(ai_delegate, min_rank=settings.search_min_rank)
    app.state.auth_service = AuthService(PasswordHasher(settings.password_hash_scheme), tokens)
    app.state.audio_service = AudioService(settings.max_audio_size)

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: RequestID runs first.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(ai.router)
    app.include_router(health.router)

    return app


def run() -> None:
    """Console entry point: ``voicenotes`` / ``python -m voicenotes.main``."""
    settings = get_settings()
    uvicorn.run(
        "voicenotes.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


# uvicorn expects ``voicenotes.main:app`` to be importable.
app = create_app()


if __name__ == "__main__":
    run()

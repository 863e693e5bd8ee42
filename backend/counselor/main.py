"""
Merit Badge Counselor Backend — FastAPI Application Factory
============================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware registration, route mounting,
       exception mapping and resource lifecycle in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn counselor.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware Chain:                                      │
    │  ┌──────────┐ ┌─────────────┐ ┌──────┐ ┌──────────────┐ │
    │  │  Req ID  │→│   Logging   │→│ GZip │→│     CORS     │ │
    │  └──────────┘ └─────────────┘ └──────┘ └──────────────┘ │
    │                                                         │
    │  Routes:                                                │
    │  GET  /api/applications/merit-badges                    │
    │  POST /api/applications                                 │
    │  GET  /api/applications/{id}                            │
    │  GET  /health                                           │
    │                                                         │
    │  Exception Handlers (all answer {success: false, ...}): │
    │  Validation/Upload→400 │ NotFound→404 │ DB/Storage→500  │
    └─────────────────────────────────────────────────────────┘

Resources on app.state:
    database     Database handle (connection pool); opened by the lifespan
                 unless one was passed to create_app(), disposed on shutdown
    upload_gate  UploadGate bound to UPLOAD_DIR and the upload limits
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from counselor import __version__
from counselor.config import settings
from counselor.database import Database
from counselor.exceptions import (
    CounselorAppError,
    DatabaseError,
    FileStorageError,
    FormValidationError,
    NotFoundError,
    UploadRejectedError,
)
from counselor.middleware.logging import RequestLoggingMiddleware
from counselor.middleware.request_id import RequestIDMiddleware, request_id_var
from counselor.routes import applications, health
from counselor.services.upload_gate import UploadGate

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any other initialization.
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
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup sequence:
        1. Setup logging
        2. Validate database configuration
        3. Open the Database handle (unless one was injected) and probe it
        4. Ensure the upload directory exists

    Shutdown sequence:
        1. Dispose the Database handle if this lifespan opened it
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Merit Badge Counselor backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    owns_database = getattr(app.state, "database", None) is None
    if owns_database:
        app.state.database = Database(settings)

    try:
        await app.state.database.ping()
        logger.info("Database connected successfully")
    except Exception as e:
        # Keep serving: /health reports the outage and writes fail with 500
        logger.error("Database connection failed: %s", str(e))

    gate: UploadGate = app.state.upload_gate
    gate.upload_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory: %s", gate.upload_dir)

    logger.info("Server ready at http://%s:%d", settings.host, settings.port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Merit Badge Counselor backend shutting down...")
    if owns_database:
        await app.state.database.dispose()
        app.state.database = None
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _envelope(
    status_code: int,
    message: str,
    errors: Optional[List[Dict[str, Any]]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes; every body is `{success: false, ...}`.

    Handler hierarchy:
        FormValidationError      → 400 (field errors list)
        UploadRejectedError      → 400 (upload policy)
        RequestValidationError   → 400 (malformed request / path parameter)
        NotFoundError            → 404
        DatabaseError            → 500 (underlying message, rolled back)
        FileStorageError         → 500
        CounselorAppError (base) → 500
        HTTPException            → its own status
        Exception (fallback)     → 500
    """

    @app.exception_handler(FormValidationError)
    async def handle_form_validation(request: Request, exc: FormValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation failed: %d field errors", rid, len(exc.errors))
        return _envelope(400, exc.message, exc.errors)

    @app.exception_handler(UploadRejectedError)
    async def handle_upload_rejected(request: Request, exc: UploadRejectedError):
        rid = request_id_var.get("")
        logger.warning("[%s] Upload rejected: %s", rid, exc.message)
        return _envelope(400, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = []
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "path", "query")]
            errors.append(
                {
                    "msg": err.get("msg", "Invalid value"),
                    "param": loc[0] if loc else None,
                    "location": str(err["loc"][0]) if err.get("loc") else None,
                }
            )
        logger.warning("[%s] Malformed request: %s", rid, errors)
        return _envelope(400, "Validation failed", errors)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _envelope(404, exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return _envelope(500, exc.message)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return _envelope(500, exc.message)

    @app.exception_handler(CounselorAppError)
    async def handle_app_error(request: Request, exc: CounselorAppError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _envelope(500, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace is logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        response = _envelope(500, "Internal server error")
        if rid:
            response.headers["X-Request-ID"] = rid
        return response


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    database: Optional[Database] = None,
    upload_gate: Optional[UploadGate] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        database: Pre-built Database handle (tests, embedding). When given,
                  the caller owns its lifecycle; otherwise the lifespan opens
                  one from settings and disposes it at shutdown.
        upload_gate: Pre-built UploadGate; defaults to one from settings.
    """
    app = FastAPI(
        title="Merit Badge Counselor Application API",
        description=(
            "Accepts merit badge counselor applications with badge selections "
            "and certification uploads, and serves them back by id."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.database = database
    app.state.upload_gate = upload_gate or UploadGate()

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in REVERSE order of addition: RequestID → Logging → GZip → CORS
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(applications.router)
    app.include_router(health.router)

    return app


# uvicorn expects `counselor.main:app` to be importable
app = create_app()

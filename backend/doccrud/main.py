"""
DocCRUD Backend - FastAPI Application Factory
===============================================

What:  Builds the FastAPI application: middleware, exception handlers,
       routers and the store lifecycle.
How:   create_app() returns a configured instance; the module-level `app`
       is what `uvicorn doccrud.main:app` serves.

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate cross-field configuration
    3. Connect to the document store (ping with retry) and attach it to
       app.state.store
    Shutdown:
    1. Close the store client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from doccrud import __version__
from doccrud.config import settings
from doccrud.database import StoreConnection
from doccrud.exceptions import (
    DatabaseError,
    DocCRUDError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from doccrud.middleware.logging import RequestLoggingMiddleware
from doccrud.middleware.rate_limit import RateLimitMiddleware
from doccrud.middleware.request_id import RequestIDMiddleware, request_id_var
from doccrud.routes import health, records

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger once for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation at DEBUG/INFO
    for name in ("uvicorn.access", "pymongo", "motor", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("DocCRUD Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    store: Optional[StoreConnection] = getattr(app.state, "store", None)
    if store is None:
        store = StoreConnection.from_settings()
        app.state.store = store

    if not store.connected:
        try:
            await store.connect()
        except StoreUnavailableError as e:
            # Keep serving: routes answer 503 until the store answers a ping
            logger.error("Starting without a document store: %s", e.message)

    logger.info("Collections: %s", ", ".join(settings.collections_list))
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("DocCRUD Backend shutting down...")
    store.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exception types to HTTP status codes and the shared error envelope.

        ValidationError         → 400
        NotFoundError           → 404
        RequestValidationError  → 422 (body not a JSON object, bad query types)
        DatabaseError           → 500 (generic message, details logged)
        StoreUnavailableError   → 503
        DocCRUDError (base)     → 500
        Exception (fallback)    → 500
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error(400, "validation_error", exc.message, details=exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "not_found", exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error(
            422,
            "request_validation_error",
            "The request could not be parsed. The body must be a JSON object.",
            details={"errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ]},
        )

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        logger.error("[%s] Store unavailable: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error(503, "store_unavailable", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(DocCRUDError)
    async def handle_app_error(request: Request, exc: DocCRUDError):
        logger.error("[%s] Application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(store: Optional[StoreConnection] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: Pre-built store connection. When omitted the lifespan builds
               one from settings at startup.
    """
    app = FastAPI(
        title="DocCRUD API",
        description="Create, read, update, patch and delete records in document collections.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.store = store

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
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
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(records.router)

    return app


app = create_app()
